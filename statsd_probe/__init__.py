"""
StatsD Probe - Diagnostic harness for StatsD request counters.

This package verifies that a service emits consistent StatsD counters in
response to HTTP authentication requests:
- protocol: StatsD counter line decoding
- aggregate: lock-protected running totals
- collector: in-process mock StatsD server
- client: single-shot HTTP probe client
- scenario: fixed login probe sequence
- validator: presence and consistency checks
- runner: orchestration and exit codes
"""

from .aggregate import MetricAggregate
from .client import ProbeClient, ProbeErrorKind, ProbeResult
from .collector import CollectorStats, MockStatsDCollector
from .config import ConfigValidator, HarnessConfig, load_config
from .exceptions import CollectorError, ConfigValidationError, ProbeHarnessError, ProtocolError
from .protocol import MetricParser, MetricSample
from .runner import ExitCode, ProbeRunner, RunResult, run_probe
from .scenario import Expectation, ScenarioDriver, ScenarioStage, ScenarioStep, StepOutcome, build_default_scenario
from .validator import MetricNames, MetricValidator, ValidationReport

__version__ = "0.1.0"

__all__ = [
    # Protocol
    "MetricParser",
    "MetricSample",
    "ProtocolError",
    # Collector
    "MetricAggregate",
    "MockStatsDCollector",
    "CollectorStats",
    "CollectorError",
    # Client
    "ProbeClient",
    "ProbeResult",
    "ProbeErrorKind",
    # Scenario
    "ScenarioDriver",
    "ScenarioStage",
    "ScenarioStep",
    "StepOutcome",
    "Expectation",
    "build_default_scenario",
    # Validator
    "MetricNames",
    "MetricValidator",
    "ValidationReport",
    # Runner
    "ProbeRunner",
    "RunResult",
    "ExitCode",
    "run_probe",
    # Config
    "HarnessConfig",
    "ConfigValidator",
    "ConfigValidationError",
    "load_config",
    "ProbeHarnessError",
]
