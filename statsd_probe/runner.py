"""
Probe Runner - Orchestrates one diagnostic run.

This module provides the ProbeRunner class that handles:
- Checking the target is reachable before anything else
- Starting the mock StatsD collector and letting it settle
- Driving the login scenario
- Draining late metrics, validating and printing the report
- Mapping the outcome to a process exit code

"""

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from .client import ProbeClient
from .collector import CollectorStats, MockStatsDCollector
from .config import HarnessConfig
from .exceptions import CollectorError
from .report import print_report
from .scenario import ScenarioDriver, ScenarioStage, StepOutcome, build_default_scenario
from .validator import MetricNames, MetricValidator, ValidationReport


logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Process exit codes."""
    SUCCESS = 0
    TARGET_UNREACHABLE = 1
    CONFIG_ERROR = 2
    COLLECTOR_ERROR = 3
    INTERRUPTED = 130


@dataclass
class RunResult:
    """Everything a run produced."""
    exit_code: ExitCode
    report: Optional[ValidationReport] = None
    outcomes: List[StepOutcome] = field(default_factory=list)
    stats: Optional[CollectorStats] = None


class ProbeRunner:
    """Runs health check, scenario, drain and validation in order."""

    def __init__(self, config: HarnessConfig,
                 collector: Optional[MockStatsDCollector] = None,
                 client: Optional[ProbeClient] = None,
                 stages: Optional[List[ScenarioStage]] = None,
                 print_results: bool = True):
        """Initialize the runner.

        Args:
            config: Validated harness configuration.
            collector: Optional collector. Creates one bound per config if not provided.
            client: Optional probe client. Creates one for the configured target if not provided.
            stages: Optional scenario override. Defaults to the login scenario paced per config.
            print_results: Whether to print the console report.
        """
        self.config = config
        self.collector = collector or MockStatsDCollector(config.statsd_host, config.statsd_port)
        self.client = client or ProbeClient(config.target_host, config.target_port, config.timeout_ms)
        self.stages = stages if stages is not None else build_default_scenario(
            step_delay=config.step_delay, burst_delay=config.burst_delay
        )
        self.validator = MetricValidator(MetricNames.from_prefix(config.metric_prefix))
        self.print_results = print_results

    async def run(self) -> RunResult:
        """Execute one full diagnostic run.

        Returns:
            RunResult with the exit code and, on completion, the report.
        """
        async with self.client:
            if not await self.client.is_reachable():
                logger.error(f"Service not reachable at {self.client.base_url}")
                logger.error("Please start the target service first")
                return RunResult(exit_code=ExitCode.TARGET_UNREACHABLE)

            logger.info("Service is reachable")

            try:
                await self.collector.start()
            except CollectorError as e:
                logger.error(f"Cannot start mock StatsD collector: {e}")
                return RunResult(exit_code=ExitCode.COLLECTOR_ERROR)

            try:
                # Let the collector settle before the first probe
                await asyncio.sleep(self.config.startup_delay)

                driver = ScenarioDriver(self.client, self.stages, self.config.timeout_ms)
                outcomes = await driver.run()

                await self._drain()

                report = self.validator.validate(self.collector.snapshot())
                stats = self.collector.get_stats()
            finally:
                self.collector.stop()

        for warning in report.warnings:
            logger.warning(warning)

        if self.print_results:
            print_report(report, stats)

        return RunResult(exit_code=ExitCode.SUCCESS, report=report, outcomes=outcomes, stats=stats)

    async def _drain(self) -> None:
        """Wait for metrics still in flight."""
        if self.config.drain_mode == "quiet":
            logger.info(f"Waiting for metrics to settle (quiet period {self.config.quiet_period}s)")
            await self.collector.wait_until_quiet(self.config.quiet_period, self.config.drain_timeout)
        else:
            logger.info(f"Waiting {self.config.drain_delay}s for metrics to arrive")
            await asyncio.sleep(self.config.drain_delay)


async def run_probe(config: HarnessConfig, runner: Optional[ProbeRunner] = None) -> int:
    """Run the harness with interrupt handling.

    SIGINT and SIGTERM cancel the run at its current suspension point.

    Args:
        config: Validated harness configuration.
        runner: Optional runner. Creates one from config if not provided.

    Returns:
        Process exit code.
    """
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    signals = (signal.SIGINT, signal.SIGTERM)

    def signal_handler():
        logger.info("Test interrupted by user")
        task.cancel()

    # Register signal handlers (Unix only)
    if sys.platform != "win32":
        for sig in signals:
            loop.add_signal_handler(sig, signal_handler)

    try:
        result = await (runner or ProbeRunner(config)).run()
        return int(result.exit_code)
    except asyncio.CancelledError:
        return int(ExitCode.INTERRUPTED)
    finally:
        if sys.platform != "win32":
            for sig in signals:
                loop.remove_signal_handler(sig)
