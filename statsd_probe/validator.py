"""
Validator - Consistency checks over captured counters.

Checks that the expected request counters were emitted and that the total
request counter equals the sum of its outcome counters. Problems are
reported as warnings, never raised.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_PREFIX = "piarch_token_service.requests"


@dataclass(frozen=True)
class MetricNames:
    """Fully qualified names of the request counters."""
    total: str
    success: str
    failed: str
    unauthorized: str

    @classmethod
    def from_prefix(cls, prefix: str = DEFAULT_PREFIX) -> "MetricNames":
        """Build the names under a dotted prefix."""
        prefix = prefix.rstrip(".")
        return cls(
            total=f"{prefix}.total",
            success=f"{prefix}.success",
            failed=f"{prefix}.failed",
            unauthorized=f"{prefix}.unauthorized",
        )

    @property
    def required(self) -> List[str]:
        """Names that must be present after the scenario.

        The success counter is optional: a target may legitimately
        reject the skeleton key.
        """
        return [self.total, self.unauthorized, self.failed]


@dataclass
class ValidationReport:
    """Outcome of validating one snapshot."""
    metrics: Dict[str, float]
    missing: List[str] = field(default_factory=list)
    total: float = 0.0
    success: float = 0.0
    failed: float = 0.0
    unauthorized: float = 0.0

    @property
    def expected_total(self) -> float:
        """Sum of the outcome counters."""
        return self.success + self.failed + self.unauthorized

    @property
    def consistent(self) -> bool:
        """True when total equals success + failed + unauthorized."""
        return math.isclose(self.total, self.expected_total, rel_tol=0.0, abs_tol=1e-9)

    @property
    def no_metrics(self) -> bool:
        """True when nothing at all was captured."""
        return not self.metrics

    @property
    def warnings(self) -> List[str]:
        """Human-readable warnings, empty when everything checks out."""
        warnings = []
        if self.no_metrics:
            warnings.append("No metrics received")
            return warnings
        if self.missing:
            warnings.append(f"Missing expected metrics: {', '.join(self.missing)}")
        if not self.consistent:
            warnings.append(
                f"Metric counts don't add up: total={self.total:g}, "
                f"success+failed+unauthorized={self.expected_total:g}"
            )
        return warnings

    @property
    def passed(self) -> bool:
        """True when there are no warnings."""
        return not self.warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "metrics": dict(self.metrics),
            "missing": list(self.missing),
            "total": self.total,
            "expected_total": self.expected_total,
            "consistent": self.consistent,
            "warnings": self.warnings,
        }


class MetricValidator:
    """Validates request counters captured during a scenario."""

    def __init__(self, names: Optional[MetricNames] = None):
        self.names = names or MetricNames.from_prefix()

    def validate(self, snapshot: Dict[str, float]) -> ValidationReport:
        """Validate a snapshot of aggregated counters.

        Args:
            snapshot: Mapping of metric name to cumulative value.

        Returns:
            ValidationReport describing missing names and the total identity.
        """
        metrics = dict(snapshot)
        return ValidationReport(
            metrics=metrics,
            missing=[name for name in self.names.required if name not in metrics],
            total=metrics.get(self.names.total, 0.0),
            success=metrics.get(self.names.success, 0.0),
            failed=metrics.get(self.names.failed, 0.0),
            unauthorized=metrics.get(self.names.unauthorized, 0.0),
        )
