"""
Metric Aggregate - Running counter totals for one probe run.

This module provides the MetricAggregate class that handles:
- Accumulating counter deltas per metric name
- Serializing concurrent writers and readers with a lock
- Handing out independent snapshots to readers

"""

import threading
from typing import Dict, List

from .protocol import MetricSample


class MetricAggregate:
    """Lock-protected mapping of metric name to cumulative value.

    The collector is the only writer. Every other component reads through
    snapshot(), which copies the totals under the lock so a reader never
    observes a half-applied update.
    """

    def __init__(self) -> None:
        self._totals: Dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, sample: MetricSample) -> float:
        """Apply a sample to the running total for its name.

        Args:
            sample: Decoded counter sample.

        Returns:
            The new total for the sample's metric name.
        """
        with self._lock:
            total = self._totals.get(sample.name, 0.0) + sample.delta
            self._totals[sample.name] = total
        return total

    def add_all(self, samples: List[MetricSample]) -> None:
        """Apply several samples as one atomic update."""
        with self._lock:
            for sample in samples:
                self._totals[sample.name] = self._totals.get(sample.name, 0.0) + sample.delta

    def snapshot(self) -> Dict[str, float]:
        """Get an independent copy of the current totals."""
        with self._lock:
            return dict(self._totals)

    def get(self, name: str, default: float = 0.0) -> float:
        """Get the current total for a metric name."""
        with self._lock:
            return self._totals.get(name, default)

    def __len__(self) -> int:
        with self._lock:
            return len(self._totals)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._totals
