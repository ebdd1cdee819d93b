"""
Console report for a finished probe run.
"""

from typing import List, Optional

from .collector import CollectorStats
from .validator import ValidationReport


def format_report(report: ValidationReport, stats: Optional[CollectorStats] = None) -> List[str]:
    """Render a validation report as console lines.

    Args:
        report: Result of validating the final snapshot.
        stats: Optional collector statistics.

    Returns:
        Lines ready to print.
    """
    lines = ["", "📈 RESULTS", "=" * 30]

    if report.no_metrics:
        lines.append("❌ No metrics received!")
        lines.append("   Check if your service is properly sending StatsD metrics.")
    else:
        lines.append("✅ Metrics captured:")
        for name in sorted(report.metrics):
            lines.append(f"   {name}: {report.metrics[name]:g}")

        if report.missing:
            lines.append("")
            lines.append(f"⚠️  Missing expected metrics: {', '.join(report.missing)}")
        else:
            lines.append("")
            lines.append("✅ All expected metric types captured!")

        lines.append("")
        lines.append("🧮 Metric validation:")
        lines.append(f"   Total requests: {report.total:g}")
        lines.append(f"   Success + Failed + Unauthorized: {report.expected_total:g}")
        if report.consistent:
            lines.append("✅ Metric counts are consistent!")
        else:
            lines.append("⚠️  Metric counts don't add up - check your implementation")

    if stats is not None:
        lines.append("")
        lines.append(
            f"📦 Datagrams: {stats.datagrams_received} received, "
            f"{stats.datagrams_dropped} dropped, {stats.datagrams_ignored} ignored"
        )

    return lines


def print_report(report: ValidationReport, stats: Optional[CollectorStats] = None) -> None:
    """Print a validation report to stdout."""
    for line in format_report(report, stats):
        print(line)
