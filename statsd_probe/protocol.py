"""
Protocol - StatsD wire format decoding.

This module provides the MetricParser class that handles:
- Recognizing counter lines in the StatsD text protocol
- Extracting the metric name and numeric delta
- Splitting multi-line datagrams
- Building counter lines for emitters

Protocol Format:
- Line: <name>:<value>|<type>[|@<sample_rate>][|#<tags>]
  - only the "c" (counter) type is interpreted
  - lines of any other type are ignored
- Datagram: one or more lines separated by newlines

"""

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from .exceptions import ProtocolError


COUNTER_MARKER = "|c"

# Plain ASCII decimal, optionally signed, with an optional exponent
VALUE_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


@dataclass(frozen=True)
class MetricSample:
    """A single counter increment decoded from the wire."""
    name: str
    delta: float


class MetricParser:
    """Decoder for StatsD counter lines.

    A line is treated as a counter when it carries the ``|c`` type marker.
    Any other line is not applicable and yields ``None``. A counter line
    whose name or value cannot be decoded raises ProtocolError.
    """

    def __init__(self, encoding: str = "utf-8"):
        """Initialize the parser.

        Args:
            encoding: Text encoding used to decode datagram payloads.
        """
        self.encoding = encoding

    def is_counter(self, line: str) -> bool:
        """Check whether a line carries the counter type marker."""
        return COUNTER_MARKER in line

    def parse_line(self, line: str) -> Optional[MetricSample]:
        """Parse a single StatsD line.

        Args:
            line: Line of text, surrounding whitespace is ignored.

        Returns:
            MetricSample for counter lines, None for other metric types.

        Raises:
            ProtocolError: If a counter line is malformed.
        """
        line = line.strip()

        if not self.is_counter(line):
            return None

        if ":" not in line:
            raise ProtocolError("Missing ':' separator in counter line", line=line)

        name, remainder = line.split(":", 1)
        name = name.strip()
        if not name:
            raise ProtocolError("Empty metric name", line=line)

        value_field = remainder.split("|")[0].strip()
        if not VALUE_PATTERN.fullmatch(value_field):
            raise ProtocolError(f"Invalid counter value: {value_field!r}", line=line)
        delta = float(value_field)

        # Counters only ever increase
        if not math.isfinite(delta):
            raise ProtocolError(f"Non-finite counter value: {value_field!r}", line=line)
        if delta < 0:
            raise ProtocolError(f"Negative counter value: {value_field!r}", line=line)

        return MetricSample(name=name, delta=delta)

    def parse_datagram(self, payload: Union[bytes, str]) -> List[MetricSample]:
        """Parse every line of a datagram.

        The datagram is all-or-nothing: if any counter line is malformed
        the whole datagram is rejected.

        Args:
            payload: Raw datagram bytes or already decoded text.

        Returns:
            List of counter samples, possibly empty.

        Raises:
            ProtocolError: If the payload cannot be decoded or a counter
                line is malformed.
        """
        if isinstance(payload, bytes):
            try:
                text = payload.decode(self.encoding)
            except UnicodeDecodeError as e:
                raise ProtocolError(f"Datagram is not valid {self.encoding}: {e}")
        else:
            text = payload

        samples = []
        for line in text.strip().splitlines():
            if not line.strip():
                continue
            sample = self.parse_line(line)
            if sample is not None:
                samples.append(sample)

        return samples

    @staticmethod
    def format_counter(name: str, delta: float = 1) -> str:
        """Build a counter line.

        Args:
            name: Metric name.
            delta: Increment, rendered without a trailing ``.0`` when whole.

        Returns:
            Line in the form ``name:delta|c``.
        """
        if isinstance(delta, float) and delta.is_integer():
            delta = int(delta)
        return f"{name}:{delta}{COUNTER_MARKER}"
