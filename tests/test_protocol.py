"""
Tests for StatsD counter line decoding.
"""

import pytest

from statsd_probe.exceptions import ProtocolError
from statsd_probe.protocol import MetricParser, MetricSample


class TestParseLine:
    """Test MetricParser.parse_line."""

    def setup_method(self):
        self.parser = MetricParser()

    @pytest.mark.parametrize("line,name,delta", [
        ("piarch_token_service.requests.total:1|c", "piarch_token_service.requests.total", 1.0),
        ("x:2.5|c", "x", 2.5),
        ("x:0|c", "x", 0.0),
        ("  hits:3|c\n", "hits", 3.0),
        ("hits:1|c|@0.5", "hits", 1.0),
        ("hits:4|c|#env:test", "hits", 4.0),
    ])
    def test_counter_lines(self, line, name, delta):
        """Test well-formed counter lines decode to name and delta."""
        assert self.parser.parse_line(line) == MetricSample(name=name, delta=delta)

    @pytest.mark.parametrize("line", [
        "cpu:42|g",
        "latency:320|ms",
        "users:abc|s",
        "",
        "just some text",
    ])
    def test_non_counter_lines_are_not_applicable(self, line):
        """Test that other metric types are ignored."""
        assert self.parser.parse_line(line) is None

    def test_non_numeric_value(self):
        """Test that a bad counter value raises ProtocolError."""
        with pytest.raises(ProtocolError) as exc_info:
            self.parser.parse_line("x:abc|c")

        assert exc_info.value.line == "x:abc|c"
        assert "abc" in exc_info.value.message

    @pytest.mark.parametrize("line", [
        "no_separator|c",
        ":1|c",
        "x:|c",
    ])
    def test_malformed_counter_lines(self, line):
        """Test structural errors in counter lines."""
        with pytest.raises(ProtocolError):
            self.parser.parse_line(line)

    @pytest.mark.parametrize("line", ["x:-1|c", "x:nan|c", "x:inf|c"])
    def test_negative_and_non_finite_values_are_rejected(self, line):
        """Test counters cannot decrease or become non-finite."""
        with pytest.raises(ProtocolError):
            self.parser.parse_line(line)

    @pytest.mark.parametrize("line", ["x:1_000|c", "x:\u0661|c", "x:0x10|c", "x:1 2|c"])
    def test_value_must_be_ascii_decimal(self, line):
        """Test numeric forms outside plain ASCII decimals are rejected."""
        with pytest.raises(ProtocolError):
            self.parser.parse_line(line)

    @pytest.mark.parametrize("line,delta", [("x:+2|c", 2.0), ("x:.5|c", 0.5), ("x:1e2|c", 100.0)])
    def test_decimal_forms(self, line, delta):
        assert self.parser.parse_line(line).delta == delta

    def test_name_splits_on_first_colon_only(self):
        """Test the value is taken from the field after the first colon."""
        with pytest.raises(ProtocolError):
            self.parser.parse_line("a:b:1|c")


class TestParseDatagram:
    """Test MetricParser.parse_datagram."""

    def setup_method(self):
        self.parser = MetricParser()

    def test_single_line(self):
        assert self.parser.parse_datagram(b"x:1|c\n") == [MetricSample("x", 1.0)]

    def test_multiple_lines_skip_other_types(self):
        """Test multi-line datagrams keep only counters, in order."""
        payload = b"a:1|c\ncpu:12|g\nb:2|c\n\n"

        samples = self.parser.parse_datagram(payload)

        assert samples == [MetricSample("a", 1.0), MetricSample("b", 2.0)]

    def test_bad_line_rejects_whole_datagram(self):
        with pytest.raises(ProtocolError):
            self.parser.parse_datagram(b"a:1|c\nb:oops|c")

    def test_invalid_utf8(self):
        with pytest.raises(ProtocolError):
            self.parser.parse_datagram(b"\xff\xfe:1|c")

    def test_accepts_text(self):
        assert self.parser.parse_datagram("x:5|c") == [MetricSample("x", 5.0)]


class TestFormatCounter:
    """Test MetricParser.format_counter."""

    def test_whole_numbers_have_no_fraction(self):
        assert MetricParser.format_counter("x", 1.0) == "x:1|c"

    def test_fractional_values(self):
        assert MetricParser.format_counter("x", 0.25) == "x:0.25|c"

    def test_default_increment_parses_back(self):
        parser = MetricParser()
        assert parser.parse_line(MetricParser.format_counter("hits")) == MetricSample("hits", 1.0)
