"""
Scenario driver tests using a scripted client.
"""

from typing import Dict, List, Optional, Tuple

import pytest

from statsd_probe.client import ProbeErrorKind, ProbeResult
from statsd_probe.scenario import (
    AUTH_HEADER, Expectation, ScenarioDriver, ScenarioStage, ScenarioStep, build_default_scenario
)


class ScriptedClient:
    """Records probes and replays scripted results."""

    def __init__(self, results: Optional[List[ProbeResult]] = None):
        self.calls: List[Tuple[str, Dict[str, str], Optional[int]]] = []
        self._results = list(results or [])

    async def probe(self, path, headers=None, timeout_ms=None) -> ProbeResult:
        self.calls.append((path, dict(headers or {}), timeout_ms))
        if self._results:
            return self._results.pop(0)
        return ProbeResult(status_code=400, body="bad")


class TestDefaultScenario:
    """Test the shape of the built-in scenario."""

    def test_five_stages_seven_requests(self):
        stages = build_default_scenario()

        assert [stage.number for stage in stages] == [1, 2, 3, 4, 5]
        assert [len(stage.steps) for stage in stages] == [1, 1, 1, 1, 3]
        assert all(step.path == "/login" for stage in stages for step in stage.steps)

    def test_headers(self):
        headers = [step.headers for stage in build_default_scenario() for step in stage.steps]

        assert headers == [
            {},
            {AUTH_HEADER: "invalid_format"},
            {AUTH_HEADER: "Basic testuser:wrongpass"},
            {AUTH_HEADER: "Basic testuser:testpass"},
            {AUTH_HEADER: "Basic user0:pass0"},
            {AUTH_HEADER: "Basic user1:pass1"},
            {AUTH_HEADER: "Basic user2:pass2"},
        ]

    def test_expectations(self):
        expectations = [stage.expectation for stage in build_default_scenario()]

        assert expectations == [
            Expectation.UNAUTHORIZED,
            Expectation.FAILED,
            Expectation.FAILED,
            Expectation.SUCCESS,
            Expectation.FAILED,
        ]

    def test_pacing(self):
        """Test single stages use the step delay and the burst its own."""
        stages = build_default_scenario(step_delay=0.5, burst_delay=0.2)

        assert [stage.steps[0].post_delay for stage in stages[:4]] == [0.5] * 4
        assert [step.post_delay for step in stages[4].steps] == [0.2] * 3


@pytest.mark.asyncio
class TestScenarioDriver:
    """Test ScenarioDriver execution."""

    async def test_runs_steps_in_order(self):
        client = ScriptedClient()
        driver = ScenarioDriver(client, build_default_scenario(0, 0), timeout_ms=750)

        outcomes = await driver.run()

        assert driver.request_count == 7
        assert len(outcomes) == 7
        assert [call[1] for call in client.calls] == [
            step.headers for stage in driver.stages for step in stage.steps
        ]
        assert all(call[2] == 750 for call in client.calls)
        assert [(o.stage, o.index) for o in outcomes] == [
            (1, 0), (2, 0), (3, 0), (4, 0), (5, 0), (5, 1), (5, 2)
        ]

    async def test_errors_do_not_abort(self):
        """Test every step still runs when probes fail."""
        failures = [
            ProbeResult(error=ProbeErrorKind.CONNECTION_REFUSED, error_message="refused"),
            ProbeResult(error=ProbeErrorKind.TIMEOUT, error_message="Request timeout after 5000ms"),
        ]
        client = ScriptedClient(failures)
        driver = ScenarioDriver(client, build_default_scenario(0, 0))

        outcomes = await driver.run()

        assert len(client.calls) == 7
        assert outcomes[0].result.error is ProbeErrorKind.CONNECTION_REFUSED
        assert outcomes[1].result.error is ProbeErrorKind.TIMEOUT
        assert outcomes[2].result.status_code == 400

    async def test_logs_token_length_on_success(self, caplog):
        client = ScriptedClient([ProbeResult(status_code=200, body="x" * 42)])
        stage = ScenarioStage(4, "Skeleton key", Expectation.SUCCESS,
                              [ScenarioStep("/login", {AUTH_HEADER: "Basic testuser:testpass"}, 0)])

        with caplog.at_level("INFO", logger="statsd_probe.scenario"):
            await ScenarioDriver(client, [stage]).run()

        assert "Received JWT token (42 chars)" in caplog.text

    async def test_custom_stages(self):
        client = ScriptedClient()
        stage = ScenarioStage(1, "Ping", Expectation.UNAUTHORIZED, [ScenarioStep("/ping", {}, 0)])

        await ScenarioDriver(client, [stage]).run()

        assert client.calls == [("/ping", {}, None)]
