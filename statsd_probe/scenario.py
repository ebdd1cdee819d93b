"""
Scenario Driver - Fixed authentication probe sequence.

This module provides:
- ScenarioStep / ScenarioStage: the hardcoded probe sequence
- ScenarioDriver: runs the stages strictly in order, pacing each step so
  the target's asynchronous metric emission can land before the next one

Probe failures are logged and never stop the scenario.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .client import ProbeClient, ProbeResult


logger = logging.getLogger(__name__)


LOGIN_PATH = "/login"
AUTH_HEADER = "authorize"

STEP_DELAY = 0.5
BURST_DELAY = 0.2
BURST_SIZE = 3


class Expectation(Enum):
    """Counter the target is expected to bump for a stage."""
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"
    SUCCESS = "success"


@dataclass
class ScenarioStep:
    """A single GET request and the pause that follows it."""
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    post_delay: float = STEP_DELAY
    label: str = ""


@dataclass
class ScenarioStage:
    """A numbered group of steps sharing one expectation."""
    number: int
    title: str
    expectation: Expectation
    steps: List[ScenarioStep]


@dataclass
class StepOutcome:
    """Result of one executed step."""
    stage: int
    index: int
    step: ScenarioStep
    result: ProbeResult


def build_default_scenario(step_delay: float = STEP_DELAY,
                           burst_delay: float = BURST_DELAY) -> List[ScenarioStage]:
    """Build the five-stage login scenario.

    Args:
        step_delay: Pause after each of the single-request stages, in seconds.
        burst_delay: Pause after each request of the final burst, in seconds.

    Returns:
        Ordered list of stages.
    """
    return [
        ScenarioStage(
            number=1,
            title="Request without authorization header",
            expectation=Expectation.UNAUTHORIZED,
            steps=[ScenarioStep(LOGIN_PATH, {}, step_delay, "no header")],
        ),
        ScenarioStage(
            number=2,
            title="Request with invalid authorization format",
            expectation=Expectation.FAILED,
            steps=[ScenarioStep(LOGIN_PATH, {AUTH_HEADER: "invalid_format"}, step_delay,
                                "unschemed header")],
        ),
        ScenarioStage(
            number=3,
            title="Request with invalid credentials",
            expectation=Expectation.FAILED,
            steps=[ScenarioStep(LOGIN_PATH, {AUTH_HEADER: "Basic testuser:wrongpass"}, step_delay,
                                "wrong password")],
        ),
        ScenarioStage(
            number=4,
            title="Request with skeleton key (testuser:testpass)",
            expectation=Expectation.SUCCESS,
            steps=[ScenarioStep(LOGIN_PATH, {AUTH_HEADER: "Basic testuser:testpass"}, step_delay,
                                "skeleton key")],
        ),
        ScenarioStage(
            number=5,
            title="Multiple requests to exercise the total counter",
            expectation=Expectation.FAILED,
            steps=[
                ScenarioStep(LOGIN_PATH, {AUTH_HEADER: f"Basic user{i}:pass{i}"}, burst_delay,
                             f"burst {i + 1}")
                for i in range(BURST_SIZE)
            ],
        ),
    ]


class ScenarioDriver:
    """Runs scenario stages sequentially against one probe client."""

    def __init__(self, client: ProbeClient, stages: Optional[List[ScenarioStage]] = None,
                 timeout_ms: Optional[int] = None):
        """Initialize the driver.

        Args:
            client: Client used for every probe.
            stages: Stages to run. Defaults to the five-stage login scenario.
            timeout_ms: Per-probe timeout override.
        """
        self.client = client
        self.stages = stages if stages is not None else build_default_scenario()
        self.timeout_ms = timeout_ms

    @property
    def request_count(self) -> int:
        """Total number of requests the scenario issues."""
        return sum(len(stage.steps) for stage in self.stages)

    async def run(self) -> List[StepOutcome]:
        """Run every stage in order.

        Returns:
            One StepOutcome per executed step, in execution order.
        """
        logger.info("Starting request tests...")
        outcomes: List[StepOutcome] = []

        for stage in self.stages:
            logger.info(f"{stage.number}. Testing {stage.title.lower()}...")

            for index, step in enumerate(stage.steps):
                result = await self.client.probe(step.path, step.headers, self.timeout_ms)
                self._log_outcome(stage, index, result)
                outcomes.append(StepOutcome(stage=stage.number, index=index, step=step, result=result))

                if step.post_delay > 0:
                    await asyncio.sleep(step.post_delay)

        return outcomes

    def _log_outcome(self, stage: ScenarioStage, index: int, result: ProbeResult) -> None:
        prefix = f"Request {index + 1}: " if len(stage.steps) > 1 else ""

        if not result.ok:
            logger.warning(f"   {prefix}Error: {result.error_message}")
            return

        logger.info(f"   {prefix}Status: {result.status_code}")

        if stage.expectation is Expectation.SUCCESS and result.status_code == 200 and result.body:
            logger.info(f"   Success! Received JWT token ({len(result.body)} chars)")
