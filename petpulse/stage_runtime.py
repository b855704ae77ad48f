from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List

logger = logging.getLogger("petpulse.pipeline")


@dataclass
class StageStep:
    """Step descriptor for a stage pipeline."""
    name: str
    fn: Callable[[Any], None]


class StageRunner:
    """Ordered step runner shared by the tips, confirm and plan stages."""

    def __init__(self, stage: str, steps: List[StageStep]) -> None:
        """Purpose: Initialize the runner with a stage name and ordered steps.
        Inputs/Outputs: Inputs are the stage name and a list of StageStep; no return.
        Side Effects / State: Stores the step list for later execution.
        Dependencies: None beyond StageStep definitions.
        Failure Modes: None; assumes valid callables in steps.
        If Removed: Stage handlers cannot execute their validate/prompt/request/enforce sequence.
        Testing Notes: Provide a minimal step list and ensure order is preserved.
        """
        self._stage = stage
        self._steps = steps

    def run(self, context: Any) -> None:
        """Purpose: Execute steps in order, stopping at the first failure.
        Inputs/Outputs: Input is a mutable context object; no return value.
        Side Effects / State: Step functions mutate the context; each step is logged.
        Dependencies: Depends on StageStep.fn.
        Failure Modes: Exceptions in step functions propagate to the caller after
            being logged with the failing step name.
        If Removed: No stage can run, so every endpoint fails.
        Testing Notes: Verify order and that a failing step stops the run.
        """
        request_id = getattr(context, "request_id", "-")
        for step in self._steps:
            try:
                step.fn(context)
            except Exception:
                logger.info("request=%s stage=%s step=%s status=failed", request_id, self._stage, step.name)
                raise
            logger.debug("request=%s stage=%s step=%s status=success", request_id, self._stage, step.name)
