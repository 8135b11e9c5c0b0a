from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, Iterable, List, Optional
import logging

from ..devices.amcp import AmcpClient
from ..devices.codec import AmcpResponse
from ..devices.errors import AmcpError, StepFailedError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    name: str
    command: str


@dataclass
class StepResult:
    index: int  # 1-based position in the sequence
    step: Step
    response: Optional[AmcpResponse] = None
    error: Optional[AmcpError] = None

    @property
    def name(self) -> str: return self.step.name
    @property
    def command(self) -> str: return self.step.command
    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None and self.response.is_success

    def describe(self) -> str:
        if self.error is not None:
            return f"{type(self.error).__name__}: {self.error}"
        if self.response is not None:
            return f"{self.response.code} {self.response.message}".rstrip()
        return "not issued"


@dataclass
class SequenceResult:
    name: str
    best_effort: bool = False
    steps: List[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool: return all(s.ok for s in self.steps)
    @property
    def attempted(self) -> int: return len(self.steps)
    @property
    def failed(self) -> Optional[StepResult]:
        return next((s for s in self.steps if not s.ok), None)


class SequenceRunner:
    """
    Issues an ordered list of commands over one client.

    best_effort=False: stop at the first step that errors or does not
    classify as success, raising StepFailedError. Earlier steps stay in
    effect; cleanup is the caller's job.
    best_effort=True: attempt every step, record failures, never raise
    AmcpError. Meant for teardown.
    """

    def __init__(self, client: AmcpClient):
        self.client = client

    def run(self, name: str, steps: Iterable[Step], best_effort: bool = False) -> SequenceResult:
        result = SequenceResult(name=name, best_effort=best_effort)
        for i, step in enumerate(steps, 1):
            res = StepResult(index=i, step=step)
            try:
                res.response = self.client.send(step.command)
            except AmcpError as e:
                res.error = e
            result.steps.append(res)
            if res.ok:
                continue
            if best_effort:
                log.warning("%s: step %d (%s) failed, continuing: %s", name, i, step.name, res.describe())
                continue
            log.error("%s: step %d (%s) failed: %s", name, i, step.name, res.describe())
            raise StepFailedError(res, result) from res.error
        log.debug("%s: %d step(s) attempted, ok=%s", name, result.attempted, result.ok)
        return result

    def run_each(
        self,
        name: str,
        ids: Iterable[Hashable],
        build_steps: Callable[[Hashable], List[Step]],
        best_effort: bool = True,
    ) -> Dict[Hashable, SequenceResult]:
        """Run one independent sequence per id. With best_effort a failing id does not stop the rest."""
        results: Dict[Hashable, SequenceResult] = {}
        for ident in ids:
            results[ident] = self.run(f"{name}[{ident}]", build_steps(ident), best_effort=best_effort)
        return results
