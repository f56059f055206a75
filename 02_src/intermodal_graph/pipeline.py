"""Phase contract and the sequential runner that threads one context dict through them."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

import structlog

logger = structlog.get_logger(__name__)

PHASE_LOG_KEY = "phase_log"


@dataclass(frozen=True)
class PhaseRecord:
    phase: str
    keys: Tuple[str, ...]
    seconds: float

    def to_json(self) -> Dict[str, Any]:
        return {"phase": self.phase, "keys": list(self.keys), "seconds": round(self.seconds, 6)}


class PipelinePhase(ABC):
    """One step of a run.

    ``requires`` names the context keys the phase reads. The runner does not
    start a phase while any of them is absent.
    """

    phase_name: str
    requires: Tuple[str, ...] = ()

    @abstractmethod
    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class PipelineRunner:
    """Runs phases in order, merging each returned dict into the context.

    Every finished phase appends a ``PhaseRecord`` to ``context["phase_log"]``.
    A failing phase stops the run; earlier phases are not rolled back.
    """

    def __init__(self, phases: Iterable[PipelinePhase]) -> None:
        self.phases: List[PipelinePhase] = list(phases)

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        current = dict(context)
        phase_log: List[PhaseRecord] = list(current.get(PHASE_LOG_KEY, []))
        for phase in self.phases:
            missing = [key for key in phase.requires if key not in current]
            if missing:
                raise ValueError(f"Phase '{phase.phase_name}' is missing context keys: {', '.join(missing)}.")

            log = logger.bind(phase=phase.phase_name)
            log.info("phase_started")
            started = time.perf_counter()
            try:
                phase_result = phase.run(current)
            except Exception as exc:
                log.error("phase_failed", error=type(exc).__name__, seconds=time.perf_counter() - started)
                raise
            if not isinstance(phase_result, dict):
                raise TypeError(f"Phase '{phase.phase_name}' must return dict context.")
            if PHASE_LOG_KEY in phase_result:
                raise ValueError(f"Phase '{phase.phase_name}' must not overwrite '{PHASE_LOG_KEY}'.")

            current.update(phase_result)
            record = PhaseRecord(phase.phase_name, tuple(sorted(phase_result)), time.perf_counter() - started)
            phase_log.append(record)
            log.info("phase_finished", keys=list(record.keys), seconds=record.seconds)
        current[PHASE_LOG_KEY] = phase_log
        return current
