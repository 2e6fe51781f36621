"""
Decision Trace

Records which branch of the query pipeline fired, so callers and tests
can inspect entity resolution without scraping log output.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from core.logging_config import engine_logger


@dataclass
class TraceEvent:
    """A single pipeline decision."""

    stage: str
    decision: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class DecisionTrace:
    """Base trace: accepts events and discards them."""

    def record(self, stage: str, decision: str, **details: Any) -> None:
        pass


class LoggingTrace(DecisionTrace):
    """Emits every decision to the engine logger at DEBUG level."""

    def __init__(self, logger=None):
        self.logger = logger or engine_logger

    def record(self, stage: str, decision: str, **details: Any) -> None:
        if details:
            self.logger.debug(f"[{stage}] {decision}: {details}")
        else:
            self.logger.debug(f"[{stage}] {decision}")


class RecordingTrace(LoggingTrace):
    """Logs decisions and keeps them in memory."""

    def __init__(self, logger=None):
        super().__init__(logger)
        self.events: list[TraceEvent] = []

    def record(self, stage: str, decision: str, **details: Any) -> None:
        super().record(stage, decision, **details)
        self.events.append(TraceEvent(stage=stage, decision=decision, details=details))

    def decisions(self, stage: Optional[str] = None) -> list[str]:
        """Decisions recorded for a stage (all stages if None)."""
        return [
            e.decision for e in self.events
            if stage is None or e.stage == stage
        ]

    def find(self, stage: str, decision: str) -> Optional[TraceEvent]:
        for event in self.events:
            if event.stage == stage and event.decision == decision:
                return event
        return None
