"""Status indicator surfaced while translations are running."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from .logger import get_logger

logger = get_logger(__name__)


class StatusState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


class StatusIndicator(Protocol):
    def set_state(self, state: StatusState, message: str = "") -> None: ...

    def set_idle(self) -> None: ...


class LoggingStatusIndicator:
    """Status indicator that reports state transitions to the log."""

    def __init__(self):
        self.state = StatusState.IDLE
        self.message = ""

    def set_state(self, state: StatusState, message: str = "") -> None:
        self.state = state
        self.message = message
        if state == StatusState.ERROR:
            logger.warning(f"Status: {state.value} - {message}")
        else:
            logger.info(f"Status: {state.value}{f' - {message}' if message else ''}")

    def set_idle(self) -> None:
        if self.state != StatusState.IDLE:
            logger.debug("Status: idle")
        self.state = StatusState.IDLE
        self.message = ""
