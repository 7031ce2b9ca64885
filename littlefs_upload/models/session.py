"""Per-invocation state tracking."""

import time
from dataclasses import dataclass, field
from enum import Enum


class InvocationState(str, Enum):
    """Stages a build or upload invocation passes through."""

    IDLE = "idle"
    RESOLVING = "resolving"
    TOOL_LOCATING = "tool_locating"
    BUILDING = "building"
    CONVERTING = "converting"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({InvocationState.COMPLETED, InvocationState.FAILED})

_TRANSITIONS: dict[InvocationState, frozenset[InvocationState]] = {
    InvocationState.IDLE: frozenset({InvocationState.RESOLVING}),
    # Layout-only operations finish straight after resolving
    InvocationState.RESOLVING: frozenset(
        {InvocationState.TOOL_LOCATING, InvocationState.COMPLETED}
    ),
    InvocationState.TOOL_LOCATING: frozenset({InvocationState.BUILDING}),
    InvocationState.BUILDING: frozenset(
        {
            InvocationState.CONVERTING,
            InvocationState.UPLOADING,
            InvocationState.COMPLETED,
        }
    ),
    InvocationState.CONVERTING: frozenset({InvocationState.UPLOADING}),
    InvocationState.UPLOADING: frozenset({InvocationState.COMPLETED}),
    InvocationState.COMPLETED: frozenset(),
    InvocationState.FAILED: frozenset(),
}


@dataclass
class InvocationSession:
    """State of one build or upload invocation.

    Any non-terminal state may move to FAILED. COMPLETED and FAILED are
    terminal; moving out of them raises ValueError.
    """

    state: InvocationState = InvocationState.IDLE
    history: list[InvocationState] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def elapsed_time(self) -> float:
        """Seconds since the invocation started."""
        return time.time() - self.start_time

    def can_transition(self, target: InvocationState) -> bool:
        if self.is_terminal:
            return False
        if target == InvocationState.FAILED:
            return True
        return target in _TRANSITIONS[self.state]

    def transition(self, target: InvocationState) -> None:
        if not self.can_transition(target):
            raise ValueError(
                f"Invalid invocation transition: {self.state.value} -> {target.value}"
            )
        self.history.append(self.state)
        self.state = target

    def fail(self) -> None:
        """Move to FAILED unless the invocation already ended."""
        if not self.is_terminal:
            self.transition(InvocationState.FAILED)


__all__ = ["InvocationSession", "InvocationState", "TERMINAL_STATES"]
