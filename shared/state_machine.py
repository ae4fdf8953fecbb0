from enum import Enum
from typing import Optional, Callable
from dataclasses import dataclass


class MatchState(str, Enum):
    EMPTY = "empty"
    SCHEDULED = "scheduled"
    SCORED = "scored"
    PROPAGATED = "propagated"


class TransitionError(Exception):
    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state} to {to_state}"
        super().__init__(self.reason)


class GuardError(TransitionError):
    """The transition exists but its guard rejected the context."""

    def __init__(self, from_state: str, to_state: str, action: str, context: dict):
        self.action = action
        self.context = dict(context)
        super().__init__(from_state, to_state, f"Guard condition failed for action '{action}'")


def rescore_allowed(ctx: dict) -> bool:
    return not ctx.get("parent_decided", False) and not ctx.get("consolante_drawn", False)


@dataclass
class Transition:
    from_state: MatchState
    to_state: MatchState
    action: str
    guard: Optional[Callable] = None


class MatchStateMachine:
    TRANSITIONS = [
        Transition(MatchState.EMPTY, MatchState.EMPTY, "assign"),
        Transition(MatchState.EMPTY, MatchState.SCHEDULED, "fill"),
        Transition(MatchState.SCHEDULED, MatchState.SCHEDULED, "assign"),
        Transition(MatchState.SCHEDULED, MatchState.SCORED, "score"),
        Transition(MatchState.SCORED, MatchState.PROPAGATED, "propagate"),
        Transition(MatchState.SCORED, MatchState.SCORED, "score", guard=rescore_allowed),
        Transition(MatchState.PROPAGATED, MatchState.SCORED, "score", guard=rescore_allowed),
    ]

    def __init__(self, initial_state: MatchState = MatchState.EMPTY):
        self._state = initial_state

    @property
    def state(self) -> MatchState:
        return self._state

    def transition(self, action: str, guard_context: dict = None) -> MatchState:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                if t.guard and not t.guard(guard_context or {}):
                    raise GuardError(self._state.value, t.to_state.value, action, guard_context or {})
                self._state = t.to_state
                return self._state

        raise TransitionError(
            self._state.value,
            "unknown",
            f"No valid transition for action '{action}' from state '{self._state.value}'"
        )

    @classmethod
    def from_match(cls, match, parent=None) -> "MatchStateMachine":
        """Derive the current state of a bracket match from its persisted slots."""
        if match.winner_id is None:
            if match.team1_id and match.team2_id:
                return cls(MatchState.SCHEDULED)
            return cls(MatchState.EMPTY)

        if parent is None:
            return cls(MatchState.PROPAGATED)

        slot = parent.team1_id if match.match_number % 2 == 1 else parent.team2_id
        if slot == match.winner_id:
            return cls(MatchState.PROPAGATED)
        return cls(MatchState.SCORED)


def rescore_context(parent=None, consolante_drawn: bool = False) -> dict:
    return {
        "parent_decided": parent is not None and parent.winner_id is not None,
        "consolante_drawn": consolante_drawn,
    }
