"""
Unit tests for MatchStateMachine class.
Tests all state transitions, the rescore guard, and state derivation from rows.
"""
from types import SimpleNamespace

import pytest
from shared.state_machine import (
    MatchStateMachine,
    MatchState,
    TransitionError,
    Transition,
    GuardError,
    rescore_context,
)


def match_row(match_number=1, team1=None, team2=None, winner=None):
    return SimpleNamespace(match_number=match_number, team1_id=team1, team2_id=team2, winner_id=winner)


class TestMatchStateEnum:
    """Tests for MatchState enum."""

    def test_all_states_exist(self):
        """All expected states should exist."""
        assert MatchState.EMPTY.value == "empty"
        assert MatchState.SCHEDULED.value == "scheduled"
        assert MatchState.SCORED.value == "scored"
        assert MatchState.PROPAGATED.value == "propagated"


class TestTransitionError:
    """Tests for TransitionError exception."""

    def test_error_attributes(self):
        """TransitionError should have from_state and to_state."""
        error = TransitionError("empty", "scored")
        assert error.from_state == "empty"
        assert error.to_state == "scored"

    def test_custom_reason(self):
        """Custom reason should be used if provided."""
        error = TransitionError("empty", "scored", "Custom error message")
        assert str(error) == "Custom error message"


class TestTransitions:
    """Tests for the transition table."""

    def test_default_initial_state(self):
        """Default initial state should be EMPTY."""
        assert MatchStateMachine().state == MatchState.EMPTY

    def test_fill_schedules_match(self):
        """Filling both slots should schedule the match."""
        sm = MatchStateMachine()
        assert sm.transition('fill') == MatchState.SCHEDULED

    def test_assign_keeps_empty(self):
        """Assigning one slot should leave the match empty."""
        sm = MatchStateMachine()
        assert sm.transition('assign') == MatchState.EMPTY

    def test_full_lifecycle(self):
        """Scheduled -> scored -> propagated."""
        sm = MatchStateMachine(MatchState.SCHEDULED)
        sm.transition('score')
        assert sm.transition('propagate') == MatchState.PROPAGATED

    def test_cannot_score_empty_match(self):
        """Scoring an empty match should raise."""
        sm = MatchStateMachine()
        with pytest.raises(TransitionError):
            sm.transition('score')

    def test_cannot_propagate_scheduled_match(self):
        """Propagate requires a score."""
        sm = MatchStateMachine(MatchState.SCHEDULED)
        with pytest.raises(TransitionError):
            sm.transition('propagate')

    def test_rescore_allowed_when_parent_open(self):
        """A propagated match can be rescored while its parent is undecided."""
        sm = MatchStateMachine(MatchState.PROPAGATED)
        assert sm.transition('score', {'parent_decided': False}) == MatchState.SCORED

    def test_rescore_blocked_when_parent_decided(self):
        """Guard should reject a rescore once the parent has a winner."""
        sm = MatchStateMachine(MatchState.PROPAGATED)
        with pytest.raises(GuardError) as exc_info:
            sm.transition('score', {'parent_decided': True})
        assert "Guard" in str(exc_info.value)
        assert exc_info.value.context == {'parent_decided': True}
        assert sm.state == MatchState.PROPAGATED

    def test_rescore_blocked_once_consolante_drawn(self):
        """Guard should reject a rescore of a drawn first-round match."""
        sm = MatchStateMachine(MatchState.PROPAGATED)
        with pytest.raises(GuardError):
            sm.transition('score', rescore_context(None, consolante_drawn=True))

    def test_scored_match_shares_rescore_guard(self):
        """A scored match not yet propagated is guarded the same way."""
        sm = MatchStateMachine(MatchState.SCORED)
        with pytest.raises(GuardError):
            sm.transition('score', {'parent_decided': True})

    def test_first_score_is_unguarded(self):
        """Scoring a scheduled match never consults the guard."""
        sm = MatchStateMachine(MatchState.SCHEDULED)
        assert sm.transition('score', {'parent_decided': True}) == MatchState.SCORED

    def test_guard_error_is_a_transition_error(self):
        assert issubclass(GuardError, TransitionError)

    def test_every_transition_uses_a_known_action(self):
        """Table should only name the four match actions."""
        for t in MatchStateMachine.TRANSITIONS:
            assert isinstance(t, Transition)
            assert t.action in ('assign', 'fill', 'score', 'propagate')


class TestFromMatch:
    """Tests for deriving state from persisted rows."""

    def test_empty_match(self):
        """One team and no winner is EMPTY."""
        assert MatchStateMachine.from_match(match_row(team1='a')).state == MatchState.EMPTY

    def test_scheduled_match(self):
        """Both teams and no winner is SCHEDULED."""
        assert MatchStateMachine.from_match(match_row(team1='a', team2='b')).state == MatchState.SCHEDULED

    def test_final_with_winner_is_propagated(self):
        """A decided final has nothing to propagate to."""
        final = match_row(team1='a', team2='b', winner='a')
        assert MatchStateMachine.from_match(final).state == MatchState.PROPAGATED

    def test_winner_in_parent_slot_is_propagated(self):
        """Even match number feeds team2 of the parent."""
        child = match_row(match_number=2, team1='a', team2='b', winner='b')
        parent = match_row(team1='x', team2='b')
        assert MatchStateMachine.from_match(child, parent).state == MatchState.PROPAGATED

    def test_winner_missing_from_parent_is_scored(self):
        """A winner not yet written to the parent is SCORED."""
        child = match_row(match_number=1, team1='a', team2='b', winner='a')
        parent = match_row(team1=None, team2='c')
        assert MatchStateMachine.from_match(child, parent).state == MatchState.SCORED


class TestRescoreContext:
    """Tests for rescore_context."""

    def test_no_parent(self):
        assert rescore_context(None) == {'parent_decided': False, 'consolante_drawn': False}

    def test_open_parent(self):
        assert rescore_context(match_row(team1='a'))['parent_decided'] is False

    def test_decided_parent(self):
        assert rescore_context(match_row(team1='a', team2='b', winner='a'))['parent_decided'] is True

    def test_consolante_flag(self):
        assert rescore_context(None, consolante_drawn=True)['consolante_drawn'] is True
