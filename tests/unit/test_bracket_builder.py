"""
Unit tests for BracketBuilder.
Tests: dimensions, byes, parent links, courts and consolante shuffling.
"""
import random

import pytest
from shared.errors import ValidationError
from scheduler.bracket_builder import (
    BYE_SCORE,
    BracketBuilder,
    BracketPlan,
    bracket_dimensions,
    parent_slot,
)


def team_ids(count):
    return [f'seed{i + 1}' for i in range(count)]


class TestBracketDimensions:
    """Tests for bracket_dimensions."""

    @pytest.mark.parametrize('teams,padded,byes,rounds', [
        (2, 2, 0, 1),
        (3, 4, 1, 2),
        (5, 8, 3, 3),
        (8, 8, 0, 3),
        (9, 16, 7, 4),
        (16, 16, 0, 4),
    ])
    def test_dimensions(self, teams, padded, byes, rounds):
        dims = bracket_dimensions(teams)
        assert dims.padded_size == padded
        assert dims.byes == byes
        assert dims.rounds == rounds

    def test_matches_per_round(self):
        dims = bracket_dimensions(5)
        assert [dims.matches_in_round(r) for r in range(1, 4)] == [4, 2, 1]

    @pytest.mark.parametrize('teams', [0, 1])
    def test_too_few_teams(self, teams):
        with pytest.raises(ValidationError):
            bracket_dimensions(teams)


class TestParentSlot:
    """Tests for parent slot parity."""

    def test_odd_feeds_team1(self):
        assert parent_slot(1) == 'team1_id'
        assert parent_slot(3) == 'team1_id'

    def test_even_feeds_team2(self):
        assert parent_slot(2) == 'team2_id'
        assert parent_slot(4) == 'team2_id'

    def test_parent_position(self):
        assert BracketPlan.parent_position(1, 0) == (2, 0)
        assert BracketPlan.parent_position(1, 3) == (2, 1)


class TestBuildFiveTeams:
    """5 teams: padded to 8, top 3 seeds get byes."""

    @pytest.fixture
    def plan(self):
        return BracketBuilder(random.Random(11)).build(team_ids(5), number_of_courts=4)

    def test_round_sizes(self, plan):
        assert [len(r) for r in plan.rounds] == [4, 2, 1]

    def test_top_seeds_get_byes(self, plan):
        byes = [m for m in plan.rounds[0] if m.is_bye]
        assert [m.team1_id for m in byes] == ['seed1', 'seed2', 'seed3']
        for m in byes:
            assert m.team2_id is None
            assert m.winner_id == m.team1_id
            assert (m.team1_score, m.team2_score) == BYE_SCORE

    def test_remaining_teams_play(self, plan):
        last = plan.rounds[0][3]
        assert not last.is_bye
        assert {last.team1_id, last.team2_id} == {'seed4', 'seed5'}
        assert last.winner_id is None

    def test_byes_propagated(self, plan):
        semi1, semi2 = plan.rounds[1]
        assert (semi1.team1_id, semi1.team2_id) == ('seed1', 'seed2')
        assert semi2.team1_id == 'seed3'
        assert semi2.team2_id is None

    def test_links(self, plan):
        r1, r2, r3 = plan.rounds
        assert [m.next_match_id for m in r1] == [r2[0].id, r2[0].id, r2[1].id, r2[1].id]
        assert [m.next_match_id for m in r2] == [r3[0].id, r3[0].id]
        assert plan.final.next_match_id is None

    def test_higher_rounds_start_empty(self, plan):
        assert plan.final.team1_id is None and plan.final.team2_id is None

    def test_unique_ids(self, plan):
        ids = [m.id for m in plan]
        assert len(ids) == len(set(ids)) == 7


class TestBuilderOptions:
    """Tests for courts, id factory and shuffle_all."""

    def test_courts_cycle_per_round(self):
        plan = BracketBuilder(random.Random(1)).build(team_ids(8), number_of_courts=3)
        assert [m.court_number for m in plan.rounds[0]] == [1, 2, 3, 1]
        assert [m.court_number for m in plan.rounds[1]] == [1, 2]
        assert plan.final.court_number == 1

    def test_id_factory(self):
        counter = iter(range(100))
        plan = BracketBuilder(random.Random(1), id_factory=lambda: f'm{next(counter)}').build(
            team_ids(4), number_of_courts=2)
        assert [m.id for m in plan] == ['m0', 'm1', 'm2']

    def test_two_teams_is_a_final(self):
        plan = BracketBuilder(random.Random(1)).build(team_ids(2), number_of_courts=1)
        assert len(list(plan)) == 1
        assert {plan.final.team1_id, plan.final.team2_id} == {'seed1', 'seed2'}

    def test_shuffle_all_moves_byes(self):
        """Without seeding, byes do not always land on the first teams."""
        bye_holders = set()
        for seed in range(20):
            plan = BracketBuilder(random.Random(seed)).build(team_ids(3), number_of_courts=2, shuffle_all=True)
            bye_holders.add(plan.rounds[0][0].team1_id)
        assert len(bye_holders) > 1

    def test_every_team_placed_once(self):
        plan = BracketBuilder(random.Random(4)).build(team_ids(13), number_of_courts=8)
        placed = [t for m in plan.rounds[0] for t in (m.team1_id, m.team2_id) if t]
        assert sorted(placed) == sorted(team_ids(13))
