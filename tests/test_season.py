"""
Tests for fixtures, seasons and the season evolver.
"""

import dataclasses

import numpy as np
import pytest

from league_simulator.errors import ConfigurationError, ValidationError
from league_simulator.models import EloMatchModel
from league_simulator.season import (
    Adjustments,
    Fixture,
    Season,
    Team,
    adjustment_vectors,
    evolve_batch,
    evolve_season,
    validate_elo,
)


class TestFixture:
    """Tests for Fixture."""

    def test_unplayed_by_default(self):
        """A fixture without goals is unplayed."""
        assert not Fixture(0, 1).is_played

    def test_played(self):
        """A fixture with both goals is played."""
        fx = Fixture(0, 1, 2, 0)
        assert fx.is_played
        assert (fx.home_goals, fx.away_goals) == (2, 0)

    def test_whole_float_goals_are_accepted(self):
        """Goals read as floats are stored as ints."""
        fx = Fixture(0, 1, 2.0, 1.0)
        assert fx.home_goals == 2
        assert isinstance(fx.home_goals, int)

    def test_half_set_scoreline_raises(self):
        """Only one side's goals is an error."""
        with pytest.raises(ValidationError, match="only one side"):
            Fixture(0, 1, 2, None)

    def test_negative_goals_raise(self):
        """Goals cannot be negative."""
        with pytest.raises(ValidationError, match="non-negative"):
            Fixture(0, 1, -1, 0)

    @pytest.mark.parametrize("bad", [1.5, float("nan"), "2", True])
    def test_non_integer_goals_raise(self, bad):
        """Fractional, NaN, string and bool goals are rejected."""
        with pytest.raises(ValidationError):
            Fixture(0, 1, bad, 0)

    def test_resolved_returns_copy(self):
        """resolved() returns a new fixture and leaves this one unplayed."""
        fx = Fixture(0, 1)
        done = fx.resolved(1, 1)
        assert done.is_played
        assert not fx.is_played


class TestSeason:
    """Tests for Season."""

    def test_counts(self, half_season):
        """Played and unplayed fixtures are split correctly."""
        assert len(half_season) == 12
        assert len(half_season.played) == 6
        assert len(half_season.unplayed) == 6
        assert half_season.n_unplayed == 6
        assert not half_season.is_complete

    def test_complete(self, completed_season):
        """A fully played season is complete."""
        assert completed_season.is_complete

    def test_unknown_team_index_raises(self):
        """Fixtures must reference teams of the league."""
        with pytest.raises(ConfigurationError, match="unknown team index"):
            Season((Fixture(0, 4),), 4)

    def test_team_cannot_play_itself(self):
        """Home and away team must differ."""
        with pytest.raises(ConfigurationError, match="playing itself"):
            Season((Fixture(2, 2),), 4)

    def test_non_positive_team_count_raises(self):
        """A league needs at least one team."""
        with pytest.raises(ConfigurationError):
            Season((), 0)

    def test_from_pairs(self):
        """Tuples of two or four fields build fixtures."""
        season = Season.from_pairs([(0, 1, 2, 1), (1, 0)], 2)
        assert season.fixtures[0].is_played
        assert not season.fixtures[1].is_played

    def test_index_arrays(self, completed_season):
        """home_index/away_index follow fixture order."""
        assert completed_season.home_index.tolist()[:3] == [0, 2, 0]
        assert completed_season.away_index.tolist()[:3] == [1, 3, 2]


class TestValidateElo:
    """Tests for validate_elo."""

    def test_length_mismatch(self):
        """One ELO value per team is required."""
        with pytest.raises(ConfigurationError):
            validate_elo([1500.0, 1400.0], 3)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), -float("inf")])
    def test_non_finite(self, bad):
        """NaN and infinite ratings are rejected."""
        with pytest.raises(ValidationError):
            validate_elo([1500.0, bad], 2)


class TestTeam:
    """Tests for Team."""

    def test_is_immutable(self):
        """Teams cannot be changed after creation."""
        team = Team(0, "Aachen", 1500.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            team.elo = 1600.0


class TestAdjustmentVectors:
    """Tests for adjustment_vectors."""

    def test_builds_keyword_arguments(self):
        """Per-team adjustments become four vectors."""
        teams = [
            Team(0, "A", 1500.0),
            Team(1, "B2", 1400.0, Adjustments(points=-50, goals=1, goals_against=2, goal_diff=-1)),
        ]
        vectors = adjustment_vectors(teams)
        assert vectors == {
            "adj_points": [0, -50],
            "adj_goals": [0, 1],
            "adj_goals_against": [0, 2],
            "adj_goal_diff": [0, -1],
        }


class TestEvolveSeason:
    """Tests for evolve_season and evolve_batch."""

    def test_replays_in_order(self, completed_season, elo_values):
        """Each fixture sees the ratings left by the ones before it."""
        model = EloMatchModel()
        resolved, final = evolve_season(completed_season, elo_values, model)

        elo = list(elo_values)
        for fx in completed_season.fixtures:
            out = model.play(elo[fx.home_team], elo[fx.away_team], fx.home_goals, fx.away_goals)
            elo[fx.home_team] = out.home_elo
            elo[fx.away_team] = out.away_elo

        np.testing.assert_allclose(final, elo)
        assert resolved == completed_season

    def test_elo_sum_is_preserved(self, half_season, elo_values):
        """Simulated and replayed matches only move points between teams."""
        _, final = evolve_season(half_season, elo_values, rng=np.random.default_rng(3))
        assert final.sum() == pytest.approx(sum(elo_values), abs=1e-9)

    def test_inputs_not_modified(self, half_season, elo_values):
        """The season and the ELO list are left alone."""
        elo_before = list(elo_values)
        evolve_season(half_season, elo_values, rng=np.random.default_rng(1))
        assert elo_values == elo_before
        assert half_season.n_unplayed == 6

    def test_every_fixture_resolved(self, open_season, elo_values):
        """All unplayed fixtures get a scoreline."""
        resolved, _ = evolve_season(open_season, elo_values, rng=np.random.default_rng(0))
        assert resolved.is_complete
        assert all(fx.home_goals >= 0 and fx.away_goals >= 0 for fx in resolved.fixtures)

    def test_played_results_kept(self, half_season, elo_values):
        """Known results are never overwritten."""
        resolved, _ = evolve_season(half_season, elo_values, rng=np.random.default_rng(0))
        assert resolved.fixtures[:6] == half_season.fixtures[:6]

    def test_zero_draws_give_goalless_matches(self, half_season, elo_values):
        """u == 0 always maps to zero goals."""
        resolved, _ = evolve_season(half_season, elo_values, uniforms=np.zeros((6, 2)))
        assert all((fx.home_goals, fx.away_goals) == (0, 0) for fx in resolved.fixtures[6:])

    def test_same_rng_seed_same_season(self, open_season, elo_values):
        """Two runs from identically seeded generators agree."""
        a, elo_a = evolve_season(open_season, elo_values, rng=np.random.default_rng(42))
        b, elo_b = evolve_season(open_season, elo_values, rng=np.random.default_rng(42))
        assert a == b
        np.testing.assert_array_equal(elo_a, elo_b)

    def test_batch_shapes(self, half_season, elo_values):
        """Batch output has one row per replication."""
        uniforms = np.random.default_rng(0).random((5, 6, 2))
        hg, ag, elo = evolve_batch(half_season, elo_values, EloMatchModel(), uniforms)
        assert hg.shape == (5, 12)
        assert ag.shape == (5, 12)
        assert elo.shape == (5, 4)
        np.testing.assert_allclose(elo.sum(axis=1), sum(elo_values))

    def test_batch_rows_match_single_runs(self, half_season, elo_values):
        """Row r of a batch is the single-season run with the same draws."""
        model = EloMatchModel()
        uniforms = np.random.default_rng(9).random((3, 6, 2))
        hg, ag, elo = evolve_batch(half_season, elo_values, model, uniforms)

        for r in range(3):
            resolved, final = evolve_season(half_season, elo_values, model, uniforms=uniforms[r])
            assert [fx.home_goals for fx in resolved.fixtures] == hg[r].tolist()
            assert [fx.away_goals for fx in resolved.fixtures] == ag[r].tolist()
            np.testing.assert_allclose(final, elo[r])

    def test_batch_requires_draws_for_unplayed(self, half_season, elo_values):
        """Without uniforms only complete seasons can be evolved."""
        with pytest.raises(ConfigurationError, match="random draws"):
            evolve_batch(half_season, elo_values, EloMatchModel())

    def test_batch_rejects_wrong_uniform_shape(self, half_season, elo_values):
        """The draw array must match the unplayed fixture count."""
        with pytest.raises(ConfigurationError, match="uniforms must be shaped"):
            evolve_batch(half_season, elo_values, EloMatchModel(), np.zeros((2, 5, 2)))

    def test_empty_season(self, empty_season, elo_values):
        """No fixtures, no change."""
        resolved, final = evolve_season(empty_season, elo_values)
        assert len(resolved) == 0
        np.testing.assert_array_equal(final, elo_values)
