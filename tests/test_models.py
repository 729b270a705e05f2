"""
Tests for the ELO match model.
"""

import math

import numpy as np
import pytest

from league_simulator.models import (
    EloMatchModel,
    elo_probability,
    elo_update,
    expected_goals,
    poisson_quantile,
)


@pytest.fixture
def model():
    """Model with the default parameters."""
    return EloMatchModel()


def _prob(raw_delta):
    capped = max(-400.0, min(400.0, raw_delta))
    return 1.0 / (1.0 + 10 ** (-capped / 400.0))


class TestPoissonQuantile:
    """Tests for poisson_quantile."""

    def test_just_below_cdf_of_one(self):
        """CDF(0; 1.5) < 0.557825 <= CDF(1; 1.5), so one goal."""
        assert poisson_quantile(0.557825, 1.5) == 1

    def test_just_below_cdf_of_zero(self):
        """0.223130 <= CDF(0; 1.5) = exp(-1.5), so no goals."""
        assert poisson_quantile(0.223130, 1.5) == 0

    def test_zero_probability_gives_zero_goals(self):
        """p == 0 maps to the bottom of the support, not -1."""
        assert poisson_quantile(0.0, 1.5) == 0

    def test_returns_python_int_for_scalars(self):
        """Scalar input gives a plain int."""
        assert isinstance(poisson_quantile(0.5, 2.0), int)

    def test_monotone_in_probability(self):
        """Quantiles never decrease as p grows."""
        p = np.linspace(0.0, 0.999, 50)
        k = poisson_quantile(p, 1.3)
        assert k.dtype.kind == "i"
        assert np.all(np.diff(k) >= 0)

    def test_vectorised_lambda(self):
        """Larger means give at least as many goals for the same draw."""
        k = poisson_quantile(np.full(3, 0.7), np.array([0.5, 1.5, 3.0]))
        assert list(k) == sorted(k)


class TestEloProbability:
    """Tests for elo_probability."""

    def test_even_match(self):
        """No rating difference means an expected score of one half."""
        assert elo_probability(0.0) == 0.5

    def test_capped_at_400(self):
        """Differences beyond 400 points are treated as 400."""
        assert elo_probability(1000.0) == elo_probability(400.0)
        assert elo_probability(-1000.0) == elo_probability(-400.0)

    def test_strictly_inside_unit_interval(self):
        """Probabilities stay in (0, 1) for any finite input."""
        p = elo_probability(np.array([-1e9, -400.0, -1.0, 0.0, 1.0, 400.0, 1e9]))
        assert np.all(p > 0.0)
        assert np.all(p < 1.0)

    def test_symmetric(self):
        """p(d) + p(-d) == 1."""
        assert elo_probability(137.0) + elo_probability(-137.0) == pytest.approx(1.0)


class TestExpectedGoals:
    """Tests for expected_goals."""

    def test_even_match_uses_intercept(self):
        """Both sides expect the intercept when ratings are level."""
        lam_h, lam_a = expected_goals(0.0, goal_slope=0.002, goal_intercept=1.3)
        assert lam_h == pytest.approx(1.3)
        assert lam_a == pytest.approx(1.3)

    def test_floor(self):
        """Huge mismatches floor the weaker side's mean at 0.001."""
        lam_h, lam_a = expected_goals(1e6)
        assert lam_a == 0.001
        assert lam_h > 1000


class TestEloUpdate:
    """Tests for elo_update and EloMatchModel.play."""

    def test_home_win_by_one(self, model):
        """A one goal home win moves (1 - p) * 20 points."""
        out = model.play(1500.0, 1450.0, 2, 1)
        p = _prob(1500 + 65 - 1450)

        assert out.elo_prob == pytest.approx(p)
        assert out.home_elo == pytest.approx(1500 + (1 - p) * 20)
        assert out.away_elo == pytest.approx(1450 - (1 - p) * 20)
        assert (out.home_goals, out.away_goals) == (2, 1)

    def test_goal_margin_scales_change(self, model):
        """A three goal margin multiplies the change by sqrt(3)."""
        one = model.play(1500.0, 1450.0, 1, 0)
        three = model.play(1500.0, 1450.0, 3, 0)

        assert (three.home_elo - 1500.0) == pytest.approx((one.home_elo - 1500.0) * math.sqrt(3))

    def test_draw_scores_half(self, model):
        """A draw counts as half a win."""
        out = model.play(1500.0, 1500.0, 1, 1)
        p = _prob(65)
        assert out.home_elo == pytest.approx(1500 + (0.5 - p) * 20)

    def test_away_win(self, model):
        """An away win lowers the home rating."""
        out = model.play(1600.0, 1400.0, 0, 2)
        assert out.home_elo < 1600.0
        assert out.away_elo > 1400.0

    def test_pre_update_probability_is_returned(self, model):
        """eloProb is computed before the ratings move."""
        out = model.play(1400.0, 1465.0, 0, 0)
        assert out.elo_prob == 0.5

    @pytest.mark.parametrize(
        "home,away,gh,ga",
        [
            (1500.0, 1450.0, 2, 1),
            (1234.567, 1876.543, 0, 5),
            (1000.1, 1000.2, 3, 3),
            (2100.0, 900.0, 7, 0),
        ],
    )
    def test_zero_sum(self, model, home, away, gh, ga):
        """The two ratings always sum to the same total."""
        out = model.play(home, away, gh, ga)
        assert out.home_elo + out.away_elo == pytest.approx(home + away, abs=1e-9)

    def test_vectorised(self):
        """Arrays of matches update element-wise."""
        home = np.array([1500.0, 1500.0])
        away = np.array([1450.0, 1450.0])
        new_h, new_a, prob = elo_update(home, away, np.array([2, 0]), np.array([1, 0]))

        assert new_h.shape == (2,)
        assert new_h[0] > 1500.0
        assert new_h[1] < 1500.0
        np.testing.assert_allclose(new_h + new_a, home + away)
        np.testing.assert_allclose(prob, _prob(115))


class TestSimulatedMatch:
    """Tests for EloMatchModel.simulate."""

    def test_goals_come_from_quantiles(self, model):
        """Sampled goals are the Poisson quantiles of the two draws."""
        lam_h, lam_a = model.goal_intensity(1500.0, 1450.0)
        out = model.simulate(1500.0, 1450.0, 0.8, 0.3)

        assert out.home_goals == poisson_quantile(0.8, lam_h)
        assert out.away_goals == poisson_quantile(0.3, lam_a)

    def test_simulated_update_matches_played_update(self, model):
        """Once goals are drawn the rating update is the usual one."""
        sim = model.simulate(1500.0, 1450.0, 0.0, 0.0)
        played = model.play(1500.0, 1450.0, 0, 0)

        assert sim == played

    def test_home_advantage_raises_home_mean(self):
        """Home advantage shifts goal expectation towards the home side."""
        lam_h, lam_a = EloMatchModel(home_advantage=65).goal_intensity(1500.0, 1500.0)
        assert lam_h > lam_a


class TestPredictMatch:
    """Tests for EloMatchModel.predict_match."""

    def test_probabilities_sum_to_one(self, model):
        """Home, draw and away probabilities are normalised."""
        pred = model.predict_match(1500.0, 1450.0)
        assert pred["p_home"] + pred["p_draw"] + pred["p_away"] == pytest.approx(1.0)

    def test_stronger_home_side_is_favoured(self, model):
        """The clearly stronger home team is more likely to win."""
        pred = model.predict_match(1700.0, 1300.0)
        assert pred["p_home"] > pred["p_away"]
        assert pred["exp_home_goals"] > pred["exp_away_goals"]
