import numpy as np
import pandas as pd
import pytest

from positivity import FittingError, iptw_weights, propensity_scores, simulate


def make_data():
    """Fixed seed so every call returns the same dataframe."""
    return simulate(n=500, seed=1)


def make_separated_data():
    """Treatment is a deterministic function of z: perfect separation."""
    z = np.concatenate([np.linspace(-3, -1, 30), np.linspace(1, 3, 30)])
    return pd.DataFrame({"z": z, "x": (z > 0).astype(float)})


class TestPropensityScores:
    def test_scores_strictly_interior(self):
        ps = propensity_scores(make_data(), "x", ["z"])
        assert np.all((ps > 0) & (ps < 1))

    def test_one_score_per_row(self):
        df = make_data()
        ps = propensity_scores(df, "x", ["z"])
        assert ps.shape == (len(df),)

    def test_interior_even_where_true_probability_is_zero(self):
        df = make_data()
        ps = propensity_scores(df, "x", ["z"])
        ineligible = df["x_prob"].values == 0.0
        assert ineligible.any()
        assert np.all(ps[ineligible] > 0)

    def test_intercept_only_gives_base_rate(self):
        df = make_data()
        ps = propensity_scores(df, "x")
        np.testing.assert_allclose(ps, df["x"].mean(), rtol=1e-6)

    def test_perfect_separation_raises_fitting_error(self):
        with pytest.raises(FittingError):
            propensity_scores(make_separated_data(), "x", ["z"])

    def test_missing_column_raises(self):
        with pytest.raises(ValueError, match="not found"):
            propensity_scores(make_data(), "x", ["age"])


class TestIPTWWeights:
    def test_treated_and_control_weights(self):
        t  = np.array([1.0, 1.0, 0.0, 0.0])
        ps = np.array([0.25, 0.5, 0.5, 0.75])
        np.testing.assert_allclose(iptw_weights(t, ps), [4.0, 2.0, 2.0, 4.0])

    def test_weights_positive_and_finite(self):
        df = make_data()
        ps = propensity_scores(df, "x", ["z"])
        w  = iptw_weights(df["x"].values, ps)
        assert np.all(w > 0)
        assert np.all(np.isfinite(w))

    def test_boundary_score_raises(self):
        with pytest.raises(ValueError, match="strictly between"):
            iptw_weights(np.array([1.0, 0.0]), np.array([1.0, 0.5]))

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError, match="shape"):
            iptw_weights(np.array([1.0, 0.0]), np.array([0.5]))


class _NonConvergedFit:
    mle_retvals = {"converged": False}

    def predict(self):
        return np.full(3, 0.5)


class _NonConvergedModel:
    def fit(self, disp=0):
        return _NonConvergedFit()


class TestPropensityFitFailures:
    def test_non_converged_fit_raises(self, monkeypatch):
        import positivity.propensity as propensity_module
        monkeypatch.setattr(
            propensity_module.smf, "logit", lambda formula, data: _NonConvergedModel(),
        )
        df = pd.DataFrame({"x": [0.0, 1.0, 0.0], "z": [0.1, 0.2, 0.3]})
        with pytest.raises(FittingError, match="did not converge"):
            propensity_scores(df, "x", ["z"])

    def test_string_covariates_raise(self):
        with pytest.raises(ValueError, match="list of column names"):
            propensity_scores(make_data(), "x", "z")
