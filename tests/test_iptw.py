import logging

import numpy as np
import pandas as pd
import pytest

from positivity import IPTW, IPTWResult, simulate


def make_data(n=1_000, seed=5):
    """Fixed seed so every call returns the same dataframe."""
    return simulate(n=n, seed=seed)


def make_estimator():
    return IPTW(treatment="x", outcome="y", confounders=["z"])


class TestIPTWValidation:
    """Input validation: everything raises before any model is fitted."""

    def test_treatment_equals_outcome_raises(self):
        with pytest.raises(ValueError, match="different"):
            IPTW(treatment="x", outcome="x", confounders=["z"])

    def test_treatment_as_confounder_raises(self):
        with pytest.raises(ValueError, match="confounders"):
            IPTW(treatment="x", outcome="y", confounders=["x", "z"])

    def test_empty_name_raises(self):
        with pytest.raises(ValueError, match="Treatment"):
            IPTW(treatment="", outcome="y")

    def test_missing_treatment_column_raises(self):
        df = make_data().drop(columns=["x"])
        with pytest.raises(ValueError, match="Treatment"):
            make_estimator().fit(df, n_bootstrap=0)

    def test_missing_outcome_column_raises(self):
        df = make_data().drop(columns=["y"])
        with pytest.raises(ValueError, match="Outcome"):
            make_estimator().fit(df, n_bootstrap=0)

    def test_missing_confounder_column_raises(self):
        df = make_data().drop(columns=["z"])
        with pytest.raises(ValueError, match="Confounder"):
            make_estimator().fit(df, n_bootstrap=0)

    def test_non_binary_treatment_raises(self):
        df = make_data()
        df["x"] = df["x"] * 3 + 1  # values 1 and 4
        with pytest.raises(ValueError, match="binary"):
            make_estimator().fit(df, n_bootstrap=0)

    def test_only_controls_raises(self):
        df = make_data()
        df["x"] = 0.0
        with pytest.raises(ValueError, match="both 0 and 1"):
            make_estimator().fit(df, n_bootstrap=0)


class TestIPTWEstimation:
    """Fit once per class so the bootstrap runs only once."""

    @classmethod
    def setup_class(cls):
        cls.df     = make_data()
        cls.result = make_estimator().fit(cls.df, n_bootstrap=200)

    def test_returns_iptw_result(self):
        assert isinstance(self.result, IPTWResult)

    def test_effect_is_finite(self):
        assert np.isfinite(self.result.effect)
        assert np.isfinite(self.result.unadjusted_effect)

    def test_weighted_differs_from_unweighted(self):
        assert self.result.effect != pytest.approx(self.result.unadjusted_effect)

    def test_propensity_scores_strictly_interior(self):
        ps = self.result.propensity_scores
        assert len(ps) == len(self.df)
        assert np.all((ps > 0) & (ps < 1))

    def test_weights_match_definition(self):
        t  = self.df["x"].values
        ps = self.result.propensity_scores
        np.testing.assert_allclose(self.result.weights, t / ps + (1 - t) / (1 - ps))

    def test_weights_positive_and_finite(self):
        w = self.result.weights
        assert np.all(w > 0)
        assert np.all(np.isfinite(w))

    def test_std_err_positive(self):
        assert self.result.std_err > 0

    def test_conf_int_is_ordered(self):
        lo, hi = self.result.conf_int
        assert lo < hi

    def test_pvalue_in_unit_interval(self):
        assert 0 <= self.result.pvalue <= 1

    def test_confounders(self):
        assert self.result.confounders == ["z"]

    def test_bootstrap_effects_returns_copy(self):
        boot = self.result.bootstrap_effects
        first = boot[0]
        boot[:] = 0
        assert self.result.bootstrap_effects[0] == first

    def test_weights_returns_copy(self):
        w = self.result.weights
        w[:] = 0
        assert np.all(self.result.weights > 0)

    def test_positivity_is_the_testable_assumption(self):
        testable = [a.name for a in self.result.assumptions if a.testable]
        assert len(testable) == 1
        assert testable[0].startswith("Positivity")


class TestIPTWStratification:
    @classmethod
    def setup_class(cls):
        cls.df     = make_data()
        cls.result = make_estimator().fit(cls.df, n_bootstrap=0)
        cls.table  = cls.result.stratify(cls.df, by="in_population")

    def test_augment_adds_columns_without_mutating(self):
        augmented = self.result.augment(self.df)
        assert {"fitted", "weight"} <= set(augmented.columns)
        assert "fitted" not in self.df.columns

    def test_augment_rejects_other_frame(self):
        with pytest.raises(ValueError, match="rows"):
            self.result.augment(self.df.iloc[:10])

    def test_strata(self):
        assert list(self.table.index) == [0, 1]
        assert self.table["n"].sum() == len(self.df)

    def test_ineligible_stratum_has_no_comparison(self):
        row = self.table.loc[0]
        assert row["n_treated"] == 0
        assert np.isnan(row["unweighted_effect"])
        assert np.isnan(row["weighted_effect"])

    def test_eligible_stratum_is_finite(self):
        row = self.table.loc[1]
        assert np.isfinite(row["unweighted_effect"])
        assert np.isfinite(row["weighted_effect"])

    def test_no_bootstrap_gives_nan_std_err(self):
        assert np.isnan(self.result.std_err)


class TestPositivityBias:
    """The pooled estimates are pulled down by units that can never be treated."""

    @classmethod
    def setup_class(cls):
        cls.df     = make_data(n=5_000, seed=5)
        cls.result = make_estimator().fit(cls.df, n_bootstrap=0)
        cls.table  = cls.result.stratify(cls.df)

    def test_unweighted_rises_in_eligible_population(self):
        assert self.table.loc[1, "unweighted_effect"] > self.result.unadjusted_effect

    def test_weighted_rises_in_eligible_population(self):
        assert self.table.loc[1, "weighted_effect"] > self.result.effect


class TestIPTWResultSummary:
    @classmethod
    def setup_class(cls):
        cls.result = make_estimator().fit(make_data(), n_bootstrap=50)

    def test_summary_contents(self):
        summary = self.result.summary()
        assert "ATE" in summary
        assert "x → y" in summary
        assert "Positivity" in summary

    def test_repr_is_summary(self):
        assert repr(self.result) == self.result.summary()


class TestIPTWNoConfounders:
    def test_intercept_only_equals_unweighted(self):
        rng = np.random.default_rng(7)
        n = 200
        x = rng.choice([0, 1], size=n).astype(float)
        y = 1.5 * x + rng.normal(size=n)
        df = pd.DataFrame({"x": x, "y": y})
        result = IPTW(treatment="x", outcome="y").fit(df, n_bootstrap=0)
        # Constant scores give constant weights within each group.
        assert result.effect == pytest.approx(result.unadjusted_effect)
        assert result.confounders == []


class TestIPTWInputShapes:
    def test_string_confounders_raise(self):
        with pytest.raises(ValueError, match="list of column names"):
            IPTW(treatment="x", outcome="y", confounders="age")


class TestIPTWSkippedReplicates:
    def test_failed_resamples_are_logged(self, caplog):
        # A single treated unit in the middle of z: the full fit is fine, but
        # about a third of resamples contain no treated unit at all.
        z = np.linspace(-2, 2, 30)
        x = np.zeros(30)
        x[15] = 1.0
        df = pd.DataFrame({"z": z, "x": x, "y": z + x})
        with caplog.at_level(logging.WARNING, logger="positivity.estimators.iptw"):
            result = make_estimator().fit(df, n_bootstrap=20)
        assert "Skipped" in caplog.text
        assert len(result.bootstrap_effects) < 20
