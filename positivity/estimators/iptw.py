from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
import pandas as pd

from .._exceptions import FittingError
from ..config import BOOTSTRAP_N, BOOTSTRAP_SEED, FITTED_COL, POPULATION_COL, WEIGHT_COL
from ..effects import effect_table, unweighted_effect, weighted_effect
from ..propensity import iptw_weights, propensity_scores
from ..refutations._check import Assumption

logger = logging.getLogger(__name__)

IPTW_ASSUMPTIONS: list[Assumption] = [
    Assumption("Conditional exchangeability: no unobserved confounders given the propensity model covariates", testable=False),
    Assumption("Positivity: every unit has a non-zero probability of each exposure level", testable=True),
    Assumption("Correct specification of the propensity score model", testable=False),
    Assumption("Stable Unit Treatment Value Assumption (SUTVA)", testable=False),
]


# ── Result ─────────────────────────────────────────────────────────────────────

class IPTWResult:
    """
    The result of an inverse probability of treatment weighting estimation.

    Holds the weighted ATE alongside the naive mean difference, plus the
    propensity scores and weights behind it. Standard errors and CIs come
    from a bootstrap that refits the propensity model on every resample.
    """

    def __init__(
        self,
        effect: float,
        unadjusted_effect: float,
        propensity_scores: np.ndarray,
        weights: np.ndarray,
        bootstrap_effects: np.ndarray,
        treatment: str,
        outcome: str,
        confounders: list[str],
    ) -> None:
        self._effect = effect
        self._unadjusted_effect = unadjusted_effect
        self._ps = propensity_scores
        self._weights = weights
        self._bootstrap_effects = bootstrap_effects
        self._treatment = treatment
        self._outcome = outcome
        self._confounders = confounders

    @property
    def effect(self) -> float:
        """Weighted ATE: average treatment effect under IPTW."""
        return self._effect

    @property
    def unadjusted_effect(self) -> float:
        """Naive mean difference Y|T=1 minus Y|T=0, no weighting."""
        return self._unadjusted_effect

    @property
    def std_err(self) -> float:
        """Bootstrap standard error of the weighted ATE."""
        if len(self._bootstrap_effects) < 2:
            return float("nan")
        return float(np.std(self._bootstrap_effects, ddof=1))

    @property
    def conf_int(self) -> tuple[float, float]:
        """Bootstrap percentile 95% confidence interval."""
        if len(self._bootstrap_effects) == 0:
            return (float("nan"), float("nan"))
        return (
            float(np.percentile(self._bootstrap_effects, 2.5)),
            float(np.percentile(self._bootstrap_effects, 97.5)),
        )

    @property
    def pvalue(self) -> float:
        """Two-sided p-value for the ATE (``H0: ATE = 0``), via z-test."""
        import scipy.stats as _st
        z = abs(self._effect) / self.std_err
        return float(2.0 * _st.norm.sf(z))

    @property
    def confounders(self) -> list[str]:
        """Covariates in the propensity score model."""
        return list(self._confounders)

    @property
    def propensity_scores(self) -> np.ndarray:
        """Fitted probability of treatment for each unit."""
        return self._ps.copy()

    @property
    def weights(self) -> np.ndarray:
        """ATE weights: ``1/ps`` for treated units, ``1/(1-ps)`` for controls."""
        return self._weights.copy()

    @property
    def bootstrap_effects(self) -> np.ndarray:
        """Per-replicate weighted ATEs, for diagnostics."""
        return self._bootstrap_effects.copy()

    @property
    def assumptions(self) -> list[Assumption]:
        """Modelling assumptions required for a causal interpretation."""
        return list(IPTW_ASSUMPTIONS)

    def _check_aligned(self, data: pd.DataFrame) -> None:
        if len(data) != len(self._ps):
            raise ValueError(
                f"Dataframe has {len(data)} rows but the estimation used "
                f"{len(self._ps)}. Pass the same dataframe given to fit()."
            )

    def augment(self, data: pd.DataFrame) -> pd.DataFrame:
        """Copy of ``data`` with ``fitted`` and ``weight`` columns added."""
        self._check_aligned(data)
        return data.assign(**{FITTED_COL: self._ps, WEIGHT_COL: self._weights})

    def stratify(self, data: pd.DataFrame, by: str = POPULATION_COL) -> pd.DataFrame:
        """
        Unweighted and weighted effects within each stratum of ``by``.

        Weights come from the pooled propensity model; they are not refitted
        per stratum. Strata lacking treated or control units get ``nan``.
        """
        return effect_table(
            self.augment(data), self._treatment, self._outcome, WEIGHT_COL, by=by,
        )

    def summary(self) -> str:
        lo, hi = self.conf_int
        bias = self.unadjusted_effect - self.effect
        conf = ", ".join(self._confounders)

        lines = [
            "",
            f"IPTW Causal Effect: {self._treatment} → {self._outcome}",
            f"  Estimand: ATE (average treatment effect)",
            "─" * 54,
        ]

        if self._confounders:
            lines += [
                f"  ATE estimate         : {self.effect:>10.4f}  (weighting on: {conf})",
                f"  Unadjusted estimate  : {self.unadjusted_effect:>10.4f}  (naive mean difference)",
                f"  Confounding bias     : {bias:>+10.4f}",
            ]
        else:
            lines += [
                f"  ATE estimate         : {self.effect:>10.4f}  (no confounders in model)",
            ]

        lines += [
            "",
            f"  Std. error           : {self.std_err:>10.4f}  (bootstrap, N={len(self._bootstrap_effects)})",
            f"  95% CI               : [{lo:.4f}, {hi:.4f}]  (bootstrap percentile)",
            f"  p-value              : {self.pvalue:>10.4f}",
            "",
            f"  Propensity scores    : [{self._ps.min():.4f}, {self._ps.max():.4f}]",
            f"  Max weight           : {self._weights.max():>10.4f}",
            "",
            "  Assumptions",
            "  " + "┄" * 48,
        ]
        for a in IPTW_ASSUMPTIONS:
            lines.append(f"  {a.fmt_tag()}  {a.name}")
        lines.append("")
        return "\n".join(lines)

    def diagnose(self, data: pd.DataFrame, by: str | None = None):
        """
        Run positivity diagnostics on the fitted propensity scores.

        - **Common support**: no score outside the overlap bounds.
        - **Extreme weights**: no weight above the configured maximum.
        - **Stratum support** (only with ``by``): every stratum has both
          treated and control units.

        Parameters
        ----------
        data : pd.DataFrame
            The same dataframe passed to ``fit()``.
        by : str or None
            Optional stratifying column.
        """
        from ..refutations.positivity import (
            PositivityReport,
            _check_common_support,
            _check_extreme_weights,
            _check_stratum_support,
        )
        self._check_aligned(data)
        t = data[self._treatment].values.astype(float)
        checks = [
            _check_common_support(self._ps, t),
            _check_extreme_weights(self._weights),
        ]
        if by is not None:
            checks.append(_check_stratum_support(data, self._treatment, by))
        return PositivityReport(checks=checks, treatment=self._treatment, outcome=self._outcome)

    def refute(self, data: pd.DataFrame):
        """
        Run refutation checks against this estimation.

        - **Placebo treatment**: permutes treatment labels and re-runs the
          weighting. The placebo effect should be near zero.
        - **Random common cause**: adds a noise covariate to the propensity
          model and checks that the effect is stable.

        Parameters
        ----------
        data : pd.DataFrame
            The same dataframe passed to ``fit()``.

        Raises
        ------
        ``ValueError``
            If the bootstrap standard error is undefined, e.g. after
            ``fit(..., n_bootstrap=0)``. Both checks are judged against it.
        """
        if not np.isfinite(self.std_err):
            raise ValueError(
                "Refutation checks compare against the bootstrap standard error, "
                "which is undefined for this fit. Re-fit with n_bootstrap > 0."
            )
        from ..refutations.iptw import (
            IPTWRefutationReport,
            _check_placebo_treatment,
            _check_random_common_cause,
        )
        checks = [
            _check_placebo_treatment(
                data, self._treatment, self._outcome, self._confounders, self.std_err,
            ),
            _check_random_common_cause(
                data, self._treatment, self._outcome, self._confounders,
                self.effect, self.std_err,
            ),
        ]
        return IPTWRefutationReport(checks=checks, treatment=self._treatment, outcome=self._outcome)

    def __repr__(self) -> str:
        return self.summary()


# ── Estimator ──────────────────────────────────────────────────────────────────

class IPTW:
    """
    Observational estimator using inverse probability of treatment weighting.

    1. Estimates propensity scores via logistic regression of treatment on
       the confounders.
    2. Weights treated units by ``1/ps`` and controls by ``1/(1-ps)``.
    3. Estimates the ATE as the difference in weighted outcome means.
    4. Computes standard errors via bootstrap over the full procedure.

    Requires **binary treatment** (0/1). Positivity violations are not
    corrected; use ``IPTWResult.diagnose()`` and ``IPTWResult.stratify()``
    to expose them.

    Example::

        df = simulate(n=100, seed=5)
        result = IPTW(treatment="x", outcome="y", confounders=["z"]).fit(df)
        print(result.summary())
        print(result.stratify(df, by="in_population"))
    """

    def __init__(self, treatment: str, outcome: str, confounders: Iterable[str] = ()) -> None:
        self._treatment = treatment
        self._outcome = outcome
        if isinstance(confounders, str):
            raise ValueError(
                f"Confounders must be a list of column names, got the string {confounders!r}. "
                f"Use confounders=[{confounders!r}]."
            )
        self._confounders = sorted(confounders)
        self._validate_inputs()

    def _validate_inputs(self) -> None:
        for label, var in [("Treatment", self._treatment), ("Outcome", self._outcome)]:
            if not var:
                raise ValueError(f"{label} column name must be a non-empty string.")
        if self._treatment == self._outcome:
            raise ValueError("Treatment and outcome must be different variables.")
        overlap = {self._treatment, self._outcome} & set(self._confounders)
        if overlap:
            raise ValueError(
                f"Treatment and outcome cannot also be confounders: {sorted(overlap)}"
            )

    def fit(self, data: pd.DataFrame, n_bootstrap: int = BOOTSTRAP_N) -> IPTWResult:
        """
        Fit the propensity model, weight, and estimate the ATE.

        Parameters
        ----------
        data : pd.DataFrame
            Must contain a binary (0/1) treatment column, an outcome column
            and every confounder.
        n_bootstrap : int
            Number of bootstrap replicates for the standard error. ``0``
            skips the bootstrap (``std_err`` is then ``nan``).

        Raises
        ------
        ``FittingError``
            If the propensity model cannot be fitted on the full data.
        ``ValueError``
            If columns are missing, or treatment is not binary with both
            classes present.
        """
        T, Y = self._treatment, self._outcome
        data_columns = set(data.columns)

        for label, var in [("Treatment", T), ("Outcome", Y)]:
            if var not in data_columns:
                raise ValueError(f"{label} column '{var}' not found in dataframe.")
        missing = [c for c in self._confounders if c not in data_columns]
        if missing:
            raise ValueError(f"Confounder columns not found in dataframe: {missing}")

        t_vals = set(data[T].dropna().unique())
        if not t_vals <= {0, 1}:
            raise ValueError(
                f"Treatment '{T}' must be binary (0/1). Found values: {sorted(t_vals)}"
            )
        if t_vals != {0, 1}:
            raise ValueError(
                f"Treatment '{T}' must contain both 0 and 1. Found only: {sorted(t_vals)}"
            )

        T_arr = data[T].values.astype(float)
        Y_arr = data[Y].values.astype(float)

        ps = propensity_scores(data, T, self._confounders)
        w  = iptw_weights(T_arr, ps)
        effect     = weighted_effect(Y_arr, T_arr, w)
        unadjusted = unweighted_effect(Y_arr, T_arr)

        rng     = np.random.default_rng(BOOTSTRAP_SEED)
        n       = len(data)
        ps_data = data[sorted({T} | set(self._confounders))]
        boot    = []
        skipped = 0
        for _ in range(n_bootstrap):
            idx = rng.integers(0, n, size=n)
            bd  = ps_data.iloc[idx].reset_index(drop=True)
            try:
                bps = propensity_scores(bd, T, self._confounders)
            except FittingError:
                skipped += 1
                continue
            b_effect = weighted_effect(Y_arr[idx], T_arr[idx], iptw_weights(T_arr[idx], bps))
            if np.isfinite(b_effect):
                boot.append(b_effect)
            else:
                skipped += 1
        if skipped:
            logger.warning(
                "Skipped %d of %d bootstrap replicates (degenerate resample or failed fit)",
                skipped, n_bootstrap,
            )

        logger.debug("IPTW %s → %s: effect=%.4f, unadjusted=%.4f", T, Y, effect, unadjusted)
        return IPTWResult(
            effect=effect,
            unadjusted_effect=unadjusted,
            propensity_scores=ps,
            weights=w,
            bootstrap_effects=np.array(boot),
            treatment=T,
            outcome=Y,
            confounders=list(self._confounders),
        )
