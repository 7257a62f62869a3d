from __future__ import annotations

import numpy as np
import pandas as pd

from ._check import RefutationCheck, RefutationReport
from .._exceptions import FittingError
from ..effects import weighted_effect
from ..propensity import iptw_weights, propensity_scores

_RCC_SEED     = 54321
_PLACEBO_SEED = 99999
_RCC_COL      = "_rcc"


def _iptw_effect(
    data: pd.DataFrame,
    treatment: str,
    outcome: str,
    confounders: list[str],
) -> float:
    ps = propensity_scores(data, treatment, confounders)
    t  = data[treatment].values.astype(float)
    return weighted_effect(data[outcome].values, t, iptw_weights(t, ps))


def _check_placebo_treatment(
    data: pd.DataFrame,
    treatment: str,
    outcome: str,
    confounders: list[str],
    original_se: float,
) -> RefutationCheck:
    """
    Permute treatment labels and re-run the weighting.

    A permuted treatment has no effect by construction, so the placebo
    estimate should lie within one standard error of zero.
    """
    rng = np.random.default_rng(_PLACEBO_SEED)
    augmented = data.assign(**{treatment: rng.permutation(data[treatment].values)})

    try:
        placebo = _iptw_effect(augmented, treatment, outcome, confounders)
    except FittingError:
        return RefutationCheck(
            name="Placebo treatment",
            passed=False,
            detail="Propensity model failed on permuted treatment, check data quality.",
        )

    passed = bool(abs(placebo) <= original_se)
    if passed:
        detail = (
            f"placebo effect = {placebo:.4f}  (≤ 1 SE = {original_se:.4f})  "
            f"Permuting treatment labels yields a near-zero effect, as expected."
        )
    else:
        detail = (
            f"placebo effect = {placebo:.4f}  (> 1 SE = {original_se:.4f})  "
            f"A randomly permuted treatment produced a large effect; the original "
            f"result may be driven by residual confounding or extreme weights."
        )
    return RefutationCheck(name="Placebo treatment", passed=passed, detail=detail, statistic=placebo)


def _check_random_common_cause(
    data: pd.DataFrame,
    treatment: str,
    outcome: str,
    confounders: list[str],
    original_effect: float,
    original_se: float,
) -> RefutationCheck:
    """
    Add a pure-noise covariate to the propensity model and re-run the
    weighting. The effect should move by at most one standard error.
    """
    rng = np.random.default_rng(_RCC_SEED)

    col = _RCC_COL
    while col in data.columns:
        col = "_" + col
    augmented = data.assign(**{col: rng.normal(size=len(data))})

    try:
        new_effect = _iptw_effect(augmented, treatment, outcome, [*confounders, col])
    except FittingError:
        return RefutationCheck(
            name="Random common cause",
            passed=False,
            detail="Propensity model failed after adding a random covariate, check data quality.",
        )

    shift = abs(new_effect - original_effect)
    passed = bool(shift <= original_se)
    if passed:
        detail = f"estimate shifted by {shift:.4f}  (≤ 1 SE = {original_se:.4f})"
    else:
        detail = (
            f"estimate shifted by {shift:.4f}  (> 1 SE = {original_se:.4f})  "
            f"Adding a random common cause destabilised the weighted estimate."
        )
    return RefutationCheck(name="Random common cause", passed=passed, detail=detail, statistic=shift)


class IPTWRefutationReport(RefutationReport):
    """
    Refutation checks run against an IPTW estimation.

    Obtain via ``IPTWResult.refute(data)``.
    """

    def _header_lines(self) -> list[str]:
        return [f"IPTW Refutation Report: {self._treatment} → {self._outcome}"]
