from __future__ import annotations

import numpy as np
import pandas as pd

from ._check import RefutationCheck, RefutationReport
from ..config import MAX_WEIGHT, OVERLAP_LOWER, OVERLAP_UPPER


def _check_common_support(
    ps: np.ndarray,
    treatment: np.ndarray,
    lower: float = OVERLAP_LOWER,
    upper: float = OVERLAP_UPPER,
) -> RefutationCheck:
    """
    Share of units whose propensity score falls outside ``[lower, upper]``.

    Scores near 0 or 1 mean the model sees almost no chance of the other
    exposure level for those units, which is how positivity violations
    show up in a fitted model.
    """
    ps = np.asarray(ps, dtype=float)
    t  = np.asarray(treatment, dtype=float)
    outside = (ps < lower) | (ps > upper)
    share = float(outside.mean())

    ranges = (
        f"treated PS in [{ps[t == 1].min():.3f}, {ps[t == 1].max():.3f}], "
        f"control PS in [{ps[t == 0].min():.3f}, {ps[t == 0].max():.3f}]"
        if (t == 1).any() and (t == 0).any() else "one exposure group is empty"
    )

    passed = share == 0.0
    if passed:
        detail = f"all scores within [{lower}, {upper}]  ({ranges})"
    else:
        detail = (
            f"{share:.1%} of units ({int(outside.sum())}) have scores outside "
            f"[{lower}, {upper}]  ({ranges})"
        )
    return RefutationCheck(name="Common support", passed=passed, detail=detail, statistic=share)


def _check_extreme_weights(
    weights: np.ndarray,
    max_weight: float = MAX_WEIGHT,
) -> RefutationCheck:
    """
    Largest weight against ``max_weight``.

    A handful of very large weights lets a few units dominate the weighted
    means; the effective sample size is reported alongside.
    """
    w = np.asarray(weights, dtype=float)
    largest = float(w.max())
    ess = float(w.sum() ** 2 / (w ** 2).sum())

    passed = largest <= max_weight
    if passed:
        detail = f"max weight = {largest:.2f}  (≤ {max_weight}), effective N = {ess:.1f} of {len(w)}"
    else:
        detail = (
            f"max weight = {largest:.2f}  (> {max_weight}), effective N = {ess:.1f} of {len(w)}  "
            f"A few units dominate the weighted estimate."
        )
    return RefutationCheck(name="Extreme weights", passed=passed, detail=detail, statistic=largest)


def _check_stratum_support(
    data: pd.DataFrame,
    treatment: str,
    by: str,
) -> RefutationCheck:
    """
    Every stratum of ``by`` must contain both treated and control units.

    A stratum with a single exposure level has no comparison population;
    effects there are undefined rather than biased.
    """
    counts = data.groupby(by, sort=True)[treatment].agg(["sum", "count"])
    single_level = (counts["sum"] == 0) | (counts["sum"] == counts["count"])
    lacking = counts.index[single_level].tolist()

    passed = not lacking
    if passed:
        detail = f"every '{by}' stratum has treated and control units"
    else:
        detail = (
            f"'{by}' strata without both exposure levels: {lacking}  "
            f"Effects in these strata are undefined."
        )
    return RefutationCheck(
        name="Stratum support", passed=passed, detail=detail, statistic=float(len(lacking)),
    )


class PositivityReport(RefutationReport):
    """
    Positivity diagnostics for an IPTW estimation.

    Obtain via ``IPTWResult.diagnose(data)``. Checks common support of the
    propensity scores and the size of the weights; with ``by`` it also
    checks that each stratum contains both exposure levels.

    Example::

        result = IPTW(treatment="x", outcome="y", confounders=["z"]).fit(df)
        report = result.diagnose(df, by="in_population")
        print(report.summary())
    """

    def _header_lines(self) -> list[str]:
        return [f"Positivity Diagnostics: {self._treatment} → {self._outcome}"]
