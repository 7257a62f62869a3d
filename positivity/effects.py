"""
Unweighted and inverse-probability-weighted effect estimates.

Both estimators return ``nan`` when a group has no treated or no control
units. Under a positivity violation this is the expected answer: there is
no comparison population, and reporting 0 would be wrong.
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from .config import OUTCOME_COL, TREATMENT_COL, WEIGHT_COL

_NAN = float("nan")


def unweighted_effect(outcome: np.ndarray, treatment: np.ndarray) -> float:
    """Naive mean difference ``mean(y | x=1) - mean(y | x=0)``."""
    y = np.asarray(outcome, dtype=float)
    t = np.asarray(treatment, dtype=float)
    n_treated = t.sum()
    n_control = (1 - t).sum()
    if n_treated == 0 or n_control == 0:
        return _NAN
    return float((t * y).sum() / n_treated - ((1 - t) * y).sum() / n_control)


def weighted_effect(
    outcome: np.ndarray,
    treatment: np.ndarray,
    weights: np.ndarray,
) -> float:
    """
    Weighted mean difference (Hajek form of the IPTW estimator)::

        sum(y·x·w) / sum(x·w)  -  sum(y·(1-x)·w) / sum((1-x)·w)
    """
    y = np.asarray(outcome, dtype=float)
    t = np.asarray(treatment, dtype=float)
    w = np.asarray(weights, dtype=float)
    w_treated = (t * w).sum()
    w_control = ((1 - t) * w).sum()
    if w_treated == 0 or w_control == 0:
        return _NAN
    return float((y * t * w).sum() / w_treated - (y * (1 - t) * w).sum() / w_control)


def _row(group: pd.DataFrame, treatment: str, outcome: str, weights: str) -> dict:
    t = group[treatment].values.astype(float)
    y = group[outcome].values.astype(float)
    return {
        "n": len(group),
        "n_treated": int(t.sum()),
        "n_control": int((1 - t).sum()),
        "unweighted_effect": unweighted_effect(y, t),
        "weighted_effect": weighted_effect(y, t, group[weights].values),
    }


def effect_table(
    data: pd.DataFrame,
    treatment: str = TREATMENT_COL,
    outcome: str = OUTCOME_COL,
    weights: str = WEIGHT_COL,
    by: str | None = None,
) -> pd.DataFrame:
    """
    Unweighted and weighted effects for the whole frame or per stratum.

    Parameters
    ----------
    data : pd.DataFrame
        Must contain the treatment, outcome and weight columns (and ``by``
        if given).
    by : str or None
        Stratify on this column. Weights are used as given; they are not
        re-estimated within strata.

    Returns
    -------
    pd.DataFrame
        Columns ``n``, ``n_treated``, ``n_control``, ``unweighted_effect``
        and ``weighted_effect``. A single row labelled ``"overall"`` when
        ``by`` is None, otherwise one row per stratum indexed by ``by``.
    """
    needed = [treatment, outcome, weights] + ([by] if by is not None else [])
    missing = [c for c in needed if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in dataframe: {missing}")

    if by is None:
        return pd.DataFrame(
            [_row(data, treatment, outcome, weights)], index=pd.Index(["overall"])
        )

    rows = {
        value: _row(group, treatment, outcome, weights)
        for value, group in data.groupby(by, sort=True)
    }
    table = pd.DataFrame.from_dict(rows, orient="index")
    table.index.name = by
    return table
