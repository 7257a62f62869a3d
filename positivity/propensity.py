from __future__ import annotations

import logging
import warnings
from typing import Iterable

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import ModelWarning, PerfectSeparationError

from ._exceptions import FittingError

logger = logging.getLogger(__name__)


def propensity_scores(
    data: pd.DataFrame,
    treatment: str,
    covariates: Iterable[str] = (),
) -> np.ndarray:
    """
    Fit a logistic regression of treatment on covariates and return the
    fitted probabilities as a 1-D array.

    The fit is maximum likelihood via ``statsmodels``. Any model warning
    raised during fitting (perfect separation, non-convergence, a singular
    Hessian) is promoted to ``FittingError`` rather than yielding scores on
    the 0/1 boundary.

    Parameters
    ----------
    data : pd.DataFrame
        Must contain the treatment column and every covariate.
    treatment : str
        Binary (0/1) treatment column.
    covariates : iterable of str
        Columns to condition on. Empty gives an intercept-only model, in
        which every unit gets the treatment base rate.

    Raises
    ------
    ``FittingError``
        If the model cannot be fitted or a fitted value is exactly 0 or 1.
    ``ValueError``
        If a column is missing from the dataframe.
    """
    if isinstance(covariates, str):
        raise ValueError(
            f"Covariates must be a list of column names, got the string {covariates!r}. "
            f"Use [{covariates!r}]."
        )
    covariates = sorted(covariates)
    missing = [c for c in [treatment, *covariates] if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in dataframe: {missing}")

    rhs = " + ".join(covariates) if covariates else "1"
    formula = f"{treatment} ~ {rhs}"

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", ModelWarning)
            fit = smf.logit(formula, data=data).fit(disp=0)
    except (PerfectSeparationError, ModelWarning, np.linalg.LinAlgError) as exc:
        raise FittingError(
            f"Propensity model '{formula}' could not be fitted: {exc}\n\n"
            f"This usually means some covariate values perfectly predict "
            f"'{treatment}', so the model cannot estimate a probability "
            f"strictly between 0 and 1 for those units."
        ) from exc

    if not fit.mle_retvals.get("converged", True):
        raise FittingError(f"Propensity model '{formula}' did not converge.")

    ps = np.asarray(fit.predict(), dtype=float)
    if not np.all((ps > 0.0) & (ps < 1.0)):
        raise FittingError(
            f"Propensity model '{formula}' returned scores on the 0/1 boundary; "
            f"inverse probability weights would be infinite."
        )

    logger.debug(
        "Fitted %s on %d rows: scores in [%.4f, %.4f]",
        formula, len(ps), ps.min(), ps.max(),
    )
    return ps


def iptw_weights(treatment: np.ndarray, ps: np.ndarray) -> np.ndarray:
    """
    Inverse probability of treatment weights for the ATE.

    Treated units get ``1 / ps``, control units ``1 / (1 - ps)``.

    Raises
    ------
    ``ValueError``
        If the arrays differ in length or any score is outside (0, 1).
    """
    t  = np.asarray(treatment, dtype=float)
    ps = np.asarray(ps, dtype=float)
    if t.shape != ps.shape:
        raise ValueError(
            f"Treatment and propensity scores differ in shape: {t.shape} vs {ps.shape}."
        )
    if not np.all((ps > 0.0) & (ps < 1.0)):
        raise ValueError("Propensity scores must lie strictly between 0 and 1.")
    return t / ps + (1 - t) / (1 - ps)
