from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .config import DEFAULT_N, DEFAULT_SEED, ELIGIBILITY_CUTOFF

logger = logging.getLogger(__name__)


def _expit(v: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-v))


def simulate(
    n: int = DEFAULT_N,
    seed: int = DEFAULT_SEED,
    cutoff: float = ELIGIBILITY_CUTOFF,
) -> pd.DataFrame:
    """
    Simulate a confounded dataset in which positivity is violated.

    Data generating process::

        z             ~ N(0, 1)                      confounder
        x_linear      = z + N(0, 1)
        x_prob        = expit(x_linear)  if z < cutoff
                        0                otherwise
        x             ~ Bernoulli(x_prob)            exposure
        y             = z + x                        outcome (true ATE = 1)
        in_population = 1 if z < cutoff else 0

    Units with ``z >= cutoff`` can never be exposed, so no treated
    comparison exists for them.

    Parameters
    ----------
    n : int
        Number of observations.
    seed : int
        Seed for ``numpy.random.default_rng``. The same ``n``, ``seed`` and
        ``cutoff`` always produce the same dataframe.
    cutoff : float
        Confounder threshold above which exposure is impossible.

    Raises
    ------
    ``ValueError``
        If ``n`` is smaller than 1.
    """
    if n < 1:
        raise ValueError(f"Sample size must be at least 1, got n={n}.")

    rng = np.random.default_rng(seed)
    z        = rng.normal(size=n)
    x_linear = z + rng.normal(size=n)
    eligible = z < cutoff
    x_prob   = np.where(eligible, _expit(x_linear), 0.0)
    x        = rng.binomial(1, x_prob).astype(float)

    df = pd.DataFrame({
        "z": z,
        "x_linear": x_linear,
        "x_prob": x_prob,
        "x": x,
        "y": z + x,
        "in_population": eligible.astype(int),
    })
    logger.debug(
        "Simulated %d units (seed=%d): %d treated, %d ineligible",
        n, seed, int(x.sum()), int((~eligible).sum()),
    )
    return df
