"""Run-time constants and the simulation configuration."""
from __future__ import annotations

from dataclasses import dataclass

# ── Simulation defaults ───────────────────────────────────────────────────────
DEFAULT_N          = 100
DEFAULT_SEED       = 5
ELIGIBILITY_CUTOFF = 0.5

# ── Column names ──────────────────────────────────────────────────────────────
CONFOUNDER_COL  = "z"
TREATMENT_COL   = "x"
OUTCOME_COL     = "y"
POPULATION_COL  = "in_population"
FITTED_COL      = "fitted"
WEIGHT_COL      = "weight"

# ── Bootstrap ─────────────────────────────────────────────────────────────────
BOOTSTRAP_N    = 500
BOOTSTRAP_SEED = 42

# ── Positivity diagnostics ────────────────────────────────────────────────────
OVERLAP_LOWER = 0.05
OVERLAP_UPPER = 0.95
MAX_WEIGHT    = 10.0


@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameters of one simulated dataset.

    ``cutoff`` is the confounder value at or above which units have zero
    probability of exposure.
    """

    n: int = DEFAULT_N
    seed: int = DEFAULT_SEED
    cutoff: float = ELIGIBILITY_CUTOFF

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ValueError(f"Sample size must be at least 1, got n={self.n}.")
        if self.seed < 0:
            raise ValueError(f"Seed must be non-negative, got seed={self.seed}.")
