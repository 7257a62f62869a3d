from ._exceptions import FittingError
from .config import SimulationConfig
from .simulate import simulate
from .propensity import propensity_scores, iptw_weights
from .effects import unweighted_effect, weighted_effect, effect_table
from .estimators.iptw import IPTW, IPTWResult
from .analysis import PositivityAnalysis, run_analysis
from .refutations import IPTWRefutationReport, PositivityReport, RefutationCheck
from .refutations._check import Assumption

__all__ = [
    "FittingError",
    "SimulationConfig",
    "simulate",
    "propensity_scores", "iptw_weights",
    "unweighted_effect", "weighted_effect", "effect_table",
    "IPTW", "IPTWResult",
    "PositivityAnalysis", "run_analysis",
    "IPTWRefutationReport", "PositivityReport", "RefutationCheck",
    "Assumption",
]
