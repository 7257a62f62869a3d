from .iptw import IPTWRefutationReport
from .positivity import PositivityReport
from ._check import Assumption, RefutationCheck

__all__ = ["IPTWRefutationReport", "PositivityReport", "Assumption", "RefutationCheck"]
