class FittingError(Exception):
    """
    Raised when the propensity score model cannot be fitted reliably.

    Covers perfect separation, a fit that fails to converge, and fitted
    probabilities that land exactly on 0 or 1. Such scores would make the
    inverse probability weights infinite, so they are never returned.
    """
    pass
