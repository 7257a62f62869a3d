from .iptw import IPTW, IPTWResult

__all__ = ["IPTW", "IPTWResult"]
