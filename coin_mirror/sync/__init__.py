from .reconcile import reconcile_pass
from .refresh import refresh_pass

__all__ = ["reconcile_pass", "refresh_pass"]
