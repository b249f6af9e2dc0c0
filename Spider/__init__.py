from .Spider import Spider
from .Stability import StabilityWaiter

__all__ = ["Spider", "StabilityWaiter"]
