from .Reporter import Reporter

__all__ = ["Reporter"]
