from .Tester import A11yTester

__all__ = ["A11yTester"]
