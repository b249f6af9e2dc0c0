from .Axe import AxeAnalyzer, Grade, accessibility_grade, accessibility_score

__all__ = ["AxeAnalyzer", "Grade", "accessibility_grade", "accessibility_score"]
