from .Auth import (
    Candidate,
    ElementRole,
    LoginConfig,
    LoginResult,
    LoginState,
    SelectorStrategy,
    SignalKind,
    VerificationResult,
    VerificationSignal,
)
from .Errors import (
    A11yTesterError,
    DriverConnectionFailed,
    ElementNotFound,
    LoginFailed,
    LoginVerificationFailed,
    PageTestFailed,
)
from .Spider import AnalysisResult, CrawlFrontierEntry, PageTestResult, Violation

__all__ = [
    "A11yTesterError",
    "AnalysisResult",
    "Candidate",
    "CrawlFrontierEntry",
    "DriverConnectionFailed",
    "ElementNotFound",
    "ElementRole",
    "LoginConfig",
    "LoginFailed",
    "LoginResult",
    "LoginState",
    "LoginVerificationFailed",
    "PageTestFailed",
    "PageTestResult",
    "SelectorStrategy",
    "SignalKind",
    "VerificationResult",
    "VerificationSignal",
    "Violation",
]
