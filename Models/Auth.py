"""
Models/Auth.py - Data types shared by the element resolver, login verifier
and login orchestrator.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ElementRole(str, Enum):
    """The login-form control being resolved."""

    USERNAME = "username"
    PASSWORD = "password"
    SUBMIT = "submit"


class LoginState(str, Enum):
    """Lifecycle of a single login attempt."""

    NOT_ATTEMPTED = "not-attempted"
    SUBMITTED = "submitted"
    VERIFIED_SUCCESS = "verified-success"
    VERIFIED_FAILURE = "verified-failure"


class SignalKind(str, Enum):
    """Independent heuristics combined into a login verdict."""

    URL_CHANGE = "url-change"
    DOM_INDICATOR = "dom-indicator"
    CONTENT_MATCH = "content-match"
    FORM_ABSENCE = "form-absence"
    ERROR_ABSENCE = "error-absence"


@dataclass(frozen=True)
class SelectorStrategy:
    """One entry of a static, per-role selector table."""

    selector: str
    required_visible: bool = True
    required_enabled: bool = True


@dataclass
class Candidate:
    """A validated element found by one strategy, with its ranking score."""

    element: Any
    """Playwright ``ElementHandle`` borrowed from the page; never owned."""

    score: int
    strategy: str
    """Selector or label of the strategy that produced the element."""


@dataclass(frozen=True)
class LoginConfig:
    """Everything needed for one login attempt.

    Supplied once by the caller (CLI flags or a JSON auth-script) and passed
    explicitly to :class:`~Auth.AuthManager`.
    """

    login_url: str
    username: str
    password: str = field(repr=False)
    username_selector: Optional[str] = None
    password_selector: Optional[str] = None
    submit_selector: Optional[str] = None
    post_login_url: Optional[str] = None

    def selectors_for(self, role: ElementRole) -> list[str]:
        """Return the user-provided selectors for *role* (possibly empty)."""
        selector = {
            ElementRole.USERNAME: self.username_selector,
            ElementRole.PASSWORD: self.password_selector,
            ElementRole.SUBMIT: self.submit_selector,
        }[role]
        return [selector] if selector else []


@dataclass(frozen=True)
class VerificationSignal:
    """Outcome of one verification heuristic."""

    kind: SignalKind
    passed: bool
    reason: str


@dataclass
class VerificationResult:
    """Combined verdict of the login verifier."""

    success: bool
    current_url: str
    reason: str
    signals: list[VerificationSignal] = field(default_factory=list)

    def signal(self, kind: SignalKind) -> Optional[VerificationSignal]:
        """Return the signal of *kind*, or *None* if it was not evaluated."""
        for sig in self.signals:
            if sig.kind is kind:
                return sig
        return None


@dataclass
class LoginResult:
    """Value returned by the ``login()`` entry point."""

    success: bool
    current_url: Optional[str] = None
    error: Optional[str] = None
    verification: Optional[VerificationResult] = None
