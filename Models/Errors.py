"""
Models/Errors.py - Exception taxonomy for login, crawling and driver setup.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .Auth import ElementRole, VerificationResult


class A11yTesterError(Exception):
    """Base class for all errors raised by this package."""


class ElementNotFound(A11yTesterError):
    """Every resolution strategy was exhausted for a login-form role."""

    def __init__(self, role: "ElementRole") -> None:
        self.role = role
        super().__init__(
            f"Could not find {role.value} field using any detection strategy"
        )


class LoginFailed(A11yTesterError):
    """The login attempt did not establish an authenticated session."""


class LoginVerificationFailed(LoginFailed):
    """Submit went through but the verifier's verdict was failure."""

    def __init__(
        self,
        message: str,
        verification: Optional["VerificationResult"] = None,
    ) -> None:
        self.verification = verification
        super().__init__(message)


class PageTestFailed(A11yTesterError):
    """Navigation or analysis failed for one frontier entry."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class DriverConnectionFailed(A11yTesterError):
    """A browser session could not be established."""
