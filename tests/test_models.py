"""
tests/test_models.py - Unit tests for Models dataclasses and errors.

These are lightweight construction and default-value tests that do not
require any external dependencies.
"""
import dataclasses
from datetime import datetime

import pytest

from Models import (
    A11yTesterError,
    DriverConnectionFailed,
    ElementNotFound,
    ElementRole,
    LoginConfig,
    LoginFailed,
    LoginVerificationFailed,
    PageTestFailed,
    PageTestResult,
    SignalKind,
    VerificationResult,
    VerificationSignal,
    Violation,
)


# ---------------------------------------------------------------------------
# LoginConfig
# ---------------------------------------------------------------------------


class TestLoginConfig:
    def test_repr_hides_password(self):
        config = LoginConfig("https://ex.com/login", "alice", "hunter2")
        assert "hunter2" not in repr(config)
        assert "alice" in repr(config)

    def test_selectors_for_role(self):
        config = LoginConfig(
            "https://ex.com/login", "alice", "pw", username_selector="#user", submit_selector="#go"
        )
        assert config.selectors_for(ElementRole.USERNAME) == ["#user"]
        assert config.selectors_for(ElementRole.PASSWORD) == []
        assert config.selectors_for(ElementRole.SUBMIT) == ["#go"]

    def test_frozen(self):
        config = LoginConfig("https://ex.com/login", "alice", "pw")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.username = "mallory"


# ---------------------------------------------------------------------------
# VerificationResult
# ---------------------------------------------------------------------------


class TestVerificationResult:
    def test_signal_lookup(self):
        dom = VerificationSignal(SignalKind.DOM_INDICATOR, True, "avatar")
        result = VerificationResult(True, "https://ex.com/", "ok", signals=[dom])
        assert result.signal(SignalKind.DOM_INDICATOR) is dom
        assert result.signal(SignalKind.URL_CHANGE) is None


# ---------------------------------------------------------------------------
# Violation / PageTestResult
# ---------------------------------------------------------------------------


class TestViolation:
    def test_from_axe_defaults(self):
        v = Violation.from_axe({"id": "label"})
        assert v.id == "label"
        assert v.impact is None
        assert v.nodes == []
        assert v.extra == {}

    def test_from_axe_extra(self):
        v = Violation.from_axe({"id": "label", "impact": "serious", "tags": ["wcag2a"]})
        assert v.extra == {"tags": ["wcag2a"]}


class TestPageTestResult:
    def test_defaults(self):
        r = PageTestResult(url="https://ex.com/", success=True)
        assert r.violations == []
        assert r.error is None
        assert r.score is None

    def test_timestamp_is_iso_utc(self):
        r = PageTestResult(url="https://ex.com/", success=True)
        parsed = datetime.fromisoformat(r.timestamp)
        assert parsed.utcoffset().total_seconds() == 0

    def test_frozen(self):
        r = PageTestResult(url="https://ex.com/", success=True)
        with pytest.raises(dataclasses.FrozenInstanceError):
            r.success = False


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_element_not_found_names_role(self):
        err = ElementNotFound(ElementRole.SUBMIT)
        assert err.role is ElementRole.SUBMIT
        assert str(err) == "Could not find submit field using any detection strategy"

    def test_verification_failure_is_login_failure(self):
        err = LoginVerificationFailed("nope", verification=None)
        assert isinstance(err, LoginFailed)
        assert err.verification is None

    def test_page_test_failed_carries_url(self):
        err = PageTestFailed("https://ex.com/x", "HTTP 404")
        assert err.url == "https://ex.com/x"
        assert str(err) == "HTTP 404"

    @pytest.mark.parametrize(
        "exc", [ElementNotFound, LoginFailed, PageTestFailed, DriverConnectionFailed]
    )
    def test_common_base(self, exc):
        assert issubclass(exc, A11yTesterError)
