"""
tests/test_verifier.py - Unit tests for LoginVerifier signal evaluation and policy.
"""
import asyncio

from Auth import LoginVerifier
from Models import SignalKind, VerificationSignal
from fakes import FakeElement, FakePage

LOGIN_URL = "https://ex.com/login"


def evaluate(current_url, login_url=LOGIN_URL, post_login_url=None):
    return LoginVerifier.evaluate_url(login_url, post_login_url, current_url)


def signal(kind, passed):
    return VerificationSignal(kind, passed, "test")


def verify(page, post_login_url=None, settle_ms=0):
    return asyncio.run(LoginVerifier(settle_ms=settle_ms).verify(page, LOGIN_URL, post_login_url))


# ---------------------------------------------------------------------------
# URL-change signal
# ---------------------------------------------------------------------------


class TestEvaluateUrl:
    def test_cross_domain_redirect(self):
        sig = evaluate("https://sso.other.com/callback")
        assert sig.passed is True
        assert sig.reason == "Redirected to different domain after login"

    def test_expected_post_login_url(self):
        sig = evaluate("https://ex.com/app/start", post_login_url="https://ex.com/app/start")
        assert sig.passed is True
        assert sig.reason == "Redirected to expected post-login URL"

    def test_post_login_url_contained(self):
        sig = evaluate("https://ex.com/app/start?tab=1", post_login_url="https://ex.com/app/start")
        assert sig.reason == "Redirected to expected post-login URL"

    def test_authenticated_path_pattern(self):
        sig = evaluate("https://ex.com/dashboard")
        assert sig.passed is True
        assert sig.reason == "URL contains post-login pattern"

    def test_navigated_away(self):
        sig = evaluate("https://ex.com/reports")
        assert sig.passed is True
        assert sig.reason == "Navigated away from login page"

    def test_same_url_fails(self):
        sig = evaluate(LOGIN_URL)
        assert sig.passed is False
        assert sig.reason == "Still on login page or similar URL"

    def test_other_login_path_fails(self):
        assert evaluate("https://ex.com/signin").passed is False

    def test_auth_callback_path_fails(self):
        assert evaluate("https://ex.com/auth/callback").passed is False

    def test_trailing_slash_fails(self):
        assert evaluate("https://ex.com/login/").passed is False

    def test_success_token_in_query(self):
        sig = evaluate("https://ex.com/login?token=abc123")
        assert sig.passed is True
        assert sig.reason == "URL parameters suggest successful login"

    def test_success_token_in_fragment(self):
        assert evaluate("https://ex.com/login#authenticated").passed is True

    def test_browser_error_page_fails(self):
        sig = evaluate("chrome-error://chromewebdata/")
        assert sig.passed is False
        assert sig.reason.startswith("Not a web page")

    def test_about_blank_fails(self):
        assert evaluate("about:blank").passed is False

    def test_kind_is_url_change(self):
        assert evaluate(LOGIN_URL).kind is SignalKind.URL_CHANGE


# ---------------------------------------------------------------------------
# Decision policy
# ---------------------------------------------------------------------------


class TestDecide:
    def test_url_signal_alone_is_sufficient(self):
        success, reason = LoginVerifier.decide(
            [
                signal(SignalKind.URL_CHANGE, True),
                signal(SignalKind.DOM_INDICATOR, False),
                signal(SignalKind.CONTENT_MATCH, False),
                signal(SignalKind.FORM_ABSENCE, False),
                signal(SignalKind.ERROR_ABSENCE, False),
            ]
        )
        assert success is True
        assert reason.startswith("URL verification passed")

    def test_two_corroborating_signals_succeed(self):
        success, _ = LoginVerifier.decide(
            [
                signal(SignalKind.URL_CHANGE, False),
                signal(SignalKind.DOM_INDICATOR, True),
                signal(SignalKind.CONTENT_MATCH, False),
                signal(SignalKind.FORM_ABSENCE, True),
                signal(SignalKind.ERROR_ABSENCE, True),
            ]
        )
        assert success is True

    def test_single_corroborating_signal_fails(self):
        success, reason = LoginVerifier.decide(
            [
                signal(SignalKind.URL_CHANGE, False),
                signal(SignalKind.DOM_INDICATOR, True),
                signal(SignalKind.CONTENT_MATCH, False),
                signal(SignalKind.FORM_ABSENCE, False),
                signal(SignalKind.ERROR_ABSENCE, True),
            ]
        )
        assert success is False
        assert "Only 1" in reason

    def test_visible_error_vetoes_corroboration(self):
        success, reason = LoginVerifier.decide(
            [
                signal(SignalKind.URL_CHANGE, False),
                signal(SignalKind.DOM_INDICATOR, True),
                signal(SignalKind.CONTENT_MATCH, True),
                signal(SignalKind.FORM_ABSENCE, True),
                signal(SignalKind.ERROR_ABSENCE, False),
            ]
        )
        assert success is False
        assert reason.startswith("Login error shown")

    def test_empty_signals_fail(self):
        assert LoginVerifier.decide([])[0] is False


# ---------------------------------------------------------------------------
# Full verification against a page
# ---------------------------------------------------------------------------


class TestVerify:
    def test_dashboard_redirect_succeeds(self):
        page = FakePage(url="https://ex.com/dashboard", title="Dashboard", body="Welcome back")
        result = verify(page)
        assert result.success is True
        assert result.current_url == "https://ex.com/dashboard"
        assert "URL contains post-login pattern" in result.reason

    def test_cross_domain_succeeds_even_with_password_field(self):
        page = FakePage(
            url="https://sso.other.com/done",
            selectors={'input[type="password"]': [FakeElement()]},
            body="password",
        )
        assert verify(page).success is True

    def test_password_field_persists_fails(self):
        page = FakePage(
            url=LOGIN_URL,
            title="Login",
            body="Username Password Log in",
            selectors={'input[type="password"]': [FakeElement()]},
        )
        result = verify(page)
        assert result.success is False
        assert result.signal(SignalKind.FORM_ABSENCE).passed is False

    def test_avatar_alone_is_not_enough(self):
        page = FakePage(
            url=LOGIN_URL,
            title="Sign in",
            body="Enter your password",
            selectors={
                ".user-avatar": [FakeElement()],
                'input[type="password"]': [FakeElement()],
            },
        )
        result = verify(page)
        assert result.signal(SignalKind.DOM_INDICATOR).passed is True
        assert result.success is False

    def test_avatar_plus_form_absence_succeeds(self):
        page = FakePage(
            url=LOGIN_URL,
            title="Sign in",
            body="Enter your password",
            selectors={".user-avatar": [FakeElement()]},
        )
        result = verify(page)
        assert result.success is True
        assert "dom-indicator" in result.reason
        assert "form-absence" in result.reason

    def test_visible_error_message_fails(self):
        page = FakePage(
            url=LOGIN_URL,
            title="Welcome",
            body="Something went wrong",
            selectors={".alert-danger": [FakeElement(text="Invalid password")]},
        )
        result = verify(page)
        assert result.success is False
        error = result.signal(SignalKind.ERROR_ABSENCE)
        assert error.passed is False
        assert "Invalid password" in error.reason

    def test_hidden_error_element_ignored(self):
        page = FakePage(
            url=LOGIN_URL,
            title="Welcome",
            body="Hello",
            selectors={".alert-danger": [FakeElement(text="Oops", visible=False)]},
        )
        assert verify(page).signal(SignalKind.ERROR_ABSENCE).passed is True

    def test_error_phrase_in_body_fails(self):
        page = FakePage(url=LOGIN_URL, title="Welcome", body="Login failed. Try again.")
        result = verify(page)
        assert result.signal(SignalKind.ERROR_ABSENCE).passed is False
        assert result.success is False

    def test_rejected_selectors_are_tolerated(self):
        page = FakePage(
            url=LOGIN_URL,
            title="Sign in",
            body="password",
            selectors={".avatar": [FakeElement()]},
            invalid={'a[href*="logout"]', 'input[type="password"]'},
        )
        result = verify(page)
        assert result.signal(SignalKind.DOM_INDICATOR).passed is True
        assert result.signal(SignalKind.FORM_ABSENCE).passed is False
        assert result.success is False

    def test_browser_error_page_fails(self):
        page = FakePage(url="chrome-error://chromewebdata/", title="", body="")
        result = verify(page)
        assert result.success is False
        assert result.signal(SignalKind.URL_CHANGE).passed is False
        assert result.signal(SignalKind.FORM_ABSENCE) is None

    def test_all_five_signals_recorded(self):
        result = verify(FakePage(url=LOGIN_URL))
        assert [s.kind for s in result.signals] == list(SignalKind)

    def test_settle_delay_applied(self):
        page = FakePage(url="https://ex.com/home")
        verify(page, settle_ms=1500)
        assert page.waits == [1500]
