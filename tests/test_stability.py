"""
tests/test_stability.py - Unit tests for StabilityWaiter.

A FakeClock advanced by ``page.wait_for_timeout`` makes the polling loop
deterministic.
"""
import asyncio

from playwright.async_api import Error as PlaywrightError

from Spider import StabilityWaiter
from fakes import STABLE_SNAPSHOT, FakeClock, FakePage


def snapshot(**overrides) -> dict:
    data = dict(STABLE_SNAPSHOT)
    data.update(overrides)
    return data


def run_wait(snapshots, require_form=False, max_wait_ms=10_000):
    clock = FakeClock()
    page = FakePage(snapshots=snapshots, clock=clock)
    waiter = StabilityWaiter(
        max_wait_ms=max_wait_ms,
        check_interval_ms=1_000,
        required_stable_ms=2_000,
        clock=clock,
    )
    result = asyncio.run(waiter.wait(page, require_form=require_form))
    return result, clock, page


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestSignature:
    def test_counts_in_fixed_order(self):
        assert StabilityWaiter.signature(STABLE_SNAPSHOT) == (1, 2, 1, 0, 3, 5)

    def test_missing_keys_count_as_zero(self):
        assert StabilityWaiter.signature({"readyState": "complete"}) == (0, 0, 0, 0, 0, 0)


class TestHasForm:
    def test_form_with_inputs(self):
        assert StabilityWaiter.has_form(snapshot()) is True

    def test_form_without_inputs(self):
        assert StabilityWaiter.has_form(snapshot(formsWithInputs=0)) is False

    def test_inputs_without_form(self):
        assert StabilityWaiter.has_form(snapshot(forms=0, formsWithInputs=0)) is False

    def test_inputs_outside_forms_do_not_count(self):
        # a button-only form next to a header search box
        assert StabilityWaiter.has_form(snapshot(forms=1, inputs=1, formsWithInputs=0)) is False


# ---------------------------------------------------------------------------
# wait()
# ---------------------------------------------------------------------------


class TestWait:
    def test_stable_page_returns_after_required_window(self):
        result, clock, page = run_wait([snapshot()])
        assert result is True
        assert clock.now == 2.0
        assert page.waits == [1_000, 1_000]

    def test_changing_dom_restarts_window(self):
        result, clock, _ = run_wait(
            [snapshot(divs=1), snapshot(divs=4), snapshot(divs=9), snapshot(divs=9)]
        )
        assert result is True
        # settles at t=2s, stable from then until t=4s
        assert clock.now == 4.0

    def test_loading_state_blocks_stability(self):
        result, clock, _ = run_wait(
            [snapshot(readyState="loading"), snapshot(readyState="interactive"), snapshot()]
        )
        assert result is True
        assert clock.now == 4.0

    def test_spinner_blocks_stability(self):
        result, _, _ = run_wait([snapshot(loading=1)], max_wait_ms=5_000)
        assert result is False

    def test_times_out_without_raising(self):
        result, clock, _ = run_wait([snapshot(readyState="loading")], max_wait_ms=5_000)
        assert result is False
        assert clock.now == 5.0

    def test_require_form_waits_for_form(self):
        result, clock, _ = run_wait(
            [snapshot(forms=0, formsWithInputs=0, inputs=0)] * 3 + [snapshot()], require_form=True
        )
        assert result is True
        assert clock.now == 5.0

    def test_require_form_times_out_without_form(self):
        result, _, _ = run_wait(
            [snapshot(forms=0, formsWithInputs=0)], require_form=True, max_wait_ms=6_000
        )
        assert result is False

    def test_any_stable_state_without_require_form(self):
        result, _, _ = run_wait([snapshot(forms=0, formsWithInputs=0, inputs=0)])
        assert result is True

    def test_snapshot_error_is_retried(self):
        result, _, _ = run_wait([PlaywrightError("Execution context was destroyed"), snapshot()])
        assert result is True


# ---------------------------------------------------------------------------
# Closed or crashed page
# ---------------------------------------------------------------------------


class ClosedPage(FakePage):
    """A tab whose target has gone away: every call fails."""

    async def evaluate(self, expression, arg=None):
        raise PlaywrightError("Target page, context or browser has been closed")

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)
        raise PlaywrightError("Target page, context or browser has been closed")


class TestClosedPage:
    def test_returns_false_instead_of_raising(self):
        page = ClosedPage()
        waiter = StabilityWaiter(max_wait_ms=10_000, clock=FakeClock())
        assert asyncio.run(waiter.wait(page)) is False
        assert page.waits == [1_000]

    def test_require_form_returns_false_too(self):
        waiter = StabilityWaiter(max_wait_ms=10_000, clock=FakeClock())
        assert asyncio.run(waiter.wait(ClosedPage(), require_form=True)) is False
