import pytest

from dbs.host.virtual import VirtualHost
from dbs.utils.debounce import DebouncedInvoker, InvalidOperand, debounce, debounced
from dbs.utils.options import DebounceOptions


@pytest.fixture
def host():
    return VirtualHost()


@pytest.fixture
def rec(host):
    calls = []

    def target(*args, **kwargs):
        calls.append((host.now(), args, kwargs))
        return args[0] if args else None

    target.calls = calls
    return target


def times(rec):
    return [t for t, _, _ in rec.calls]


def args_of(rec):
    return [a[0] for _, a, _ in rec.calls]


# ---------- edges ----------
def test_trailing_only_runs_once_with_last_args(host, rec):
    d = debounce(rec, 100, host=host)
    assert d("A") is None
    host.advance_to(30); d("B")
    host.advance_to(60); d("C")

    host.advance_to(159)
    assert rec.calls == []
    assert d.pending()

    host.advance_to(160)
    assert rec.calls == [(160, ("C",), {})]
    assert not d.pending()


def test_leading_only_runs_once_on_first_call(host, rec):
    d = debounce(rec, 100, {"leading": True, "trailing": False}, host=host)
    assert d("A") == "A"
    host.advance_to(20); assert d("B") == "A"
    host.advance_to(40); assert d("C") == "A"

    host.run_until_idle()
    assert rec.calls == [(0, ("A",), {})]
    assert not d.pending()


def test_leading_and_trailing_single_call_fires_once(host, rec):
    d = debounce(rec, 100, {"leading": True}, host=host)
    d("A")
    host.run_until_idle()
    assert args_of(rec) == ["A"]


def test_leading_and_trailing_burst_fires_twice(host, rec):
    d = debounce(rec, 100, {"leading": True, "trailing": True}, host=host)
    d("A")
    host.advance_to(50); d("B")
    host.run_until_idle()
    assert rec.calls == [(0, ("A",), {}), (150, ("B",), {})]


def test_no_trailing_and_no_leading_never_runs(host, rec):
    d = debounce(rec, 50, {"trailing": False}, host=host)
    d("A"); d("B")
    host.run_until_idle()
    assert rec.calls == []
    assert not d.pending()


def test_kwargs_are_forwarded(host, rec):
    d = debounce(rec, 10, host=host)
    d("A", size=3)
    host.run_until_idle()
    assert rec.calls == [(10, ("A",), {"size": 3})]


def test_calls_return_last_result(host, rec):
    d = debounce(rec, 100, host=host)
    d("A")
    host.run_until_idle()
    assert d("B") == "A"
    assert d.result == "A"


def test_new_cycle_after_quiet_period(host, rec):
    d = debounce(rec, 100, host=host)
    d("A")
    host.advance_to(500)
    d("B")
    host.run_until_idle()
    assert rec.calls == [(100, ("A",), {}), (600, ("B",), {})]


# ---------- maxWait ----------
def test_max_wait_bounds_continuous_calls(host, rec):
    d = debounce(rec, 100, {"maxWait": 150}, host=host)
    for t in range(0, 1001, 40):
        host.advance_to(t)
        d(t)

    assert times(rec) == [150, 300, 450, 600, 750, 900]
    gaps = [b - a for a, b in zip(times(rec), times(rec)[1:])]
    assert all(g <= 150 for g in gaps)


def test_max_wait_tight_loop_invokes_from_the_call(host, rec):
    d = debounce(rec, 100, {"maxWait": 150}, host=host)
    d("A")
    host.advance_to(60); d("B")
    # the call lands on the max_wait boundary before the timer gets a chance to run
    host.jump_to(150)
    assert d("C") == "C"
    assert rec.calls == [(150, ("C",), {})]
    assert d.pending()
    assert host.pending_count() == 1

    host.run_until_idle()
    assert len(rec.calls) == 1


def test_max_wait_is_clamped_to_wait(host, rec):
    d = debounce(rec, 100, {"maxWait": 50}, host=host)
    assert d.maxing and d.max_wait == 100

    d2 = debounce(rec, 100, {"max_wait": "soon"}, host=host)
    assert d2.maxing and d2.max_wait == 100

    d3 = debounce(rec, 100, DebounceOptions(max_wait=20), host=host)
    assert d3.max_wait == 100


def test_without_max_wait_trailing_is_deferred(host, rec):
    d = debounce(rec, 100, host=host)
    for t in range(0, 1001, 40):
        host.advance_to(t)
        d(t)
    assert rec.calls == []
    host.run_until_idle()
    assert rec.calls == [(1100, (1000,), {})]


# ---------- cancel / flush / pending ----------
def test_cancel_drops_pending_execution(host, rec):
    d = debounce(rec, 100, host=host)
    d("A")
    assert d.pending()
    d.cancel()
    assert not d.pending()
    host.run_until_idle()
    assert rec.calls == []
    assert host.pending_count() == 0


def test_cancel_is_idempotent(host, rec):
    d = debounce(rec, 100, host=host)
    d.cancel(); d.cancel()
    assert not d.pending()


def test_cancel_then_new_cycle(host, rec):
    d = debounce(rec, 100, {"leading": True}, host=host)
    d("A")
    d.cancel()
    host.advance_to(10)
    assert d("B") == "B"
    assert args_of(rec) == ["A", "B"]


def test_flush_runs_queued_call(host, rec):
    d = debounce(rec, 100, host=host)
    d("A"); host.advance_to(20); d("B")
    assert d.flush() == "B"
    assert rec.calls == [(20, ("B",), {})]
    assert not d.pending()

    host.run_until_idle()
    assert len(rec.calls) == 1


def test_flush_without_pending_returns_last_result(host, rec):
    d = debounce(rec, 100, host=host)
    assert d.flush() is None
    d("A")
    host.run_until_idle()
    assert d.flush() == "A"
    assert len(rec.calls) == 1


def test_flush_after_leading_call_does_not_run_again(host, rec):
    d = debounce(rec, 100, {"leading": True, "trailing": False}, host=host)
    d("A")
    assert d.flush() == "A"
    assert len(rec.calls) == 1


# ---------- clock ----------
def test_clock_going_backwards_starts_new_cycle(host, rec):
    d = debounce(rec, 100, {"leading": True}, host=host)
    host.jump_to(1000)
    d("A")
    host.run_until_idle()
    host.jump_to(500)
    assert d("B") == "B"
    assert args_of(rec) == ["A", "B"]


# ---------- frames ----------
def test_omitted_wait_uses_frames_when_available():
    host = VirtualHost(frame_ms=16)
    calls = []
    d = debounce(lambda x: calls.append((host.now(), x)), host=host)
    assert d.frame_mode and d.wait == 0
    d("A")
    host.advance_to(5); d("B")
    host.advance_to(16)
    assert calls == [(16, "B")]


def test_explicit_zero_wait_uses_plain_timer():
    host = VirtualHost(frame_ms=16)
    calls = []
    d = debounce(calls.append, 0, host=host)
    assert not d.frame_mode
    d("A")
    host.advance_to(0)
    assert calls == ["A"]


def test_omitted_wait_without_frames_is_zero_delay(host):
    calls = []
    d = debounce(calls.append, host=host)
    assert not d.frame_mode and d.wait == 0
    d("A")
    host.advance_to(0)
    assert calls == ["A"]


def test_frame_mode_max_wait_defers_to_the_pending_frame():
    host = VirtualHost(frame_ms=16)
    calls = []
    d = debounce(calls.append, None, {"leading": True, "maxWait": 0}, host=host)
    d("A")
    host.advance_to(5)
    d("B")
    assert calls == ["A"]
    assert host.pending_count() == 1

    host.advance_to(16)
    assert calls == ["A", "B"]
    assert host.pending_count() == 0


# ---------- errors ----------
def test_non_callable_target_rejected(host):
    with pytest.raises(InvalidOperand):
        debounce("not a function", 100, host=host)
    assert issubclass(InvalidOperand, TypeError)


def test_wait_is_coerced(host, rec):
    assert debounce(rec, "abc", host=host).wait == 0
    assert debounce(rec, "100", host=host).wait == 100
    assert debounce(rec, float("nan"), host=host).wait == 0
    with pytest.raises(ValueError):
        debounce(rec, -5, host=host)
    with pytest.raises(ValueError):
        debounce(rec, float("inf"), host=host)


def test_non_mapping_options_use_defaults(host, rec):
    d = debounce(rec, 100, "leading", host=host)
    assert (d.leading, d.trailing, d.maxing) == (False, True, False)


def test_failing_trailing_call_is_not_retried(host):
    attempts = []

    def boom(x):
        attempts.append(x)
        raise RuntimeError("boom")

    d = debounce(boom, 100, host=host)
    d("A")
    with pytest.raises(RuntimeError):
        host.advance_to(100)
    assert not d.pending()
    host.run_until_idle()
    assert attempts == ["A"]

    d("B")
    with pytest.raises(RuntimeError):
        host.run_until_idle()
    assert attempts == ["A", "B"]


def test_failing_leading_call_propagates_and_keeps_state(host):
    attempts = []

    def boom(x):
        attempts.append(x)
        raise ValueError(x)

    d = debounce(boom, 100, {"leading": True}, host=host)
    with pytest.raises(ValueError):
        d("A")
    assert d.pending()
    host.run_until_idle()
    assert attempts == ["A"]
    assert not d.pending()


# ---------- wrapper ----------
def test_wrapper_metadata_and_repr(host):
    def refresh(q):
        """Refresh results."""
        return q

    d = debounce(refresh, 100, host=host)
    assert isinstance(d, DebouncedInvoker)
    assert d.__name__ == "refresh"
    assert d.__doc__ == "Refresh results."
    assert d.__wrapped__ is refresh
    assert "refresh" in repr(d)


def test_call_with_passes_context(host):
    seen = []
    d = debounce(lambda ctx, x: seen.append((ctx, x)), 10, host=host)
    d.call_with("ctx", 1)
    host.run_until_idle()
    assert seen == [("ctx", 1)]


def test_decorated_method_receives_instance(host):
    class Panel:
        def __init__(self):
            self.sizes = []

        @debounced(50, host=host)
        def resize(self, w, h):
            self.sizes.append((w, h))
            return w * h

    p = Panel()
    p.resize(1, 1); p.resize(2, 3)
    host.run_until_idle()
    assert p.sizes == [(2, 3)]
    assert isinstance(Panel.resize, DebouncedInvoker)
    assert Panel.resize.result == 6


def test_bound_method_exposes_cancel_flush_pending(host):
    class Panel:
        def __init__(self):
            self.sizes = []

        @debounced(50, host=host)
        def resize(self, w, h):
            self.sizes.append((w, h))
            return w * h

    p = Panel()
    assert p.resize.__name__ == "resize"
    p.resize(2, 3)
    assert p.resize.pending()
    assert p.resize.flush() == 6
    assert p.resize.result == 6
    assert not p.resize.pending()

    p.resize(4, 4)
    p.resize.cancel()
    host.run_until_idle()
    assert p.sizes == [(2, 3)]


def test_instances_are_independent(host):
    a_calls, b_calls = [], []
    a = debounce(a_calls.append, 100, host=host)
    b = debounce(b_calls.append, 100, host=host)
    a("A"); b("B")
    a.cancel()
    host.run_until_idle()
    assert a_calls == [] and b_calls == ["B"]
