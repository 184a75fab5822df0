import pytest

from syncprims.lftimer import TICK_INVALID, TimerError, Timers


def _recorder(timers, log):
    def callback(tim, tmo, arg):
        log.append((tim, tmo, timers.tick))
        arg["tick"] = timers.tick

    return callback


def test_source_scenario():
    timers = Timers()
    log = []
    state = {"tick": TICK_INVALID}
    tim_a = timers.alloc(_recorder(timers, log), state)
    assert tim_a is not None
    assert timers.set(tim_a, 1)
    assert not timers.set(tim_a, 1)

    timers.advance(0)
    timers.expire()
    assert state["tick"] == TICK_INVALID

    timers.advance(1)
    timers.expire()
    assert state["tick"] == 1
    assert timers.set(tim_a, 2)
    assert timers.reset(tim_a, 3)

    timers.advance(2)
    timers.expire()
    assert state["tick"] == 1
    assert timers.cancel(tim_a)

    timers.advance(3)
    timers.expire()
    assert state["tick"] == 1
    assert not timers.reset(tim_a, 0xFFFFFFFFFFFFFFFE)
    assert timers.set(tim_a, 0xFFFFFFFFFFFFFFFE)
    assert timers.reset(tim_a, 0xFFFFFFFFFFFFFFFE)

    timers.expire()
    assert state["tick"] == 1

    timers.advance(0xFFFFFFFFFFFFFFFE)
    timers.expire()
    assert state["tick"] == 0xFFFFFFFFFFFFFFFE

    timers.free(tim_a)
    assert log[0] == (tim_a, 1, 1)


def test_callback_receives_timer_and_expiration():
    timers = Timers(4)
    log = []
    tim = timers.alloc(lambda t, e, a: log.append((t, e, a)), "arg")
    timers.set(tim, 5)
    timers.advance(7)
    assert timers.expire() == 1
    assert log == [(tim, 5, "arg")]
    assert timers.expire() == 0


def test_only_due_timers_fire():
    timers = Timers(4)
    fired = []
    early = timers.alloc(lambda t, e, a: fired.append(t))
    late = timers.alloc(lambda t, e, a: fired.append(t))
    timers.set(early, 5)
    timers.set(late, 10)
    timers.advance(5)
    timers.expire()
    assert fired == [early]
    timers.advance(10)
    timers.expire()
    assert fired == [early, late]


def test_callback_may_rearm():
    timers = Timers(2)
    fired = []

    def callback(tim, tmo, arg):
        fired.append(tmo)
        if len(fired) < 2:
            assert timers.set(tim, tmo + 1)

    tim = timers.alloc(callback)
    timers.set(tim, 1)
    timers.advance(1)
    timers.expire()
    timers.advance(2)
    timers.expire()
    assert fired == [1, 2]


def test_alloc_exhaustion_and_reuse():
    timers = Timers(2)
    a = timers.alloc(lambda *args: None)
    b = timers.alloc(lambda *args: None)
    assert {a, b} == {0, 1}
    assert timers.alloc(lambda *args: None) is None
    timers.free(a)
    assert timers.alloc(lambda *args: None) == a


def test_free_active_timer_raises():
    timers = Timers(2)
    tim = timers.alloc(lambda *args: None)
    timers.set(tim, 3)
    with pytest.raises(TimerError):
        timers.free(tim)
    assert timers.cancel(tim)
    timers.free(tim)


def test_invalid_timer_raises():
    timers = Timers(2)
    with pytest.raises(TimerError):
        timers.set(0, 1)
    tim = timers.alloc(lambda *args: None)
    timers.free(tim)
    with pytest.raises(TimerError):
        timers.cancel(tim)
    with pytest.raises(TimerError):
        timers.free(tim)


def test_invalid_expiration_raises():
    timers = Timers(2)
    tim = timers.alloc(lambda *args: None)
    with pytest.raises(TimerError):
        timers.set(tim, TICK_INVALID)
    timers.set(tim, 4)
    with pytest.raises(TimerError):
        timers.reset(tim, TICK_INVALID)


def test_inactive_reset_and_cancel_fail():
    timers = Timers(2)
    tim = timers.alloc(lambda *args: None)
    assert not timers.reset(tim, 4)
    assert not timers.cancel(tim)


def test_time_does_not_run_backwards():
    timers = Timers(1)
    timers.advance(3)
    timers.advance(2)
    assert timers.tick == 3
    with pytest.raises(TimerError):
        timers.advance(TICK_INVALID)
    assert timers.tick == 3


def test_cancelled_timer_does_not_fire():
    timers = Timers(2)
    fired = []
    tim = timers.alloc(lambda t, e, a: fired.append(t))
    timers.set(tim, 2)
    timers.cancel(tim)
    timers.advance(5)
    assert timers.expire() == 0
    assert fired == []


def test_invalid_table_size():
    with pytest.raises(ValueError):
        Timers(0)