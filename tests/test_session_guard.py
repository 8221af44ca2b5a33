import asyncio

import httpx
import pytest

from app.session import AsyncioTimerService, GuardState, SessionActivityGuard

IDLE = 10.0
PING = 2.0


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeHandle:
    def __init__(self, due: float, callback, interval=None):
        self.due = due
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Deterministic timer service driven by FakeClock.

    Spawned coroutines run as soon as they are spawned unless ``autosettle`` is
    off, in which case they wait in ``pending`` until ``settle`` is called.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles = []
        self.pending = []
        self.autosettle = True

    def call_later(self, delay, callback):
        handle = FakeHandle(self.clock.now + delay, callback)
        self.handles.append(handle)
        return handle

    def call_every(self, interval, callback):
        handle = FakeHandle(self.clock.now + interval, callback, interval)
        self.handles.append(handle)
        return handle

    def spawn(self, coro):
        self.pending.append(coro)
        if self.autosettle:
            self.settle()

    def settle(self) -> None:
        while self.pending:
            coro = self.pending.pop(0)
            try:
                coro.send(None)
            except StopIteration:
                continue
            raise AssertionError("fake transport calls must not suspend")

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.clock.now + seconds
        while True:
            due = [h for h in self.active if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.clock.now = handle.due
            if handle.interval is None:
                handle.cancelled = True
            else:
                handle.due += handle.interval
            handle.callback()
        self.clock.now = target


class FakeTransport:
    def __init__(self, alive: bool = True):
        self.alive = alive
        self.ping_calls = 0
        self.logout_calls = 0
        self.ping_error = None
        self.logout_error = None

    async def ping(self) -> bool:
        self.ping_calls += 1
        if self.ping_error is not None:
            raise self.ping_error
        return self.alive

    async def logout(self) -> None:
        self.logout_calls += 1
        if self.logout_error is not None:
            raise self.logout_error


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def timers(clock):
    return FakeTimers(clock)


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def logged_out_calls():
    return []


@pytest.fixture()
def guard(transport, timers, clock, logged_out_calls):
    return SessionActivityGuard(
        transport=transport,
        timers=timers,
        on_logged_out=lambda: logged_out_calls.append(clock.now),
        clock=clock,
        idle_timeout=IDLE,
        ping_interval=PING,
    )


def test_ping_interval_must_be_shorter_than_idle_timeout(transport, timers):
    with pytest.raises(ValueError):
        SessionActivityGuard(transport, timers, lambda: None, idle_timeout=60, ping_interval=60)
    with pytest.raises(ValueError):
        SessionActivityGuard(transport, timers, lambda: None, idle_timeout=60, ping_interval=0)


def test_idle_timeout_logs_out_exactly_once(guard, timers, transport, logged_out_calls):
    guard.set_authenticated(True)

    timers.advance(IDLE - 0.001)
    assert logged_out_calls == []

    timers.advance(0.002)
    assert logged_out_calls == [IDLE]
    assert transport.logout_calls == 1
    assert guard.state is GuardState.DISARMED

    timers.advance(IDLE * 3)
    assert logged_out_calls == [IDLE]
    assert timers.active == []


def test_activity_just_before_timeout_resets_the_window(guard, timers, clock, logged_out_calls):
    guard.arm()

    timers.advance(IDLE - 0.001)
    guard.handle_event("mousemove")
    timers.advance(IDLE - 0.002)
    assert logged_out_calls == []

    timers.advance(0.005)
    assert logged_out_calls == [pytest.approx(2 * IDLE - 0.001)]


def test_unmonitored_events_are_not_activity(guard, timers, logged_out_calls):
    guard.arm()

    timers.advance(IDLE - 1)
    guard.handle_event("focus")
    timers.advance(1)

    assert len(logged_out_calls) == 1


def test_pings_only_follow_recent_activity(guard, timers, transport):
    guard.arm()

    timers.advance(1)
    guard.handle_event("keydown")
    timers.advance(1)
    assert transport.ping_calls == 1

    # No further activity: later ticks stay silent
    timers.advance(PING * 2)
    assert transport.ping_calls == 1


def test_rejected_ping_logs_out(guard, timers, transport, logged_out_calls):
    transport.alive = False
    guard.arm()

    timers.advance(1)
    guard.record_activity()
    timers.advance(1)

    assert logged_out_calls == [PING]
    assert transport.logout_calls == 1
    assert guard.logged_out is True


def test_ping_network_error_logs_out(guard, timers, transport, logged_out_calls):
    transport.ping_error = httpx.ConnectError("connection refused")
    guard.arm()

    timers.advance(1)
    guard.record_activity()
    timers.advance(1)

    assert len(logged_out_calls) == 1


def test_logout_is_idempotent(guard, transport, logged_out_calls):
    guard.arm()

    guard.logout()
    guard.logout()

    assert transport.logout_calls == 1
    assert len(logged_out_calls) == 1


def test_local_cleanup_runs_when_logout_request_fails(guard, transport, logged_out_calls):
    transport.logout_error = httpx.ConnectError("server unreachable")
    guard.arm()

    guard.logout()

    assert transport.logout_calls == 1
    assert len(logged_out_calls) == 1
    assert guard.logged_out is True


def test_disarm_cancels_pending_timers(guard, timers, transport, logged_out_calls):
    guard.set_authenticated(True)
    assert len(timers.active) == 2

    guard.set_authenticated(False)
    assert timers.active == []

    timers.advance(IDLE * 2)
    assert logged_out_calls == []
    assert transport.ping_calls == 0


def test_arm_is_idempotent(guard, timers):
    guard.arm()
    guard.arm()

    assert len(timers.active) == 2


def test_activity_while_disarmed_is_ignored(guard, timers):
    guard.record_activity()

    assert guard.last_activity is None
    assert timers.active == []


def test_guard_can_be_rearmed_after_logout(guard, timers, logged_out_calls):
    guard.arm()
    timers.advance(IDLE)
    assert len(logged_out_calls) == 1

    guard.arm()
    assert guard.logged_out is False

    timers.advance(IDLE)
    assert len(logged_out_calls) == 2


def test_asyncio_timer_service_drives_idle_logout(transport):
    async def scenario():
        done = asyncio.Event()
        guard = SessionActivityGuard(
            transport=transport,
            timers=AsyncioTimerService(),
            on_logged_out=done.set,
            idle_timeout=0.5,
            ping_interval=0.1,
        )
        guard.arm()
        await asyncio.sleep(0.15)
        guard.record_activity()
        await asyncio.wait_for(done.wait(), timeout=2)
        return guard

    guard = asyncio.run(scenario())

    assert guard.logged_out is True
    assert transport.logout_calls == 1
    assert transport.ping_calls >= 1


def test_idle_timeout_fires_while_ping_is_pending(guard, timers, transport, logged_out_calls):
    timers.autosettle = False
    guard.arm()

    timers.advance(1)
    guard.record_activity()
    timers.advance(1)
    assert len(timers.pending) == 1

    # Later ticks do not stack a second ping on the outstanding one
    timers.advance(1)
    guard.record_activity()
    timers.advance(1)
    assert len(timers.pending) == 1

    timers.advance(IDLE)
    assert guard.logged_out is True
    assert guard.state is GuardState.DISARMED
    assert timers.active == []

    # The late ping answer belongs to a disarmed session and changes nothing
    transport.alive = False
    timers.settle()
    assert transport.ping_calls == 1
    assert transport.logout_calls == 1
    assert len(logged_out_calls) == 1


def test_ping_answer_after_rearm_is_ignored(guard, timers, transport, logged_out_calls):
    timers.autosettle = False
    guard.arm()
    timers.advance(1)
    guard.record_activity()
    timers.advance(1)

    guard.disarm()
    guard.arm()
    transport.alive = False
    timers.settle()

    assert guard.state is GuardState.ARMED
    assert guard.logged_out is False
    assert logged_out_calls == []


class SlowTransport(FakeTransport):
    """Ping never answers until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def ping(self) -> bool:
        self.ping_calls += 1
        await self.release.wait()
        return self.alive


def test_slow_ping_does_not_block_the_event_loop():
    transport = SlowTransport()

    async def scenario():
        done = asyncio.Event()
        guard = SessionActivityGuard(
            transport=transport,
            timers=AsyncioTimerService(),
            on_logged_out=done.set,
            idle_timeout=0.4,
            ping_interval=0.1,
        )
        guard.arm()
        await asyncio.sleep(0.05)
        guard.record_activity()
        await asyncio.sleep(0.2)
        assert transport.ping_calls == 1

        # Activity is still handled while the ping hangs
        guard.record_activity()
        activity_at = guard.last_activity
        await asyncio.wait_for(done.wait(), timeout=2)
        return guard, activity_at

    guard, activity_at = asyncio.run(scenario())

    assert guard.logged_out is True
    assert guard.last_activity == activity_at
    assert transport.ping_calls == 1
    assert transport.logout_calls == 1
