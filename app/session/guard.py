"""Client-side idle logout and liveness pings for an authenticated session.

Two authorities can end a session: local inactivity (the idle timer) and the
server (a rejected liveness ping). Both feed the same idempotent logout.
Network calls are spawned on the timer service, so a slow request never
holds up timer callbacks or activity handling.
"""
import enum
import time
from typing import Callable, Optional

import httpx
import structlog

from app.session.timers import TimerHandle, TimerService
from app.session.transport import SessionTransport

logger = structlog.get_logger()

DEFAULT_IDLE_TIMEOUT_SECONDS = 20 * 60
DEFAULT_PING_INTERVAL_SECONDS = 60

MONITORED_EVENTS = frozenset({"pointermove", "mousemove", "keydown", "click", "touchstart", "scroll"})


class GuardState(str, enum.Enum):
    ARMED = "armed"
    DISARMED = "disarmed"


class SessionActivityGuard:
    def __init__(
        self,
        transport: SessionTransport,
        timers: TimerService,
        on_logged_out: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        ping_interval: float = DEFAULT_PING_INTERVAL_SECONDS,
    ):
        if ping_interval <= 0 or ping_interval >= idle_timeout:
            raise ValueError("ping_interval must be positive and shorter than idle_timeout")

        self.transport = transport
        self.timers = timers
        self.on_logged_out = on_logged_out
        self.clock = clock
        self.idle_timeout = idle_timeout
        self.ping_interval = ping_interval

        self.last_activity: Optional[float] = None
        self._idle_handle: Optional[TimerHandle] = None
        self._ping_handle: Optional[TimerHandle] = None
        self._state = GuardState.DISARMED
        # Bumped on every arm/disarm; callbacks from an older generation are ignored
        self._generation = 0
        self._logged_out = False
        self._ping_in_flight = False

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def logged_out(self) -> bool:
        return self._logged_out

    def set_authenticated(self, authenticated: bool) -> None:
        if authenticated:
            self.arm()
        else:
            self.disarm()

    def arm(self) -> None:
        if self._state is GuardState.ARMED:
            return

        self._generation += 1
        self._state = GuardState.ARMED
        self._logged_out = False
        self.last_activity = self.clock()

        generation = self._generation
        self._schedule_idle(generation)
        self._ping_handle = self.timers.call_every(
            self.ping_interval, lambda: self._on_ping_tick(generation)
        )
        logger.debug("session_guard_armed", idle_timeout=self.idle_timeout, ping_interval=self.ping_interval)

    def disarm(self) -> None:
        self._generation += 1
        self._cancel_idle()
        if self._ping_handle is not None:
            self._ping_handle.cancel()
            self._ping_handle = None
        if self._state is GuardState.ARMED:
            logger.debug("session_guard_disarmed")
        self._state = GuardState.DISARMED

    def record_activity(self) -> None:
        if self._state is not GuardState.ARMED:
            return
        self.last_activity = self.clock()
        self._cancel_idle()
        self._schedule_idle(self._generation)

    def handle_event(self, event_name: str) -> None:
        if event_name in MONITORED_EVENTS:
            self.record_activity()

    def logout(self, reason: str = "manual") -> None:
        """End the session. Safe to call repeatedly; only the first call has any effect.

        Timers are cleared immediately. The logout request runs in the background and
        ``on_logged_out`` fires once it settles, whether or not it succeeded.
        """
        if self._logged_out:
            return
        self._logged_out = True
        self.disarm()

        logger.info("session_logout", reason=reason)
        self.timers.spawn(self._send_logout(reason))

    async def _send_logout(self, reason: str) -> None:
        try:
            await self.transport.logout()
        except httpx.HTTPError as exc:
            # Local cleanup still runs; the server session may already be gone
            logger.warning("session_logout_request_failed", reason=reason, error=str(exc))
        finally:
            self.on_logged_out()

    def _schedule_idle(self, generation: int) -> None:
        self._idle_handle = self.timers.call_later(
            self.idle_timeout, lambda: self._on_idle_timeout(generation)
        )

    def _cancel_idle(self) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
            self._idle_handle = None

    def _on_idle_timeout(self, generation: int) -> None:
        if generation != self._generation or self._state is not GuardState.ARMED:
            return
        self._idle_handle = None
        self.logout(reason="idle_timeout")

    def _on_ping_tick(self, generation: int) -> None:
        if generation != self._generation or self._state is not GuardState.ARMED:
            return
        # Only ping on behalf of a user who was active during the last interval
        if self.clock() - self.last_activity >= self.ping_interval:
            return
        if self._ping_in_flight:
            logger.debug("session_ping_skipped")
            return
        self._ping_in_flight = True
        self.timers.spawn(self._ping(generation))

    async def _ping(self, generation: int) -> None:
        try:
            alive = await self.transport.ping()
        except httpx.HTTPError as exc:
            logger.warning("session_ping_error", error=str(exc))
            alive = False
        finally:
            self._ping_in_flight = False
        # The session may have been disarmed or re-armed while the request was out
        if generation != self._generation or self._state is not GuardState.ARMED:
            return
        if not alive:
            self.logout(reason="ping_rejected")
