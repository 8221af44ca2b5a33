from app.session.guard import GuardState, SessionActivityGuard, MONITORED_EVENTS
from app.session.timers import AsyncioTimerService, TimerHandle, TimerService
from app.session.transport import HttpSessionTransport, SessionTransport
