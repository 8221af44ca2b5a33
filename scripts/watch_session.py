#!/usr/bin/env python3
"""Keep an API session alive from a terminal while the user is active.

Flow:
1) Login with email or national id
2) Read idle timeout and ping interval from the session ping endpoint
3) Treat every line typed on stdin as user activity
4) Log out after the idle timeout, or as soon as the server rejects a ping
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any, Dict, Optional

import httpx

from app.session import AsyncioTimerService, HttpSessionTransport, SessionActivityGuard
from app.session.transport import PING_PATH

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
LOGIN_PATH = "/api/v1/auth/login"


class ApiError(RuntimeError):
    pass


def _require_success(response: httpx.Response, context: str) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        payload = response.text
    if response.status_code >= 400 or not isinstance(payload, dict) or payload.get("success") is False:
        raise ApiError(f"{context} failed ({response.status_code}): {payload}")
    return payload


async def login(client: httpx.AsyncClient, identifier: str, password: str) -> None:
    response = await client.post(LOGIN_PATH, json={"identifier": identifier, "password": password})
    _require_success(response, "Login")


async def session_timing(client: httpx.AsyncClient) -> Dict[str, Any]:
    payload = _require_success(await client.post(PING_PATH), "Session ping")
    return payload.get("data") or {}


async def watch(client: httpx.AsyncClient, idle_timeout: float, ping_interval: float) -> None:
    loop = asyncio.get_running_loop()
    finished = asyncio.Event()
    timers = AsyncioTimerService(loop)

    guard = SessionActivityGuard(
        transport=HttpSessionTransport(client=client),
        timers=timers,
        on_logged_out=finished.set,
        idle_timeout=idle_timeout,
        ping_interval=ping_interval,
    )

    def on_stdin() -> None:
        line = sys.stdin.readline()
        if not line:
            guard.logout(reason="stdin_closed")
            return
        guard.handle_event("keydown")

    loop.add_reader(sys.stdin.fileno(), on_stdin)
    guard.set_authenticated(True)
    print(f"Session armed: idle timeout {idle_timeout:.0f}s, ping every {ping_interval:.0f}s")
    try:
        await finished.wait()
    finally:
        loop.remove_reader(sys.stdin.fileno())
        guard.disarm()
        await timers.drain()
    print("Logged out.")


async def run(
    base_url: str,
    identifier: str,
    password: str,
    idle_override: Optional[float],
    ping_override: Optional[float],
) -> None:
    async with httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=30.0) as client:
        await login(client, identifier, password)
        timing = await session_timing(client)
        idle_timeout = idle_override or float(timing["idle_timeout"])
        ping_interval = ping_override or float(timing["ping_interval"])
        await watch(client, idle_timeout, ping_interval)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Hold a Digital Address API session open while active")
    parser.add_argument("--base-url", default=os.getenv("DIGITAL_ADDRESS_BASE_URL", DEFAULT_BASE_URL))
    parser.add_argument("--identifier", default=os.getenv("DIGITAL_ADDRESS_IDENTIFIER"))
    parser.add_argument("--password", default=os.getenv("DIGITAL_ADDRESS_PASSWORD"))
    parser.add_argument("--idle-timeout", type=float, help="Override the server-advertised idle timeout")
    parser.add_argument("--ping-interval", type=float, help="Override the server-advertised ping interval")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not args.identifier or not args.password:
        print("ERROR: Set --identifier/--password or DIGITAL_ADDRESS_IDENTIFIER/DIGITAL_ADDRESS_PASSWORD", file=sys.stderr)
        return 2

    asyncio.run(run(args.base_url, args.identifier, args.password, args.idle_timeout, args.ping_interval))
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except ApiError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise SystemExit(1)
    except KeyboardInterrupt:
        raise SystemExit(130)
