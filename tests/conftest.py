"""Shared fixtures: a controllable clock and a scripted HTTP transport."""

from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, List, Tuple, Union

import httpx
import pytest

from fip_monitor.models.config import MonitorConfig
from fip_monitor.probe.client import ProbeClient

PEER_URL = "http://10.0.0.2:8080/"
ACTIVE_URL = "http://metadata.test/metadata/v1/floating_ip/ipv4/active"
DROPLET_ID_URL = "http://metadata.test/metadata/v1/id"
ASSIGN_URL = "https://api.test/v2/floating_ips/203.0.113.10/actions"
ALERT_URL = "https://alerts.test/1/messages.json"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: float) -> None:
        self.now = self.now + timedelta(milliseconds=ms)


Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class ScriptedTransport:
    """
    Answers requests from per-(method, url) queues.
    The last queued reply is repeated once the queue runs dry.
    """

    def __init__(self):
        self._replies: Dict[Tuple[str, str], Deque[Reply]] = defaultdict(deque)
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, *replies: Reply) -> None:
        self._replies[(method.upper(), url)].extend(replies)

    def calls(self, method: str, url: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and str(r.url) == url
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._replies.get((request.method, str(request.url)))
        if not queue:
            raise httpx.ConnectError("no route", request=request)
        reply = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        # Fresh copy so a repeated reply is never shared between requests.
        return httpx.Response(
            reply.status_code, headers=reply.headers, content=reply.content
        )


def make_config(**overrides) -> MonitorConfig:
    values = dict(
        bind_address="10.0.0.1",
        bind_port=8080,
        peer_address="10.0.0.2",
        floating_ip_address="203.0.113.10",
        api_token="secret-token",
        droplet_id="1234567",
        metadata_url="http://metadata.test/metadata/v1",
        api_url="https://api.test",
        alert_url="https://alerts.test",
        http_request_timeout_ms=1000,
        heartbeat_interval_ms=30000,
        heartbeat_initial_delay_ms=30000,
        acquire_ip_after_ms=120000,
        acquire_ip_delay_ms=60000,
        alerts_enabled=True,
        pushover_token="app-token",
        pushover_user_key="user-key",
        alert_retry_delay_ms=0,
    )
    values.update(overrides)
    return MonitorConfig(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def probe_client(transport: ScriptedTransport) -> ProbeClient:
    return ProbeClient(
        timeout=1.0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(transport.handler)),
    )
