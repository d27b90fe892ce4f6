import json
import asyncio
from typing import Any, Callable, Dict, List, Tuple

import httpx

from medsync.services.backend_client import AuthCollaborator, BackendClient
from medsync.services.connectivity import ConnectivityGuard


BASE_URL = "http://backend.test/api"
HEALTH_PATHS = ("/health", "/auth/status", "/")


def _run(coro):
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop and loop.is_running():
        return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout=30)
    return asyncio.run(coro)


class BackendStub:
    """In-memory backend behind an httpx.MockTransport.

    Responses are queued per (method, path); the last queued response keeps
    answering once the queue is drained. Health-check traffic is kept apart
    from ``calls`` so tests can assert that no data request was sent.
    ``health_status`` overrides the 200 a health path answers with, and
    ``health_delay`` slows every health answer down.
    """

    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.routes: Dict[Tuple[str, str], List[Tuple[int, Any]]] = {}
        self.failures: Dict[Tuple[str, str], Callable[[httpx.Request], Exception]] = {}
        self.calls: List[Tuple[str, str, Any]] = []
        self.health_checks: List[Tuple[str, str]] = []
        self.health_status: Dict[str, int] = {}
        self.health_delay = 0.0
        self.headers: List[Dict[str, str]] = []

    def add(self, method: str, path: str, *responses: Tuple[int, Any]):
        self.routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def fail(self, method: str, path: str, error: Callable[[httpx.Request], Exception]):
        self.failures[(method.upper(), path)] = error
        return self

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls_to(self, method: str, path: str) -> List[Any]:
        return [body for m, p, body in self.calls if m == method and p == path]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if not self.reachable:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):] or "/"

        if request.method == "HEAD" or (request.method == "GET" and path in HEALTH_PATHS):
            self.health_checks.append((request.method, path))
            if self.health_delay:
                await asyncio.sleep(self.health_delay)
            status = 200 if request.method == "HEAD" else self.health_status.get(path, 200)
            return httpx.Response(status, json={"status": "ok" if status == 200 else "error"})

        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))
        self.headers.append(dict(request.headers))

        failure = self.failures.get((request.method, path))
        if failure is not None:
            raise failure(request)

        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"success": False, "message": f"No route for {path}"})

        status, payload = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(status, json=payload)


def make_client(stub: BackendStub, token: str = "token-1", auth: AuthCollaborator = None) -> BackendClient:
    return BackendClient(
        auth=auth or AuthCollaborator(token),
        base_url=BASE_URL,
        timeout=2.0,
        transport=stub.transport(),
    )


def make_guard(client: BackendClient, max_attempts: int = 3, probe_timeout: float = 2.0) -> ConnectivityGuard:
    return ConnectivityGuard(
        client,
        probe_timeout=probe_timeout,
        max_attempts=max_attempts,
        retry_delay=0,
        probe_endpoints=["/health"],
    )
