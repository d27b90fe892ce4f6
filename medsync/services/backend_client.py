import logging
from typing import Any, List, Optional
from urllib.parse import quote, urlsplit
import httpx
from medsync.core.config import settings
from medsync.core.errors import (
    AuthError,
    ConnectivityError,
    MedSyncError,
    NotFoundError,
    RemoteError,
    SchemaMismatchError,
    ValidationError,
    is_schema_mismatch_message,
)
from medsync.services.schema_adapter import extract_records

logger = logging.getLogger(__name__)


STATUS_ACTIONS = ("taken", "skipped", "reset")


#------This Class handles the bearer token supply----------
class AuthCollaborator:
    """Holds the session token. The default implementation cannot refresh."""

    def __init__(self, token: str = ""):
        self._token = (token or "").strip()

    async def get_token(self) -> str:
        return self._token

    def set_token(self, token: str):
        self._token = (token or "").strip()

    async def refresh_token(self) -> Optional[str]:
        return None


#------This Class handles token refresh against the auth endpoint----------
class EndpointTokenRefresher(AuthCollaborator):

    def __init__(
        self,
        token: str = "",
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(token)
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self._transport = transport
        self._timeout = timeout or settings.backend_timeout

    async def refresh_token(self) -> Optional[str]:
        current = await self.get_token()
        if not current:
            return None

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.post(
                    f"{self.base_url}/auth/refresh-token",
                    headers={"Authorization": f"Bearer {current}"},
                )
        except httpx.HTTPError as e:
            logger.warning(f"[AUTH] Token refresh request failed: {type(e).__name__}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"[AUTH] Token refresh rejected: {response.status_code}")
            return None

        try:
            body = response.json()
        except ValueError:
            logger.warning("[AUTH] Token refresh returned a non-JSON body")
            return None

        details = body.get("details") or body.get("data") or {}
        new_token = details.get("token") if isinstance(details, dict) else None
        new_token = new_token or body.get("token")
        if not new_token:
            logger.warning("[AUTH] Token refresh response carried no token")
            return None

        self.set_token(new_token)
        logger.info("[AUTH] Session token refreshed")
        return new_token


#------This Class handles the Backend Client----------
class BackendClient:

    def __init__(
        self,
        auth: Optional[AuthCollaborator] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth = auth or AuthCollaborator(settings.auth_token)
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.timeout = timeout or settings.backend_timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def origin(self) -> str:
        parts = urlsplit(self.base_url)
        return f"{parts.scheme}://{parts.netloc}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=self.timeout,
                    read=self.timeout,
                    write=self.timeout,
                    pool=5.0,
                ),
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30.0,
                ),
                transport=self._transport,
            )
        return self._http_client

    async def close(self):
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def _send(
        self,
        method: str,
        url: str,
        body: Any = None,
        token: str = "",
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        extra = {}
        if timeout is not None:
            extra["timeout"] = timeout

        client = await self._get_client()
        try:
            return await client.request(method, url, json=body, headers=headers, **extra)
        except httpx.TimeoutException as e:
            logger.warning(f"[BACKEND] Timeout on {method} {url}")
            raise ConnectivityError(f"Request to {url} timed out") from e
        except httpx.TransportError as e:
            logger.warning(f"[BACKEND] Cannot reach backend at {self.base_url}: {type(e).__name__}")
            raise ConnectivityError(f"Cannot reach backend at {self.base_url}") from e
        except httpx.RequestError as e:
            logger.warning(f"[BACKEND] {method} {url} failed: {type(e).__name__}: {e}")
            raise RemoteError(f"Unreadable response from {url}: {type(e).__name__}") from e

#------This Function issues an authenticated request---------
    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        token = await self.auth.get_token()
        response = await self._send(method, url, body, token, timeout)

        if response.status_code == 401 and token and not path.startswith("/auth/"):
            logger.info(f"[BACKEND] {method} {path} rejected with 401, refreshing token")
            new_token = await self.auth.refresh_token()
            if not new_token:
                raise AuthError("Session expired. Please login again.", status_code=401)
            response = await self._send(method, url, body, new_token, timeout)

        return self._handle_response(method, path, response)

    def _handle_response(self, method: str, path: str, response: httpx.Response) -> Any:
        payload: Any = None
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                payload = response.json()
            except ValueError:
                payload = None
        message = self._message_from(payload, response)

        if 200 <= response.status_code < 300:
            if isinstance(payload, dict) and payload.get("success") is False:
                logger.warning(f"[BACKEND] {method} {path} reported failure: {message}")
                raise self.error_for_status(response.status_code, message)
            return payload if payload is not None else {"success": True}

        logger.warning(f"[BACKEND] {method} {path} failed: {response.status_code} {message}")
        raise self.error_for_status(response.status_code, message)

    @staticmethod
    def _message_from(payload: Any, response: httpx.Response) -> str:
        if isinstance(payload, dict):
            for key in ("message", "error", "detail"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
        if payload is None:
            return response.text or response.reason_phrase
        return response.reason_phrase

#------This Function maps an HTTP status onto the error taxonomy---------
    @staticmethod
    def error_for_status(status_code: int, message: str) -> MedSyncError:
        if is_schema_mismatch_message(message):
            return SchemaMismatchError(message, status_code=status_code)
        if status_code in (401, 403):
            return AuthError(message or "Please log in again.", status_code=status_code)
        if status_code == 404:
            return NotFoundError(message or "Not found", status_code=status_code)
        if status_code in (400, 422):
            return ValidationError(message, status_code=status_code)
        return RemoteError(message or f"Backend returned {status_code}", status_code=status_code)

#------This Function checks network reachability of the host---------
    async def probe_host(self, timeout: float) -> bool:
        try:
            await self._send("HEAD", self.origin, timeout=timeout)
            return True
        except RemoteError:
            # the host answered, only the body was unusable
            return True
        except ConnectivityError:
            return False

    async def probe_status(self, url: str, timeout: float) -> Optional[int]:
        token = await self.auth.get_token()
        try:
            response = await self._send("GET", url, token=token, timeout=timeout)
        except (ConnectivityError, RemoteError):
            return None
        return response.status_code

    async def fetch_medications(self) -> List[Any]:
        response = await self.request("GET", "/medications")
        return extract_records(response, "medications")

    async def create_medication(self, payload: dict) -> Any:
        return await self.request("POST", "/medications", payload)

    async def create_simple_medication(self, payload: dict) -> Any:
        return await self.request("POST", "/medications/simple", payload)

    async def update_medication(self, medication_id: str, payload: dict) -> Any:
        return await self.request("PUT", f"/medications/{quote(str(medication_id), safe='')}", payload)

    async def delete_medication(self, medication_id: str) -> Any:
        return await self.request("DELETE", f"/medications/{quote(str(medication_id), safe='')}")

    async def fetch_reminders(self, reminder_date: str) -> List[Any]:
        response = await self.request(
            "GET",
            f"/reminders?date={quote(reminder_date, safe='-')}&include_medications=true",
        )
        return extract_records(response, "reminders")

    async def create_reminder(self, payload: dict) -> Any:
        return await self.request("POST", "/reminders", payload)

#------This Function commits a medication status change---------
    async def set_medication_status(self, reminder_med_id: str, action: str) -> Any:
        if action not in STATUS_ACTIONS:
            raise ValueError(f"Unknown status action: {action}")
        return await self.request(
            "PUT",
            f"/reminders/medications/{quote(str(reminder_med_id), safe='')}/{action}",
        )
