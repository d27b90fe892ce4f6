import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple
from pydantic import BaseModel
from medsync.core.config import settings
from medsync.core.errors import ConnectivityError, MedSyncError, SuggestedAction
from medsync.core.result import Result
from medsync.models.reminder import Reminder
from medsync.services.backend_client import BackendClient

logger = logging.getLogger(__name__)


Operation = Callable[[], Awaitable[Any]]


class Reachability(str, Enum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


#------This Function tags fallback data as synthetic---------
def tag_synthetic(data: Any) -> Any:
    if isinstance(data, list):
        return [tag_synthetic(item) for item in data]
    if isinstance(data, tuple):
        return tuple(tag_synthetic(item) for item in data)
    if isinstance(data, Reminder):
        links = [link.model_copy(update={"synthetic": True}) for link in data.linked_medications]
        return data.model_copy(update={"synthetic": True, "linked_medications": links})
    if isinstance(data, BaseModel) and "synthetic" in type(data).model_fields:
        return data.model_copy(update={"synthetic": True})
    if isinstance(data, dict):
        return {**data, "synthetic": True}
    return data


#------This Class handles the Connectivity Guard----------
class ConnectivityGuard:

    def __init__(
        self,
        client: BackendClient,
        probe_timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        probe_endpoints: Optional[List[str]] = None,
    ):
        self.client = client
        self.probe_timeout = probe_timeout or settings.probe_timeout
        self.max_attempts = max_attempts or settings.backend_max_retries
        self.retry_delay = settings.backend_retry_delay if retry_delay is None else retry_delay
        self.probe_endpoints = probe_endpoints if probe_endpoints is not None else settings.probe_endpoint_list
        self.last_reachability: Optional[Reachability] = None

#------This Function probes backend reachability---------
    async def probe(self) -> Reachability:
        try:
            reachability = await asyncio.wait_for(self._probe(), timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[PROBE] Reachability check timed out after {self.probe_timeout}s")
            reachability = Reachability.UNREACHABLE

        if reachability != self.last_reachability:
            logger.info(f"[PROBE] Backend is {reachability.value}")
        self.last_reachability = reachability
        return reachability

    async def _probe(self) -> Reachability:
        if not await self.client.probe_host(self.probe_timeout):
            logger.warning(f"[PROBE] Host {self.client.origin} is not reachable")
            return Reachability.UNREACHABLE

        for endpoint in self.probe_endpoints:
            status = await self.client.probe_status(f"{self.client.base_url}{endpoint}", self.probe_timeout)
            logger.debug(f"[PROBE] {endpoint} -> {status}")
            if status is not None and status != 404:
                return Reachability.REACHABLE

        status = await self.client.probe_status(f"{self.client.origin}/", self.probe_timeout)
        if status is not None and status != 404:
            logger.warning("[PROBE] Server root answers but API paths return 404, check backend_url")
            return Reachability.REACHABLE

        return Reachability.UNREACHABLE

    async def _attempt(
        self,
        operation: Operation,
        max_attempts: int,
        delay: float,
    ) -> Tuple[Any, Optional[MedSyncError], int]:
        last_error: Optional[MedSyncError] = None
        for attempt in range(1, max_attempts + 1):
            try:
                return await operation(), None, attempt
            except MedSyncError as e:
                last_error = e
                if not e.recoverable:
                    logger.warning(f"[RETRY] Attempt {attempt} failed with non-recoverable {e.kind.value}: {e.detail}")
                    return None, e, attempt
                logger.warning(f"[RETRY] Attempt {attempt}/{max_attempts} failed: {e.detail}")

            if attempt < max_attempts:
                logger.info(f"[RETRY] Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)

        return None, last_error, max_attempts

#------This Function runs an operation with bounded retries---------
    async def with_retry(
        self,
        operation: Operation,
        max_attempts: Optional[int] = None,
        delay: Optional[float] = None,
    ) -> Result:
        """Call ``operation`` up to ``max_attempts`` times with a fixed delay.

        A failure that used a budget of several attempts comes back with
        ``exhausted=True`` and ``use_offline`` as the suggested action. A
        single-attempt failure keeps ``retry``, and a non-recoverable error
        stops early with its own suggested action.
        """
        limit = max_attempts or self.max_attempts
        pause = self.retry_delay if delay is None else delay

        value, error, attempts = await self._attempt(operation, limit, pause)
        if error is None:
            return Result.success(value, attempts=attempts)

        if error.recoverable and limit > 1:
            logger.error(f"[RETRY] Giving up after {attempts} attempts: {error.detail}")
            result = Result.failure(error, attempts=attempts, exhausted=True)
            result.error.suggested_action = SuggestedAction.USE_OFFLINE
            return result
        return Result.failure(error, attempts=attempts)

#------This Function runs an operation with a synthetic fallback---------
    async def with_fallback(
        self,
        operation: Operation,
        fallback_data: Any,
        no_fallback: bool = False,
    ) -> Result:
        reachability = await self.probe()
        if reachability == Reachability.UNREACHABLE:
            error = ConnectivityError("Backend is unreachable")
            if no_fallback:
                raise error
            logger.warning("[FALLBACK] Backend unreachable, serving sample data")
            return Result.fallback(tag_synthetic(self._resolve(fallback_data)), error, attempts=0)

        value, error, attempts = await self._attempt(operation, 1, self.retry_delay)
        if error is None:
            return Result.success(value, attempts=attempts)

        if no_fallback:
            raise error

        logger.warning(f"[FALLBACK] {error.kind.value} failure, serving sample data: {error.detail}")
        return Result.fallback(
            tag_synthetic(self._resolve(fallback_data)),
            error,
            attempts=attempts,
        )

    @staticmethod
    def _resolve(fallback_data: Any) -> Any:
        return fallback_data() if callable(fallback_data) else fallback_data
