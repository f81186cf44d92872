"""Connectivity prober for the durable identity backend.

Retry logic:
- up to ``attempts`` heartbeat reads (default 3)
- fixed backoff between attempts (default 1 second)
- only ConnectivityError is retried

A successful heartbeat means "reachable" even if the secondary capability
check (settings read) fails; that partial capability is logged.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from domain.identity.core.exceptions.identity_errors import ConnectivityError
from domain.identity.core.ports.identity_store import IIdentityStore
from infrastructure.config import get_probe_attempts, get_probe_backoff_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a probe sequence."""

    reachable: bool
    attempts: int
    capabilities: Dict[str, bool] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def partial(self) -> bool:
        """Reachable but some secondary capability failed."""
        return self.reachable and not all(self.capabilities.values())


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "Identity backend heartbeat failed, retrying",
        extra={
            "attempt": retry_state.attempt_number,
            "error": str(outcome.exception()) if outcome else None,
        },
    )


class ConnectivityProber:
    """Decide whether the durable backend is reachable.

    Example:
        >>> prober = ConnectivityProber(mongo_store)
        >>> result = await prober.probe()
        >>> store = mongo_store if result.reachable else InMemoryIdentityStore()
    """

    def __init__(
        self,
        store: IIdentityStore,
        attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        """
        Initialize prober.

        Args:
            store: Durable store to probe
            attempts: Max heartbeat attempts (default PROBE_ATTEMPTS or 3)
            backoff_seconds: Wait between attempts (default PROBE_BACKOFF_SECONDS or 1.0)
        """
        self._store = store
        self.attempts = attempts if attempts is not None else get_probe_attempts()
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else get_probe_backoff_seconds()
        )

    async def _heartbeat(self) -> None:
        try:
            await self._store.ping()
        except ConnectivityError:
            raise
        except Exception as e:
            raise ConnectivityError(f"Heartbeat failed: {e}") from e

    async def probe(self) -> ProbeResult:
        """Run the bounded probe sequence.

        Returns:
            ProbeResult (never raises for connectivity failures)
        """
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_fixed(self.backoff_seconds),
                retry=retry_if_exception_type(ConnectivityError),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    await self._heartbeat()
        except ConnectivityError as e:
            logger.warning(
                "Identity backend unreachable",
                extra={
                    "backend": self._store.backend_name,
                    "attempts": attempts,
                    "error": str(e),
                },
            )
            return ProbeResult(
                reachable=False,
                attempts=attempts,
                capabilities={"heartbeat": False},
                error=str(e),
            )

        capabilities = {"heartbeat": True, "settings": True}
        try:
            await self._store.read_settings()
        except Exception as e:
            capabilities["settings"] = False
            logger.warning(
                "Identity backend reachable with partial capability: settings read failed",
                extra={"backend": self._store.backend_name, "error": str(e)},
            )

        logger.info(
            "Identity backend reachable",
            extra={"backend": self._store.backend_name, "attempts": attempts},
        )
        return ProbeResult(reachable=True, attempts=attempts, capabilities=capabilities)
