"""
Retry/Backoff Executor.

Every remote call of the sync goes through ``RetryExecutor.execute``.
Each attempt produces a ``CallResult``; the loop runs over the attempt
count and waits ``base_delay * 2**n`` seconds after the n-th failure.
Before a retry, an expired access token is refreshed first.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from hubsync.core.exceptions import RetryExhaustedError
from hubsync.services.hubspot_sync.session import AccountSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

RemoteCall = Callable[[], Awaitable[T]]
RefreshHook = Callable[[AccountSession], Awaitable[bool]]
SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass
class CallResult(Generic[T]):
    """Outcome of one attempt."""
    ok: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "CallResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "CallResult[T]":
        return cls(ok=False, error=error)


async def attempt(call: RemoteCall) -> CallResult:
    """Run ``call`` once and capture its outcome."""
    try:
        return CallResult.success(await call())
    except asyncio.CancelledError:
        raise
    except Exception as e:
        return CallResult.failure(e)


class RetryExecutor:
    """
    Bounded retries with exponential backoff and refresh-on-expiry.

    The refresh hook is optional: the executor used by the credential
    refresher itself is built without one, so a failing token exchange
    can never trigger another token exchange.
    """

    def __init__(
        self,
        max_retries: int = 4,
        base_delay: float = 5.0,
        refresh_hook: Optional[RefreshHook] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.refresh_hook = refresh_hook
        self._sleep = sleep

    def backoff_delay(self, failures: int) -> float:
        """Seconds to wait after ``failures`` failed attempts."""
        return self.base_delay * (2 ** failures)

    async def execute(
        self,
        call: RemoteCall,
        session: AccountSession,
        operation: str,
        max_retries: Optional[int] = None,
    ) -> Any:
        """
        Run ``call`` with retries.

        Args:
            call: Zero-argument coroutine factory; re-invoked on every attempt
                so a refreshed token is picked up
            session: Account the call is made for
            operation: Name used in logs and in the terminal error
            max_retries: Extra attempts after the first (executor default when None)

        Returns:
            The value of the first successful attempt

        Raises:
            RetryExhaustedError: If every attempt failed
        """
        retries = self.max_retries if max_retries is None else max_retries
        total_attempts = retries + 1
        result: CallResult = CallResult.failure(RuntimeError("not attempted"))

        for attempt_number in range(1, total_attempts + 1):
            result = await attempt(call)
            if result.ok:
                return result.value

            if attempt_number == total_attempts:
                break

            delay = self.backoff_delay(attempt_number)
            logger.warning(
                f"{operation} failed (attempt {attempt_number}/{total_attempts}), "
                f"retrying in {delay:.0f}s: {result.error}",
                extra=session.log_context(operation),
            )

            if self.refresh_hook is not None and session.token_expired():
                logger.info("Access token expired, refreshing before retry", extra=session.log_context(operation))
                await self.refresh_hook(session)

            await self._sleep(delay)

        logger.error(
            f"{operation} failed after {total_attempts} attempts: {result.error}",
            extra=session.log_context(operation),
        )
        raise RetryExhaustedError(operation, total_attempts, result.error)
