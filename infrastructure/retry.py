import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Default classifier: anything not explicitly marked non-retryable is transient."""
    return getattr(exc, "retryable", True)


@dataclass
class RetryPolicy:
    """Bounded retry with increasing backoff.

    Delay before attempt n+1 is `base_delay * backoff_factor ** (n - 1)`, capped
    at `max_delay`. Only exceptions accepted by `transient` are retried; the
    last one is re-raised once attempts run out.
    """
    max_attempts: int = 5
    base_delay: float = 2.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    transient: Callable[[BaseException], bool] = is_transient
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * self.backoff_factor ** (attempt - 1))

    async def run(self, operation: Callable[[], Awaitable[T]], *, description: str = "operation") -> T:
        attempt = 1
        while True:
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not self.transient(exc) or attempt >= self.max_attempts:
                    if attempt > 1:
                        logger.warning(f"[RETRY] {description} gave up after {attempt} attempt(s): {exc}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"[RETRY] {description} failed (attempt {attempt}/{self.max_attempts}): "
                    f"{exc.__class__.__name__}: {exc}; retrying in {delay:g}s"
                )
                await self.sleep(delay)
                attempt += 1

