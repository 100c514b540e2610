"""Ordered fallback chain shared by the fetcher and the download orchestrator."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Sequence, Tuple

from .errors import StrategiesExhausted

logger = logging.getLogger("media_grabber")


class Strategy(NamedTuple):
    name: str
    func: Callable[[Any], Awaitable[Any]]


async def first_success(strategies: Sequence[Strategy], arg: Any,
                        timeout: Optional[float] = None) -> Tuple[str, Any]:
    """Run strategies one after another; return (name, value) of the first success.

    Each attempt is isolated: any exception (or timeout) counts as that
    strategy's failure and the next one starts only after it is observed.
    Raises StrategiesExhausted when every strategy failed.
    """
    failures = []
    for strategy in strategies:
        try:
            if timeout:
                value = await asyncio.wait_for(strategy.func(arg), timeout)
            else:
                value = await strategy.func(arg)
        except Exception as e:
            if isinstance(e, asyncio.TimeoutError):
                e = asyncio.TimeoutError(f"timed out after {timeout}s")
            logger.warning(f"[{strategy.name}] failed: {type(e).__name__}: {e}")
            failures.append((strategy.name, e))
            continue
        logger.info(f"[{strategy.name}] succeeded")
        return strategy.name, value

    raise StrategiesExhausted(failures)
