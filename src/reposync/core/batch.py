"""
Concurrency-bounded batch runner.

Runs one asynchronous operation per key and returns the results in key
order. Every key's outcome is recorded as an Ok/Err result so that a
failure never stops the other keys; when anything failed, a single
``BatchError`` carrying every failure is raised at the end.

Modes:
    - sequential: keys run strictly one after another.
    - unbounded: all keys start together.
    - bounded by N: keys run in consecutive chunks of N, and each chunk
      must settle completely before the next one starts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from .errors import BatchError
from .result import Err, Ok, Result, partition

logger = logging.getLogger(__name__)

T = TypeVar("T")

OperationFactory = Callable[[str], Awaitable[T]]


def chunked(keys: Sequence[str], size: int) -> List[List[str]]:
    """Split keys into consecutive chunks of ``size``; the last may be smaller."""
    return [list(keys[i:i + size]) for i in range(0, len(keys), size)]


class BatchRunner:
    """
    Applies an operation to every key with bounded concurrency.

    Attributes:
        sequential: Process keys one after another.
        concurrency: Chunk size; None or a value below 1 means unbounded.
    """

    def __init__(
        self,
        sequential: bool = False,
        concurrency: Optional[int] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.sequential = sequential
        self.concurrency = concurrency
        self.log = log or logger

    async def settle(self, keys: Sequence[str], factory: OperationFactory) -> List[Result[T, BaseException]]:
        """
        Run the operation for every key and capture each outcome.

        Returns:
            One Ok or Err per key, in key order.
        """
        return await self._execute(list(keys), factory, [])

    async def run(self, keys: Sequence[str], factory: OperationFactory) -> List[T]:
        """
        Run the operation for every key and return the values in key order.

        Raises:
            BatchError: If any key failed; failures are listed in the order
                they were observed.
        """
        failures: List[Tuple[str, BaseException]] = []
        values, errors = partition(await self._execute(list(keys), factory, failures))
        if errors:
            raise BatchError(failures)
        return values

    async def _execute(
        self,
        keys: List[str],
        factory: OperationFactory,
        failures: List[Tuple[str, BaseException]],
    ) -> List[Result[T, BaseException]]:
        async def run_one(key: str) -> Result[T, BaseException]:
            try:
                return Ok(await factory(key))
            except Exception as e:
                self.log.debug(f"[{key}]: operation failed: {e}")
                failures.append((key, e))
                return Err(e)

        if self.sequential:
            self.log.debug(f"Running {len(keys)} operations sequentially")
            return [await run_one(key) for key in keys]

        if not self.concurrency or self.concurrency < 1 or self.concurrency >= len(keys):
            self.log.debug(f"Running {len(keys)} operations in parallel")
            return list(await asyncio.gather(*(run_one(key) for key in keys)))

        results: List[Result[T, BaseException]] = []
        for index, chunk in enumerate(chunked(keys, self.concurrency)):
            self.log.debug(f"Running chunk {index + 1} with {len(chunk)} operations")
            results.extend(await asyncio.gather(*(run_one(key) for key in chunk)))
        return results


async def run_batch(
    keys: Sequence[str],
    factory: OperationFactory,
    sequential: bool = False,
    concurrency: Optional[int] = None,
    log: Optional[logging.Logger] = None,
) -> List[T]:
    """Convenience wrapper around ``BatchRunner.run``."""
    return await BatchRunner(sequential=sequential, concurrency=concurrency, log=log).run(keys, factory)
