# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# deadline.py

"""
Race proof generation against a wall-clock deadline.

Proving is CPU-heavy and cannot be interrupted, so the guard does not cancel
anything. The computation runs on a worker thread and its `Future` is the
single result slot: if the deadline passes first the caller gets
`ProofTimeout` and the future is dropped. Whatever the worker produces later
lands in a future nobody holds any more.
"""

import asyncio
import concurrent.futures
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

from outcome_zk.constants import DEFAULT_MAX_WORKERS, DEFAULT_PROOF_TIMEOUT
from outcome_zk.errors import ProofTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeadlineGuard:
    def __init__(
        self,
        timeout: float = DEFAULT_PROOF_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
        executor: ThreadPoolExecutor | None = None,
    ):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.timeout = timeout
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="outcome-zk-prover"
        )

    def run(self, fn: Callable[..., T], *args) -> T:
        """
        Run `fn(*args)` on a worker and wait at most `timeout` seconds.

        Exceptions raised by `fn` before the deadline propagate unchanged.

        Raises:
            ProofTimeout: If `fn` has not settled when the deadline passes.
        """
        start = time.monotonic()
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError:
            # still queued: drop it; already running: it finishes unobserved
            future.cancel()
            logger.warning(f"Proof generation abandoned after {time.monotonic() - start:.2f}s")
            raise ProofTimeout(f"proof generation timed out after {self.timeout:g}s") from None

    async def run_async(self, fn: Callable[..., T], *args) -> T:
        """
        Awaitable form of `run` for event-loop callers.

        The event loop is never blocked; on timeout the executor future is
        cancelled from the loop's side only and the worker keeps running.
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, fn, *args)
        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Proof generation abandoned after {self.timeout:g}s")
            raise ProofTimeout(f"proof generation timed out after {self.timeout:g}s") from None

    def shutdown(self) -> None:
        """Stop accepting work without waiting for abandoned computations."""
        self._executor.shutdown(wait=False, cancel_futures=True)
