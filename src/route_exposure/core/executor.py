"""Bounded-concurrency execution of remote raster queries.

Queries are described up front (see ``plan_trip_exposure`` and
``plan_region_cells``) and dispatched here. Every remote call carries a
timeout; resource-limit failures are retried at a coarser scale with
exponential backoff; results are collected by input index so callers get
them back in the order they were planned.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, TypeVar

from route_exposure.config import Settings
from route_exposure.core.errors import PipelineCancelled, RasterServiceError
from route_exposure.core.scale import MAX_SCALE_M

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class CancelToken:
    """Cooperative abort flag with an optional wall-clock deadline."""

    def __init__(self, deadline_s: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + deadline_s if deadline_s is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise PipelineCancelled("Exposure run was cancelled")

    def sleep(self, seconds: float) -> None:
        """Sleep that wakes up early on cancel."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._event.wait(seconds)
        self.raise_if_cancelled()


@dataclass(frozen=True)
class RetryPolicy:
    timeout_s: float = 30.0
    max_retries: int = 3
    backoff_s: float = 0.5
    coarsen_factor: float = 2.0
    max_scale_m: float = MAX_SCALE_M

    @classmethod
    def from_settings(cls, s: Settings) -> "RetryPolicy":
        return cls(
            timeout_s=s.query_timeout_s,
            max_retries=s.max_retries,
            backoff_s=s.backoff_s,
            coarsen_factor=s.coarsen_factor,
        )


@dataclass(frozen=True)
class QueryOutcome:
    value: Optional[float] = None
    scale_m: Optional[float] = None
    attempts: int = 0
    error: Optional[str] = None
    retryable: bool = False  # error came from a resource limit, not a hard failure

    @property
    def failed(self) -> bool:
        return self.error is not None


class QueryExecutor:
    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        max_workers: int = 8,
        cancel: Optional[CancelToken] = None,
    ):
        self.policy = policy or RetryPolicy()
        self.max_workers = max_workers
        self.cancel = cancel or CancelToken()

    @classmethod
    def from_settings(cls, s: Settings, cancel: Optional[CancelToken] = None) -> "QueryExecutor":
        return cls(RetryPolicy.from_settings(s), max_workers=s.max_workers, cancel=cancel)

    def run_one(self, evaluate: Callable[[float, float], Optional[float]], scale_m: float, label: str = "") -> QueryOutcome:
        """
        Call ``evaluate(scale_m, timeout_s)`` until it returns or retries run out.

        RasterTimeout and PixelBudgetExceeded are retried with the scale
        multiplied by ``coarsen_factor`` (capped at ``max_scale_m``) after an
        exponential backoff. Any other RasterServiceError fails the query at
        once. PipelineCancelled propagates.
        """
        p = self.policy
        scale = scale_m
        last_err: Optional[RasterServiceError] = None

        for attempt in range(p.max_retries + 1):
            self.cancel.raise_if_cancelled()
            try:
                value = evaluate(scale, p.timeout_s)
                return QueryOutcome(value=value, scale_m=scale, attempts=attempt + 1)
            except RasterServiceError as e:
                if not e.retryable:
                    log.warning("Query %s failed: %s", label, e)
                    return QueryOutcome(
                        scale_m=scale,
                        attempts=attempt + 1,
                        error=f"{type(e).__name__}: {e}",
                    )
                last_err = e
                if attempt < p.max_retries:
                    next_scale = min(scale * p.coarsen_factor, max(p.max_scale_m, scale))
                    log.info(
                        "Query %s: %s at %.0f m, retrying at %.0f m",
                        label, type(e).__name__, scale, next_scale,
                    )
                    self.cancel.sleep(p.backoff_s * (2 ** attempt))
                    scale = next_scale

        log.warning("Query %s gave up after %d attempts: %s", label, p.max_retries + 1, last_err)
        return QueryOutcome(
            scale_m=scale,
            attempts=p.max_retries + 1,
            error=f"{type(last_err).__name__}: {last_err}",
            retryable=True,
        )

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
        """Run ``fn`` over ``items`` on at most ``max_workers`` threads, preserving order."""
        items = list(items)
        if not items:
            return []
        self.cancel.raise_if_cancelled()

        results: list = [None] * len(items)
        pool = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {pool.submit(fn, item): i for i, item in enumerate(items)}
            pending = set(futures)
            while pending:
                done, pending = wait(pending, timeout=self.cancel.remaining(), return_when=FIRST_EXCEPTION)
                for fut in done:
                    # re-raises worker exceptions, PipelineCancelled included
                    results[futures[fut]] = fut.result()
                if pending and self.cancel.cancelled:
                    self.cancel.cancel()
                    raise PipelineCancelled("Exposure run was cancelled")
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return results
