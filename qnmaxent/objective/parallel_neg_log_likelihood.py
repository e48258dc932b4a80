"""
Thread-parallel negative log-likelihood.

Contexts are split into `threads` contiguous ranges (the last range takes
the remainder). Each evaluation submits one task per range to a persistent
thread pool and waits for all of them; every task writes only its own
partial accumulator, and the coordinator sums the partials afterwards.
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import List, Tuple

import numpy as np

from ..model.events import IndexedEvents
from .neg_log_likelihood import NegLogLikelihood

logger = logging.getLogger(__name__)


class ParallelNegLogLikelihood(NegLogLikelihood):
    """
    `NegLogLikelihood` evaluated on a fixed pool of worker threads.

    Use as a context manager, or call `close()`, to release the pool.
    """

    def __init__(self, indexer: IndexedEvents, threads: int):
        if threads <= 0:
            raise ValueError("The number of threads must be 1 or larger.")
        super().__init__(indexer)

        self.threads = threads
        self.ranges = self._partition(self.num_contexts, threads)
        self.neg_log_likelihood_thread = np.zeros(threads, dtype=np.float64)
        self.gradient_thread = np.zeros((threads, self.dimension), dtype=np.float64)
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=threads, thread_name_prefix="qnmaxent-nll"
        )
        logger.debug(f"ParallelNegLogLikelihood ranges: {self.ranges}")

    @staticmethod
    def _partition(num_contexts: int, threads: int) -> List[Tuple[int, int]]:
        task_size = num_contexts // threads
        ranges = []
        for i in range(threads):
            start = i * task_size
            end = num_contexts if i == threads - 1 else start + task_size
            ranges.append((start, end))
        return ranges

    def value_at(self, x: np.ndarray) -> float:
        self._check_dimension(x)
        self._run(self._neg_ll_compute, x)
        return float(np.sum(self.neg_log_likelihood_thread))

    def gradient_at(self, x: np.ndarray) -> np.ndarray:
        self._check_dimension(x)
        self._run(self._gradient_compute, x)
        np.sum(self.gradient_thread, axis=0, out=self.gradient)
        return self.gradient

    def _run(self, task, x: np.ndarray) -> None:
        if self._executor is None:
            raise RuntimeError("ParallelNegLogLikelihood has been closed")
        futures = [
            self._executor.submit(task, thread_index, start, end, x)
            for thread_index, (start, end) in enumerate(self.ranges)
        ]
        # join every worker; re-raise the first failure
        for future in futures:
            future.result()

    def _neg_ll_compute(self, thread_index: int, start: int, end: int, x: np.ndarray) -> None:
        self.neg_log_likelihood_thread[thread_index] = self._partial_value(start, end, x)

    def _gradient_compute(self, thread_index: int, start: int, end: int, x: np.ndarray) -> None:
        partial = self.gradient_thread[thread_index]
        partial.fill(0.0)
        self._partial_gradient(start, end, x, partial)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "ParallelNegLogLikelihood":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
