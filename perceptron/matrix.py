"""
matrix.py
~~~~~~~~~

Dense row-major matrix engine used by the network.

Every operation returns a new Matrix and never mutates its operands; the
backing numpy array is frozen (read-only) once built. Operations whose
output rows are independent are split into contiguous row ranges and
evaluated on a shared thread pool, then joined before returning. Matrix
products accumulate each cell in a fixed left-to-right order, so results
are identical whatever the worker count.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from perceptron import config
from perceptron.errors import DimensionMismatch

logger = logging.getLogger(__name__)

RowRange = Tuple[int, int]

# Worker pool shared by every matrix operation in the process
_executor: Optional[ThreadPoolExecutor] = None
_workers: Optional[int] = None
_min_parallel_rows: Optional[int] = None
# Guards pool creation, replacement and task submission
_pool_lock = threading.RLock()


def _get_workers() -> int:
    global _workers
    with _pool_lock:
        if _workers is None:
            _workers = config.worker_count()
        return _workers


def _get_min_parallel_rows() -> int:
    global _min_parallel_rows
    if _min_parallel_rows is None:
        _min_parallel_rows = config.parallel_min_rows()
    return _min_parallel_rows


def _get_executor() -> ThreadPoolExecutor:
    """
    Get or create the global worker pool.

    Returns:
        ThreadPoolExecutor: The pool used for row fan-out
    """
    global _executor
    with _pool_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=_get_workers(),
                thread_name_prefix='perceptron-matrix'
            )
            logger.debug(f"Started matrix worker pool with {_get_workers()} threads")
        return _executor


def _detach_executor() -> Optional[ThreadPoolExecutor]:
    global _executor
    with _pool_lock:
        executor, _executor = _executor, None
    return executor


def set_worker_count(workers: int) -> None:
    """
    Resize the worker pool.

    Operations already running finish on the old pool.

    Args:
        workers: Number of threads; 1 disables fan-out entirely

    Raises:
        ValueError: If workers is less than 1
    """
    global _workers
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    with _pool_lock:
        old = _detach_executor()
        _workers = workers
    if old is not None:
        old.shutdown(wait=True)


def set_parallel_min_rows(rows: int) -> None:
    """Set the row count below which operations run inline."""
    global _min_parallel_rows
    if rows < 1:
        raise ValueError(f"rows must be at least 1, got {rows}")
    _min_parallel_rows = rows


def shutdown_pool() -> None:
    """Release the worker pool; it is recreated on next use."""
    executor = _detach_executor()
    if executor is not None:
        executor.shutdown(wait=True)
        logger.debug("Matrix worker pool shut down")


def _plan(rows: int) -> List[RowRange]:
    """Split ``rows`` into contiguous, disjoint ranges, one per worker."""
    workers = _get_workers()
    if workers == 1 or rows < _get_min_parallel_rows():
        return [(0, rows)]

    parts = min(workers, rows)
    base, extra = divmod(rows, parts)
    ranges = []
    start = 0
    for part in range(parts):
        stop = start + base + (1 if part < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def _run(
    ranges: List[RowRange],
    cols: int,
    block: Callable[[int, int], np.ndarray]
) -> np.ndarray:
    """
    Evaluate ``block(start, stop)`` for every range and join the results.

    Each block writes only its own output rows, so no locking is needed.
    Every block has finished before this returns or raises; if any block
    failed, the exception of the earliest failing range is re-raised.
    """
    rows = ranges[-1][1]
    out = np.empty((rows, cols), dtype=np.float64)

    if len(ranges) == 1:
        out[:] = block(0, rows)
    else:
        with _pool_lock:
            executor = _get_executor()
            futures = [
                (start, stop, executor.submit(block, start, stop))
                for start, stop in ranges
            ]
        wait([future for _, _, future in futures])
        for start, stop, future in futures:
            out[start:stop] = future.result()

    out.flags.writeable = False
    return out


class Matrix:
    """
    Immutable dense 2-D matrix of float64 values.

    Attributes:
        rows: Number of rows
        cols: Number of columns
        data: Read-only numpy array of shape (rows, cols)
    """

    def __init__(self, data: np.ndarray):
        if data.flags.writeable:
            data = data.copy()
            data.flags.writeable = False
        self.data = data
        self.rows, self.cols = data.shape

    @classmethod
    def zeros(cls, rows: int, cols: int) -> 'Matrix':
        data = np.zeros((rows, cols), dtype=np.float64)
        data.flags.writeable = False
        return cls(data)

    @classmethod
    def random(
        cls,
        rows: int,
        cols: int,
        low: float = -1.0,
        high: float = 1.0,
        seed: Optional[int] = None
    ) -> 'Matrix':
        """
        Matrix of independent uniform draws from [low, high).

        Each row range draws from its own generator spawned from a single
        seed sequence, so results are reproducible for a given seed and
        worker count, but not across worker counts.
        """
        ranges = _plan(rows)
        children = np.random.SeedSequence(seed).spawn(len(ranges))
        generators = {
            start: np.random.default_rng(child)
            for (start, _), child in zip(ranges, children)
        }

        def block(start: int, stop: int) -> np.ndarray:
            return generators[start].uniform(low, high, size=(stop - start, cols))

        return cls(_run(ranges, cols, block))

    @classmethod
    def from_data(cls, data: Sequence[Sequence[float]]) -> 'Matrix':
        """
        Build a matrix from row-major nested sequences.

        Args:
            data: Outer sequence of rows, each of the same length

        Raises:
            DimensionMismatch: If the rows are ragged or data is not 2-D
        """
        try:
            array = np.array(data, dtype=np.float64)
        except ValueError as e:
            raise DimensionMismatch(f"Not a numeric 2-D sequence: {e}") from e

        if array.ndim != 2:
            raise DimensionMismatch(
                f"Expected a 2-D sequence, got {array.ndim} dimension(s)"
            )
        array.flags.writeable = False
        return cls(array)

    @classmethod
    def column(cls, values: Sequence[float]) -> 'Matrix':
        """Wrap a flat vector as an (n x 1) column matrix."""
        array = np.array(values, dtype=np.float64).reshape(-1, 1)
        array.flags.writeable = False
        return cls(array)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    def multiply(self, other: 'Matrix') -> 'Matrix':
        """
        Matrix product ``self . other``.

        Raises:
            DimensionMismatch: If self.cols != other.rows
        """
        if self.cols != other.rows:
            raise DimensionMismatch(
                f"Cannot multiply {self.shape} by {other.shape}"
            )

        left = self.data
        right = other.data

        def block(start: int, stop: int) -> np.ndarray:
            acc = np.zeros((stop - start, right.shape[1]), dtype=np.float64)
            rows = left[start:stop]
            # Accumulate k = 0, 1, ... so each cell sums in a fixed order
            for k in range(left.shape[1]):
                acc += rows[:, k:k + 1] * right[k]
            return acc

        return Matrix(_run(_plan(self.rows), other.cols, block))

    def _cellwise(
        self,
        other: 'Matrix',
        operation: Callable[[np.ndarray, np.ndarray], np.ndarray],
        verb: str
    ) -> 'Matrix':
        if self.shape != other.shape:
            raise DimensionMismatch(
                f"Cannot {verb} {self.shape} and {other.shape}"
            )

        def block(start: int, stop: int) -> np.ndarray:
            return operation(self.data[start:stop], other.data[start:stop])

        return Matrix(_run(_plan(self.rows), self.cols, block))

    def add(self, other: 'Matrix') -> 'Matrix':
        return self._cellwise(other, np.add, 'add')

    def subtract(self, other: 'Matrix') -> 'Matrix':
        return self._cellwise(other, np.subtract, 'subtract')

    def dot_multiply(self, other: 'Matrix') -> 'Matrix':
        """Elementwise (Hadamard) product."""
        return self._cellwise(other, np.multiply, 'dot multiply')

    def map(self, function: Callable[[float], float]) -> 'Matrix':
        """
        Apply a pure scalar function to every cell.

        Cells may be evaluated in any order and on any thread, so the
        function must not have side effects.
        """
        vectorized = np.vectorize(function, otypes=[np.float64])

        def block(start: int, stop: int) -> np.ndarray:
            return vectorized(self.data[start:stop])

        return Matrix(_run(_plan(self.rows), self.cols, block))

    def transpose(self) -> 'Matrix':
        def block(start: int, stop: int) -> np.ndarray:
            return self.data[:, start:stop].T

        return Matrix(_run(_plan(self.cols), self.rows, block))

    def tolist(self) -> List[List[float]]:
        """Row-major nested lists of Python floats."""
        return self.data.tolist()

    def to_vector(self) -> List[float]:
        """All cells flattened in row-major order."""
        return self.data.ravel().tolist()

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))

    def __repr__(self) -> str:
        return f"Matrix({self.rows}x{self.cols})"
