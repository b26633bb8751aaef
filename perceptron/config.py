"""
config.py
~~~~~~~~~

Environment-driven settings for the engine.

Variables:
- LOG_LEVEL: root logging level used by configure_logging (default INFO)
- PERCEPTRON_WORKERS: size of the matrix worker pool (default: CPU count)
- PERCEPTRON_PARALLEL_MIN_ROWS: matrices with fewer rows are computed
  inline without touching the pool (default 64)
"""

import os
import logging

logger = logging.getLogger(__name__)

DEFAULT_PARALLEL_MIN_ROWS = 64


def configure_logging() -> None:
    """
    Set up logging based on environment.

    Meant to be called once by the driving program; the engine itself
    never configures logging on import.
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # matplotlib is chatty at DEBUG (font cache, backend selection)
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def _positive_int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default

    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer")
        return default

    if value < 1:
        logger.warning(f"Ignoring {name}={raw!r}: must be at least 1")
        return default
    return value


def worker_count() -> int:
    """Number of threads used for matrix fan-out."""
    return _positive_int_from_env('PERCEPTRON_WORKERS', os.cpu_count() or 1)


def parallel_min_rows() -> int:
    """Row count below which matrix operations skip the worker pool."""
    return _positive_int_from_env(
        'PERCEPTRON_PARALLEL_MIN_ROWS', DEFAULT_PARALLEL_MIN_ROWS
    )
