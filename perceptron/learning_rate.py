"""
learning_rate.py
~~~~~~~~~~~~~~~~

Learning-rate policies: scalar maps applied to every gradient cell
before weights and biases are updated.

A policy is either a constant multiplier or any caller-supplied scalar
function (for example a clipped or non-linear scaling).
"""

from numbers import Real
from typing import Callable, Union

LearningRatePolicy = Callable[[float], float]


class ConstantRate:
    """Multiply each gradient by a fixed rate."""

    def __init__(self, rate: float):
        self.rate = float(rate)

    def __call__(self, gradient: float) -> float:
        return gradient * self.rate

    def __repr__(self) -> str:
        return f"ConstantRate({self.rate})"


def constant(rate: float) -> ConstantRate:
    return ConstantRate(rate)


def resolve_learning_rate(
    value: Union[float, LearningRatePolicy]
) -> LearningRatePolicy:
    """
    Turn a number or a scalar function into a learning-rate policy.

    Raises:
        TypeError: If value is neither a real number nor callable
    """
    if isinstance(value, bool):
        raise TypeError("learning_rate must be a number or a callable, got bool")
    if isinstance(value, Real):
        return ConstantRate(value)
    if callable(value):
        return value
    raise TypeError(
        f"learning_rate must be a number or a callable, got {type(value).__name__}"
    )
