"""
errors.py
~~~~~~~~~

Exception types raised by the engine.

Contract violations are caller bugs (wrong shapes, wrong lengths).
Persistence errors cover file I/O and malformed or mismatched documents.
"""


class PerceptronError(Exception):
    """Base class for every error raised by the engine."""


class ContractViolation(PerceptronError, ValueError):
    """A caller broke an operation's precondition."""


class DimensionMismatch(ContractViolation):
    """Matrix operands have incompatible shapes."""


class InputShapeMismatch(ContractViolation):
    """Forward-pass input length differs from the input layer width."""


class TargetShapeMismatch(ContractViolation):
    """Backpropagation target length differs from the output layer width."""


class EmptyVectorError(PerceptronError, ValueError):
    """A class index was requested from an empty vector."""


class PersistenceError(PerceptronError):
    """Base class for save/load failures."""


class SaveError(PersistenceError):
    """The save file could not be created or written."""


class LoadError(PersistenceError):
    """The save file could not be opened or read."""


class MalformedDocument(LoadError):
    """The save file is not a valid weights/biases document."""


class TopologyMismatch(LoadError):
    """The document was produced by a network of a different topology."""
