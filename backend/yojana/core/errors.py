"""
Yojana RAG — Error Types
"""


class YojanaError(Exception):
    """Base class for all retrieval-core errors."""


class ConfigurationError(YojanaError):
    """Invalid setup detected at startup. Must halt initialization."""


class DimensionMismatchError(ConfigurationError):
    """Vector dimension differs from the one the index was built with."""

    def __init__(self, expected: int, actual: int, context: str = ""):
        self.expected = expected
        self.actual = actual
        where = f" ({context})" if context else ""
        super().__init__(f"Embedding dimension mismatch{where}: expected {expected}, got {actual}")


class TrainingError(YojanaError):
    """A training run failed before completion. No metrics were written."""

    def __init__(self, message: str, stage: str = ""):
        self.stage = stage
        super().__init__(message)


class TrainingInProgressError(YojanaError):
    """Another training run is already active in this process."""
