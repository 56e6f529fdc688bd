from typing import List

from rubric.types import ErrorSignal


class RubricError(Exception):
    """Base class for errors raised by the Rubric host API."""


class RubricSyntaxError(RubricError):
    """Raised by the driver when parsing produced diagnostics."""
    def __init__(self, diagnostics: List[str]):
        super().__init__('\n'.join(diagnostics))
        self.diagnostics = diagnostics


class RubricRuntimeError(RubricError):
    """Raised by the driver when a program finishes with an error signal."""
    def __init__(self, err: ErrorSignal):
        super().__init__(err.message)
        self.err = err
