"""Exception types raised by the depreciation engine."""


class DepreciationError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(DepreciationError, ValueError):
    """Malformed or out-of-range depreciation input.

    Deterministic: retrying with the same input raises again. Callers should
    surface it as a client error rather than a server fault.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")
