class ConversionError(Exception):
    """Base class for failures raised inside the conversion engine."""


class StatementConversionError(ConversionError):
    """A single statement could not be converted by any path."""

    def __init__(self, message: str, statement: str = ""):
        super().__init__(message)
        self.statement = statement


class RegistryFrozenError(ConversionError):
    """Raised when a rule is registered after the registry has been frozen."""
