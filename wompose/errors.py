"""
Errors raised by the wompose conversion engine.
"""


class ConversionError(ValueError):
    """A compose document could not be converted."""


class MalformedInputError(ConversionError):
    """Input text cannot be decoded, or decodes to the wrong shape."""


class MissingServicesError(ConversionError):
    """Document decoded but has no (or an empty) services section."""

    def __init__(self, message: str = "Invalid compose file: missing services section"):
        super().__init__(message)
