"""Failure taxonomy for generation operations."""


class GenerationError(Exception):
    """Base class. `retryable` marks errors the player can retry."""

    retryable = False


class GenerationTimeout(GenerationError):
    """The generation service did not answer within the allowed time."""

    retryable = True


class GenerationFailure(GenerationError):
    """The generation service rejected the request or could not be reached."""

    retryable = True


class ParseFailure(GenerationError):
    """Generated output was not the structured data that was asked for."""


class ValidationFailure(GenerationError):
    """Structured output parsed, but is not usable (e.g. a decision with no options)."""
