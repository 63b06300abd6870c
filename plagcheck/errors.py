class PlagcheckError(Exception):
    """Base class for errors raised to callers of the plagiarism pipeline."""


class ConfigurationError(PlagcheckError):
    """Required configuration (e.g. search credentials) is missing.

    Raised before any chunk is processed; no partial work is attempted.
    """


class InputError(PlagcheckError):
    """The submitted text or file cannot be analyzed."""
