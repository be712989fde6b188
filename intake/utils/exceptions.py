"""Custom exception classes for the onboarding intake pipeline."""


class IntakeError(Exception):
    """Base exception for all onboarding intake errors."""

    pass


class ConfigurationError(IntakeError):
    """Raised when configuration is invalid or missing."""

    pass


class NavigationError(IntakeError):
    """Raised when a step transition is not allowed."""

    pass


class SessionBlockedError(IntakeError):
    """Raised when an interaction arrives while a modal dialog is showing."""

    pass


class SnapshotError(IntakeError):
    """Raised when a session snapshot cannot be read or written."""

    pass


class DocumentRejectedError(IntakeError):
    """Raised when an uploaded document fails intake checks."""

    pass


class RecognitionError(IntakeError):
    """Raised when the recognition service fails for a document."""

    pass


class RecognitionTimeoutError(RecognitionError):
    """Raised when the recognition service does not answer in time."""

    pass


class BackendError(IntakeError):
    """Raised when the persistence backend call fails."""

    pass


class FormLockedError(IntakeError):
    """Raised when editing a form record that is no longer a draft."""

    pass


class FormIncompleteError(IntakeError):
    """Raised when completing a form that still has missing or invalid fields."""

    pass


class SignatureError(IntakeError):
    """Raised when a signature artifact cannot be accepted."""

    pass


class SubmissionError(IntakeError):
    """Raised when the onboarding package cannot be submitted."""

    pass
