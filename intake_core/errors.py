from __future__ import annotations


class IntakeError(Exception):
    """Base class for errors raised by the intake engine."""


class ConfigError(IntakeError):
    """Static configuration (taxonomy, steps, catalog) is invalid.

    Raised once at load time; never caught and skipped at runtime.
    """


class SessionNotFoundError(IntakeError):
    pass


class InvalidStepError(IntakeError):
    """Step id is unknown or is not the session's current step."""


class IncompleteAnswerError(IntakeError):
    """Answer is missing required parts; nothing was graded."""


class SessionCompletedError(IntakeError):
    pass


class RoadmapItemNotFoundError(IntakeError):
    pass


class CodeRunnerError(IntakeError):
    """The code execution collaborator failed or timed out."""
