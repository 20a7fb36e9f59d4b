"""Error reporting collaborators."""

from .errors import ErrorReporter, InMemoryErrorReporter, LoggingErrorReporter, ReportedError

__all__ = ["ErrorReporter", "InMemoryErrorReporter", "LoggingErrorReporter", "ReportedError"]
