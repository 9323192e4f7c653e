"""Severity levels shared by validation reports and diagnostics."""

from enum import Enum, auto


class DiagnosticSeverity(Enum):
    """Severity levels for validation issues."""

    INFO = auto()       # Informational messages
    WARNING = auto()    # Suspicious but still valid content
    ERROR = auto()      # Content model violations
    CRITICAL = auto()   # Broken tree structure (ownership, depth)
