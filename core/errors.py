# =============================================================================
# core/errors.py - Roster build exceptions
# =============================================================================

from typing import List


class RosterError(Exception):
    """Base class for all roster build failures"""


class DirectoryError(RosterError):
    """A directory call failed; transient errors may be retried"""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.message = message
        self.transient = transient

    def __str__(self) -> str:
        kind = "transient" if self.transient else "permanent"
        return f"{self.message} ({kind})"


class EnumerationError(RosterError):
    """Candidate enumeration failed or produced no usable users"""


class RosterWriteError(RosterError):
    """Appending to or rewriting the roster file failed"""


class ConfigurationError(RosterError):
    """A configuration value is missing or invalid"""


class SchemaMismatchError(RosterError):
    """Existing roster columns disagree with the configured field set"""

    def __init__(self, path: str, missing: List[str], extra: List[str],
                 order_differs: bool = False):
        self.path = path
        self.missing = missing
        self.extra = extra
        self.order_differs = order_differs
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        parts = []
        if self.missing:
            parts.append(f"missing from file: {', '.join(self.missing)}")
        if self.extra:
            parts.append(f"not expected by configuration: {', '.join(self.extra)}")
        if self.order_differs and not parts:
            parts.append("column order differs from configuration")
        return f"Roster file {self.path} does not match configured columns ({'; '.join(parts)})"
