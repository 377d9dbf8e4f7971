"""Error taxonomy for session save/restore."""


class SessionError(Exception):
    """Base class for all edsession errors."""


class StoreCorruptError(SessionError):
    """The persisted store exists but cannot be parsed or verified."""


class StoreWriteError(SessionError):
    """The store could not be written to stable storage."""


class LayoutInconsistentError(SessionError):
    """A saved layout fails the grid cardinality checks."""


class CorrelationError(SessionError):
    """Logical tiles could not be matched one-to-one with live tiles."""


class EditorError(SessionError):
    """An editor/window-manager call failed."""
