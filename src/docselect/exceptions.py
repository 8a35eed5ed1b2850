"""Custom exceptions for docselect."""


class DocSelectError(Exception):
    """Base exception for all docselect errors."""


class ConfigError(DocSelectError):
    """Configuration-related errors."""


class DocumentLoadError(DocSelectError):
    """Raised when a context directory cannot be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot load context documents from '{path}': {reason}")
