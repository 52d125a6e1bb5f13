from typing import Any, Dict, Optional


class IndexingcoError(RuntimeError):
    """
    Root of the package's exceptions.

    ``category`` groups failures for logs and exit handling; ``retryable``
    tells callers whether repeating the same call may succeed.
    """

    category: str = "runtime"
    retryable: bool = False

    def __init__(self, message: str, *, metadata: Optional[Dict[str, Any]] = None, retryable: Optional[bool] = None) -> None:
        super().__init__(message)
        self.metadata: Dict[str, Any] = dict(metadata or {})
        if retryable is not None:
            self.retryable = retryable

    def log_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"error": str(self), "error_category": self.category}
        fields.update(self.metadata)
        return fields


class ValidationError(IndexingcoError):
    """A payload from the API, or a request about to be sent, is malformed."""

    category = "validation"


class ConfigError(IndexingcoError):
    category = "config"
