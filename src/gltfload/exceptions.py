"""Project-specific exception types."""

from typing import Optional


class GltfLoadError(RuntimeError):
    """Base class for failures raised while loading a glTF scene."""


class TransientFetchError(GltfLoadError):
    """Raised when a remote fetch fails at the network layer."""

    def __init__(self, message: str, uri: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.uri = uri
        self.status_code = status_code


class StructuralError(GltfLoadError):
    """Raised when a document is malformed or uses unsupported features."""


class ImportTimeoutError(GltfLoadError, TimeoutError):
    """Raised when an import operation exceeds its time budget."""


class ResourceError(GltfLoadError):
    """Raised when a local file cannot be read."""


class LoadInProgressError(GltfLoadError):
    """Raised when a load is requested while another one is still running."""
