"""Custom exceptions for the upload subsystem."""


class FileDropError(Exception):
    """Base exception for the upload subsystem."""
    pass


class LocalPreconditionError(FileDropError):
    """Exception raised when the local file is missing or empty."""
    pass


class ValidationError(FileDropError):
    """Exception raised when a file fails type or size validation."""
    pass


class LocalFileReadError(FileDropError):
    """Exception raised when the local file cannot be read."""
    pass


class ConnectivityError(FileDropError):
    """Exception raised when a connectivity probe fails before upload."""
    pass


class InternetUnreachableError(ConnectivityError):
    """Exception raised when the device has no internet access."""
    pass


class BackendUnreachableError(ConnectivityError):
    """Exception raised when the storage backend does not answer."""
    pass


class TransportError(FileDropError):
    """Exception raised when every transport strategy failed in one attempt."""
    pass


class BackendRejectionError(TransportError):
    """Exception raised when the storage backend explicitly rejected a write."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PublicUrlError(FileDropError):
    """Exception raised when no public or signed URL could be produced."""
    pass
