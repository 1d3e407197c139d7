"""
Core business exceptions for the archive uploader.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Archive-level errors
abort the pipeline of one archive; entry-level errors are recorded and the
pipeline moves on to the next entry of the same archive.
"""


class UploaderError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(UploaderError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(UploaderError):
    """Base class for errors related to external systems (network, disk, storage)."""
    pass


class LocalIOError(InfrastructureError):
    """Raised when a local scratch file cannot be created, written or deleted."""
    pass


class TransportError(InfrastructureError):
    """Raised when fetching a remote archive fails."""
    pass


class UploadError(InfrastructureError):
    """Raised when copying data into object storage fails."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(UploaderError):
    """Base class for errors related to archive contents."""
    pass


class ArchiveOpenError(DomainError):
    """Raised when a scratch file is not a readable archive (e.g. truncated)."""
    pass


class EntryOpenError(DomainError):
    """Raised when a single archive entry cannot be read."""
    pass
