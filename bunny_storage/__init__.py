"""Client package for BunnyCDN edge storage and cache purging."""

from .client import (
    StorageClient,
    ClientConfig,
    TargetRef,
    StorageError,
    StorageConnectionError,
    StorageAuthError,
    StorageUriError,
    StorageRemoteError,
)

__version__ = "1.0.1"

__all__ = [
    "StorageClient",
    "ClientConfig",
    "TargetRef",
    "StorageError",
    "StorageConnectionError",
    "StorageAuthError",
    "StorageUriError",
    "StorageRemoteError",
]
