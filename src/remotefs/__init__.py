"""remotefs: remote key/value stores as read-only filesystems.

Secret managers, metadata services and KV stores, projected as lazy
directory trees with paginated listings and shared login sessions.
"""

__version__ = "0.1.0"

from remotefs._remotefs import RemoteFile, RemoteFS
from remotefs.backends import (
    AppRoleAuth,
    ConsulBackend,
    DatabaseBackend,
    EnvAuth,
    GCPMetadataBackend,
    GCPSecretManagerBackend,
    GitHubAuth,
    IMDSBackend,
    MemoryBackend,
    ParameterStoreBackend,
    SecretsManagerBackend,
    TokenAuth,
    UserPassAuth,
    VaultBackend,
)
from remotefs.fs import (
    ClosedError,
    FileInfo,
    InternalError,
    InvalidPathError,
    IsDirectoryError,
    LazyNode,
    PathNotFoundError,
    PathScope,
    PermissionDeniedError,
    RemoteFileSystem,
    RemoteFSError,
)

__all__ = [
    "AppRoleAuth",
    "ClosedError",
    "ConsulBackend",
    "DatabaseBackend",
    "EnvAuth",
    "FileInfo",
    "GCPMetadataBackend",
    "GCPSecretManagerBackend",
    "GitHubAuth",
    "IMDSBackend",
    "InternalError",
    "InvalidPathError",
    "IsDirectoryError",
    "LazyNode",
    "MemoryBackend",
    "ParameterStoreBackend",
    "PathNotFoundError",
    "PathScope",
    "PermissionDeniedError",
    "RemoteFS",
    "RemoteFSError",
    "RemoteFile",
    "RemoteFileSystem",
    "SecretsManagerBackend",
    "TokenAuth",
    "UserPassAuth",
    "VaultBackend",
    "__version__",
]
