"""Filesystem layer — lazy nodes, directory synthesis, sessions, errors."""

from remotefs.fs.cursor import DirectoryCursor
from remotefs.fs.exceptions import (
    ClosedError,
    InternalError,
    InvalidPathError,
    IsDirectoryError,
    PathNotFoundError,
    PermissionDeniedError,
    RemoteFSError,
)
from remotefs.fs.filesystem import RemoteFileSystem
from remotefs.fs.node import LazyNode, NodeContext
from remotefs.fs.probe import ListProbe, StaticPathProbe
from remotefs.fs.protocol import Authenticator, DirectoryProbe, ListingSource, ValueSource
from remotefs.fs.session import SessionManager
from remotefs.fs.synthesizer import DirectorySynthesizer, collect_keys
from remotefs.fs.types import (
    DIR_MODE,
    FILE_MODE,
    ZERO_TIME,
    ChildEntry,
    FileInfo,
    ListPage,
    PathScope,
    Value,
    zero_clock,
)
from remotefs.fs.utils import valid_path

__all__ = [
    "DIR_MODE",
    "FILE_MODE",
    "ZERO_TIME",
    "Authenticator",
    "ChildEntry",
    "ClosedError",
    "DirectoryCursor",
    "DirectoryProbe",
    "DirectorySynthesizer",
    "FileInfo",
    "InternalError",
    "InvalidPathError",
    "IsDirectoryError",
    "LazyNode",
    "ListPage",
    "ListProbe",
    "ListingSource",
    "NodeContext",
    "PathNotFoundError",
    "PathScope",
    "PermissionDeniedError",
    "RemoteFSError",
    "RemoteFileSystem",
    "SessionManager",
    "StaticPathProbe",
    "Value",
    "ValueSource",
    "collect_keys",
    "valid_path",
    "zero_clock",
]
