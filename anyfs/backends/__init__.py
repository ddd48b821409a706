"""Filesystem backends, keyed by the names used in the scheme table."""

from typing import Dict, Type

from anyfs.backends.ftp import FtpFileSystem
from anyfs.backends.local import LocalFileSystem
from anyfs.exceptions import MissingDependencyError
from anyfs.filesystem import FileSystem

try:
    from anyfs.backends.sftp import SftpFileSystem

    SFTP_AVAILABLE = True
except ImportError:
    SFTP_AVAILABLE = False

try:
    from anyfs.backends.smb import SmbFileSystem

    SMB_AVAILABLE = True
except ImportError:
    SMB_AVAILABLE = False

BACKENDS: Dict[str, Type[FileSystem]] = {
    "local": LocalFileSystem,
    "ftp": FtpFileSystem,
}

if SFTP_AVAILABLE:
    BACKENDS["sftp"] = SftpFileSystem
if SMB_AVAILABLE:
    BACKENDS["smb"] = SmbFileSystem

# backend name -> distribution providing its client library
OPTIONAL_BACKENDS: Dict[str, str] = {
    "sftp": "paramiko",
    "smb": "smbprotocol",
}


def is_backend(name: str) -> bool:
    return name in BACKENDS or name in OPTIONAL_BACKENDS


def get_backend(name: str) -> Type[FileSystem]:
    """Return the backend class registered under ``name``.

    Raises:
        MissingDependencyError: If the backend's client library is not installed
        KeyError: If no backend has that name
    """
    if name in BACKENDS:
        return BACKENDS[name]
    if name in OPTIONAL_BACKENDS:
        package = OPTIONAL_BACKENDS[name]
        raise MissingDependencyError(
            f"{name.upper()} support requires {package}. "
            f"Install with: pip install {package}"
        )
    raise KeyError(name)


__all__ = [
    "BACKENDS",
    "OPTIONAL_BACKENDS",
    "FtpFileSystem",
    "LocalFileSystem",
    "get_backend",
    "is_backend",
]
