"""anyfs - one file API over local disk, FTP/FTPS, SFTP and SMB.

A URI picks the backend, the backend hands out file references relative
to the base directory given in the URI.

Quick Start:
    from anyfs import create_filesystem

    with create_filesystem("ftp://user:pw@host/incoming") as fs:
        f = fs.create("report.csv", "2024")
        with f.get_output_stream() as out:
            out.write(data)
        print(fs.list("2024"))

    # Plain paths and drive letters are local
    with create_filesystem("/var/spool/out") as fs:
        print(fs.list_dirs())
"""

from anyfs.factory import (
    FileSystemFactory,
    configure,
    create_filesystem,
    get_factory,
    register,
    unregister,
)
from anyfs.filesystem import File, FileSystem
from anyfs.config import Settings
from anyfs.exceptions import (
    FSError,
    InvalidArgumentError,
    InvalidURIError,
    FSConnectionError,
    AuthenticationError,
    DirectoryNotFoundError,
    NotFoundError,
    TransferError,
    MissingDependencyError,
)

__all__ = [
    # Factory
    "FileSystemFactory",
    "configure",
    "create_filesystem",
    "get_factory",
    "register",
    "unregister",
    # Core types
    "File",
    "FileSystem",
    "Settings",
    # Exceptions
    "FSError",
    "InvalidArgumentError",
    "InvalidURIError",
    "FSConnectionError",
    "AuthenticationError",
    "DirectoryNotFoundError",
    "NotFoundError",
    "TransferError",
    "MissingDependencyError",
]

__version__ = "0.1.0"
