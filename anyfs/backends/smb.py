import errno
import logging
from datetime import datetime
from pathlib import PurePosixPath
from typing import IO, List, Optional

import smbclient
import smbclient.path as smbpath
from smbprotocol.exceptions import SMBAuthenticationError, SMBException

from anyfs.exceptions import (
    AuthenticationError,
    FSConnectionError,
    InvalidURIError,
    TransferError,
)
from anyfs.filedescriptor import FileDescriptor, FileType
from anyfs.filesystem import File, FileSystem
from anyfs.paths import join, normalize, strip_leading
from anyfs.uri import URI

logger = logging.getLogger(__name__)

_MISSING = (errno.ENOENT, errno.ENOTDIR)


def _is_missing(error: OSError) -> bool:
    return isinstance(error, (FileNotFoundError, NotADirectoryError)) or error.errno in _MISSING


class SmbFile(File):
    """File on a CIFS/SMB share. Operations go straight to smbclient, which
    keeps its own pooled connection per server."""

    _filesystem: "SmbFileSystem"

    def __init__(
        self, filesystem: "SmbFileSystem", directory: Optional[str], name: str
    ) -> None:
        super().__init__(filesystem, directory, name)
        self._dir_path = filesystem.unc(directory)

    @property
    def path(self) -> str:
        return f"{self._dir_path}\\{self._name}"

    def exists(self) -> bool:
        try:
            return smbpath.exists(self.path)
        except SMBException as e:
            raise TransferError(f"unable to check {self.path}: {e}") from e

    def length(self) -> int:
        st = self._stat()
        return 0 if st is None else st.st_size

    def last_modified(self) -> float:
        st = self._stat()
        return 0 if st is None else st.st_mtime

    def _stat(self):
        try:
            return smbclient.stat(self.path)
        except OSError as e:
            if _is_missing(e):
                return None
            raise TransferError(f"unable to stat {self.path}: {e}") from e
        except SMBException as e:
            raise TransferError(f"unable to stat {self.path}: {e}") from e

    def get_input_stream(self) -> IO[bytes]:
        try:
            return smbclient.open_file(self.path, mode="rb")
        except (OSError, SMBException) as e:
            raise TransferError(f"unable to open {self.path} for reading: {e}") from e

    def get_output_stream(self) -> IO[bytes]:
        try:
            smbclient.makedirs(self._dir_path, exist_ok=True)
            return smbclient.open_file(self.path, mode="wb")
        except (OSError, SMBException) as e:
            raise TransferError(f"unable to open {self.path} for writing: {e}") from e

    def delete(self) -> None:
        if not self.exists():
            return
        logger.debug("deleting %s", self.path)
        try:
            smbclient.remove(self.path)
        except (OSError, SMBException) as e:
            raise TransferError(f"unable to delete {self.path}: {e}") from e

    def _rename(self, new_name: str) -> None:
        target = f"{self._dir_path}\\{new_name}"
        logger.debug("renaming %s to %s", self.path, target)
        try:
            smbclient.rename(self.path, target)
        except (OSError, SMBException) as e:
            raise TransferError(f"unable to rename {self.path}: {e}") from e


class SmbFileSystem(FileSystem):
    """
    CIFS/SMB backend on top of smbprotocol's smbclient.

    The URI path starts with the share name: ``smb://user:pw@host/share/dir``.
    Credentials missing from the URI come from the ``[smb]`` settings.
    """

    scheme = "smb"

    def __init__(self, settings=None) -> None:
        super().__init__(settings)
        self._registered = False

    @property
    def host(self) -> str:
        assert self._uri is not None, "Filesystem not initialised"
        return self._uri.host

    @property
    def port(self) -> int:
        assert self._uri is not None, "Filesystem not initialised"
        return self._uri.port or self.settings.smb.port

    def init(self, uri: URI) -> None:
        logger.debug("open smb connection to %s", uri)
        if not uri.host:
            raise InvalidURIError(f"smb uri needs a server: {uri}")
        base = normalize(uri.path)
        if not strip_leading(base):
            raise InvalidURIError(f"smb uri needs a share: {uri}")

        self._uri = uri
        self._base_dir = base if base.startswith("/") else "/" + base

        username = uri.username or self.settings.smb.username
        password = uri.password or self.settings.smb.password
        try:
            smbclient.register_session(
                self.host, username=username, password=password, port=self.port
            )
        except SMBAuthenticationError as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e
        except (OSError, SMBException) as e:
            raise FSConnectionError(f"Failed to connect to {self.host}: {e}") from e
        self._registered = True

    def unc(self, directory: Optional[str]) -> str:
        """UNC path of a base-relative directory."""
        path = join(self._base_dir, directory)
        return "\\\\" + self.host + path.replace("/", "\\")

    def create(self, filename: str, directory: Optional[str] = None) -> SmbFile:
        directory = strip_leading(directory) or None
        return SmbFile(self, directory, filename)

    def close(self) -> None:
        if not self._registered:
            return
        logger.debug("closing smb session to %s", self.host)
        try:
            smbclient.delete_session(self.host, port=self.port)
        except (OSError, SMBException) as e:
            logger.warning("closing smb session to %s failed: %s", self.host, e)
        finally:
            self._registered = False

    def _ls(self, directory: Optional[str]) -> Optional[List[FileDescriptor]]:
        path = self.unc(directory)
        result = []

        try:
            for entry in smbclient.scandir(path):
                st = entry.stat()
                result.append(
                    FileDescriptor(
                        path=PurePosixPath(entry.name),
                        filetype=FileType.DIRECTORY if entry.is_dir() else FileType.FILE,
                        size=st.st_size,
                        modified_time=datetime.fromtimestamp(st.st_mtime),
                    )
                )
        except OSError as e:
            if _is_missing(e):
                return None
            raise TransferError(f"Failed to list directory '{path}': {e}") from e
        except SMBException as e:
            raise TransferError(f"Failed to list directory '{path}': {e}") from e

        return result
