from pathlib import PurePosixPath
from typing import IO, Any, Dict, List, Optional, Tuple
import logging
import socket
import stat
from datetime import datetime

import paramiko
from paramiko.sftp_attr import SFTPAttributes
from paramiko.ssh_exception import AuthenticationException, SSHException

from anyfs.backends.session import RemoteFile, RemoteFileSystem
from anyfs.exceptions import (
    AuthenticationError,
    DirectoryNotFoundError,
    FSConnectionError,
    TransferError,
)
from anyfs.filedescriptor import FileDescriptor, FileType
from anyfs.paths import join, normalize
from anyfs.uri import URI

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"


class SftpFile(RemoteFile):
    """File on an SFTP server."""


class SftpFileSystem(RemoteFileSystem):
    """
    SFTP backend on top of paramiko.

    Authentication material not present in the URI comes from the ``[sftp]``
    settings: ``password``, ``private_key`` with its ``passphrase`` and the
    ``known_hosts`` file. Unknown host keys are accepted.
    """

    scheme = "sftp"
    file_class = SftpFile
    closed_errors = (EOFError, ConnectionError, SSHException)
    backend_errors = (SSHException, OSError, EOFError)

    def __init__(self, settings=None) -> None:
        super().__init__(settings)
        # These will be initialized in _connect
        self.ssh_client: Optional[paramiko.SSHClient] = None
        self.sftp_client: Optional[paramiko.SFTPClient] = None

    def _resolve_base_dir(self, uri: URI) -> str:
        if not uri.path:
            return "/"
        path = uri.path if uri.path.startswith("/") else "/" + uri.path
        return normalize(path) or "/"

    def _credentials(self) -> Tuple[str, Optional[str]]:
        assert self._uri is not None
        username = self._uri.username
        if not username:
            username = ANONYMOUS_USER
            logger.info("no user given, fallback to anonymous login via %s", username)

        # userinfo is split before anything is reassigned, the inline
        # password wins over the configured one
        password = self._uri.password or self.settings.sftp.password
        return username, password

    def _connect(self) -> None:
        assert self._uri is not None, "Filesystem not initialised"
        username, password = self._credentials()
        sftp_settings = self.settings.sftp

        self.ssh_client = paramiko.SSHClient()

        known_hosts = sftp_settings.known_hosts_file()
        if known_hosts:
            logger.info("using known_hosts file %s", known_hosts)
            try:
                self.ssh_client.get_host_keys().load(known_hosts)
            except (SSHException, OSError, ValueError) as e:
                logger.warning("skipping unusable known_hosts file %s: %s", known_hosts, e)
        self.ssh_client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs: Dict[str, Any] = {
            "hostname": self._uri.host,
            "port": self._uri.port or 22,
            "username": username,
        }

        if password:
            connect_kwargs["password"] = password

        private_key = sftp_settings.private_key_file()
        if private_key:
            logger.info("using identity file %s", private_key)
            connect_kwargs["key_filename"] = private_key
            if sftp_settings.passphrase:
                connect_kwargs["passphrase"] = sftp_settings.passphrase
        else:
            connect_kwargs["look_for_keys"] = False
            connect_kwargs["allow_agent"] = False

        if sftp_settings.timeout is not None:
            connect_kwargs["timeout"] = sftp_settings.timeout

        try:
            self.ssh_client.connect(**connect_kwargs)
            self.sftp_client = self.ssh_client.open_sftp()
        except AuthenticationException as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e
        except (SSHException, socket.error, EOFError) as e:
            raise FSConnectionError(
                f"Failed to connect to SFTP server {self._uri.host}: {e}"
            ) from e

        self._check_base_dir()

    def _check_base_dir(self) -> None:
        assert self.sftp_client is not None, "Client not connected"
        try:
            attrs = self.sftp_client.stat(self._base_dir)
        except FileNotFoundError as e:
            raise DirectoryNotFoundError(f"base dir {self._base_dir} does not exist") from e
        except (SSHException, IOError) as e:
            raise FSConnectionError(f"unable to check base dir {self._base_dir}: {e}") from e

        if attrs.st_mode is not None and not stat.S_ISDIR(attrs.st_mode):
            raise DirectoryNotFoundError(f"base dir {self._base_dir} is not a directory")

    def _disconnect(self) -> None:
        try:
            if self.sftp_client:
                self.sftp_client.close()
        finally:
            self.sftp_client = None
            try:
                if self.ssh_client:
                    self.ssh_client.close()
            finally:
                self.ssh_client = None

    def _is_connected(self) -> bool:
        if self.ssh_client is None or self.sftp_client is None:
            return False
        transport = self.ssh_client.get_transport()
        channel = self.sftp_client.get_channel()
        return (
            transport is not None
            and transport.is_active()
            and channel is not None
            and not channel.closed
        )

    def _probe(self) -> None:
        assert self.sftp_client is not None, "Client not connected"
        self.sftp_client.stat(self._base_dir)

    def _ls(self, directory: Optional[str]) -> Optional[List[FileDescriptor]]:
        self._ensure_connected()
        assert self.sftp_client is not None, "Client not connected"
        path = self.directory_path(directory)

        try:
            attrs = self.sftp_client.listdir_attr(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except self.backend_errors as e:
            raise TransferError(f"Failed to list directory '{path}': {e}") from e

        return [
            self._stat_to_file_descriptor(attr, PurePosixPath(attr.filename))
            for attr in attrs
        ]

    def _stat_to_file_descriptor(self, attr: SFTPAttributes, path: PurePosixPath) -> FileDescriptor:
        if attr.st_mode is not None and stat.S_ISDIR(attr.st_mode):
            filetype = FileType.DIRECTORY
        else:
            filetype = FileType.FILE

        return FileDescriptor(
            path=path,
            filetype=filetype,
            size=attr.st_size if filetype == FileType.FILE else None,
            modified_time=(
                datetime.fromtimestamp(attr.st_mtime)
                if attr.st_mtime is not None
                else None
            ),
        )

    def open_input(self, file: RemoteFile) -> IO[bytes]:
        self._ensure_connected()
        assert self.sftp_client is not None, "Client not connected"
        path = self.file_path(file)
        logger.debug("creating input stream for %s", path)
        return self._call(f"reading {path}", self.sftp_client.open, path, "rb")

    def open_output(self, file: RemoteFile) -> IO[bytes]:
        self._ensure_connected()
        assert self.sftp_client is not None, "Client not connected"
        path = self.file_path(file)
        logger.debug("creating output stream for %s", path)
        return self._call(f"writing {path}", self.sftp_client.open, path, "wb")

    def remove(self, file: RemoteFile) -> None:
        self._ensure_connected()
        assert self.sftp_client is not None, "Client not connected"
        path = self.file_path(file)
        logger.debug("deleting %s", path)
        self._call(f"deleting {path}", self.sftp_client.remove, path)

    def move(self, file: RemoteFile, new_name: str) -> None:
        self._ensure_connected()
        assert self.sftp_client is not None, "Client not connected"
        path = self.file_path(file)
        target = join(self.directory_path(file.directory), new_name)
        logger.debug("renaming %s to %s", path, target)
        self._call(f"renaming {path}", self.sftp_client.rename, path, target)
