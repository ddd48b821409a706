from ftplib import FTP, FTP_TLS, all_errors, error_perm, error_temp
from pathlib import PurePosixPath
from datetime import datetime
from typing import IO, Any, Dict, List, Optional, Union
import io
import logging
import re
import socket
import ssl

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
ANONYMOUS_PASSWORD = "anonymous@"


class FtpFile(RemoteFile):
    """File on an FTP server."""


class _TransferStream(io.RawIOBase):
    """Data connection of a single RETR/STOR command.

    Closing the stream closes the data socket and reads the server's final
    reply for the transfer.
    """

    def __init__(self, ftp_client: FTP, conn: socket.socket, writable: bool) -> None:
        super().__init__()
        self._ftp_client = ftp_client
        self._conn = conn
        self._writable = writable

    def readable(self) -> bool:
        return not self._writable

    def writable(self) -> bool:
        return self._writable

    def readinto(self, b: Any) -> int:
        return self._conn.recv_into(b)

    def write(self, b: Any) -> int:
        self._conn.sendall(b)
        return len(b)

    def close(self) -> None:
        if self.closed:
            return
        try:
            # TLS data channels need close_notify before the final reply
            if isinstance(self._conn, ssl.SSLSocket):
                self._conn.unwrap()
            self._conn.close()
            self._ftp_client.voidresp()
        except all_errors as e:
            raise TransferError(f"transfer did not complete: {e}") from e
        finally:
            super().close()


class FtpFileSystem(RemoteFileSystem):
    """FTP and FTPS (explicit TLS) backend on top of ftplib."""

    scheme = "ftp"
    file_class = FtpFile
    backend_errors = all_errors

    # Directory listing patterns
    _UNIX_PATTERN = re.compile(
        r"^([\-ld])([rwxs\-]{9})\s+(\d+)\s+(\S+)\s+(\S+)\s+(\d+)\s+"
        r"(\w{3}\s+\d{1,2}\s+(?:\d{1,2}:\d{1,2}|\d{4}))\s+(.+)$"
    )
    _WINDOWS_PATTERN = re.compile(
        r"^(\d{2}-\d{2}-\d{2}\s+\d{2}:\d{2}[AP]M)\s+(<DIR>|\d+)\s+(.+)$"
    )

    def __init__(self, settings=None) -> None:
        super().__init__(settings)
        self.ftp_client: Optional[Union[FTP, FTP_TLS]] = None
        self._root = ""

    @property
    def tls(self) -> bool:
        return self._uri is not None and self._uri.scheme == "ftps"

    def _resolve_base_dir(self, uri: URI) -> str:
        return normalize(uri.path) or ""

    def _connect(self) -> None:
        assert self._uri is not None, "Filesystem not initialised"
        host = self._uri.host
        port = self._uri.port or 21

        try:
            self.ftp_client = FTP_TLS() if self.tls else FTP()
            connect_kwargs: Dict[str, Any] = {}
            if self.settings.ftp.timeout is not None:
                connect_kwargs["timeout"] = self.settings.ftp.timeout
            self.ftp_client.connect(host, port, **connect_kwargs)
            logger.debug("connected to %s:%s", host, port)
            self._login()
            self._enter_root()

            if self.settings.ftp.usepassive:
                logger.debug("using passive mode")
            else:
                logger.debug("using active mode")
            self.ftp_client.set_pasv(self.settings.ftp.usepassive)

            logger.debug("activating binary transfer type")
            self.ftp_client.voidcmd("TYPE I")
        except error_perm as e:
            error_str = str(e)
            if error_str.startswith("530"):
                raise AuthenticationError(f"Authentication failed: {error_str}") from e
            raise FSConnectionError(f"FTP error: {error_str}") from e
        except (socket.gaierror, socket.timeout, OSError, EOFError) as e:
            raise FSConnectionError(f"Failed to connect to {host}: {e}") from e
        except all_errors as e:
            raise FSConnectionError(f"FTP error: {e}") from e

    def _login(self) -> None:
        """Authenticate and enable TLS protection if applicable."""
        assert self.ftp_client is not None, "Client not created"
        assert self._uri is not None
        username = self._uri.username
        password = self._uri.password or ""
        if not username:
            username, password = ANONYMOUS_USER, ANONYMOUS_PASSWORD
            logger.debug("no user given, fallback to anonymous login")

        if self.tls:
            self.ftp_client.auth()  # type: ignore[union-attr]
        self.ftp_client.login(user=username, passwd=password)
        if self.tls:
            self.ftp_client.prot_p()  # type: ignore[union-attr]
        logger.debug("logged in as %s", username)

    def _enter_root(self) -> None:
        assert self.ftp_client is not None, "Client not created"
        if not self._base_dir:
            self._root = self.ftp_client.pwd()
            return

        try:
            self.ftp_client.cwd(self._base_dir)
        except error_perm as e:
            raise DirectoryNotFoundError(
                f"error while switching into base dir {self._base_dir}: {e}"
            ) from e
        self._root = self._base_dir

    def _disconnect(self) -> None:
        if self.ftp_client is None:
            return
        try:
            if self.ftp_client.sock is None:
                # never connected, or already dropped: nothing to say QUIT on
                self.ftp_client.close()
            else:
                self.ftp_client.quit()
        except all_errors:
            # If quit fails (e.g., connection already closed), force close
            self.ftp_client.close()
        finally:
            self.ftp_client = None

    def _is_connected(self) -> bool:
        return self.ftp_client is not None and self.ftp_client.sock is not None

    def _probe(self) -> None:
        assert self.ftp_client is not None, "Client not connected"
        self.ftp_client.cwd(self._root)

    def _closed_by_peer(self, error: BaseException) -> bool:
        # 421 is the server announcing it closes the control connection
        if isinstance(error, error_temp) and str(error).startswith("421"):
            return True
        return super()._closed_by_peer(error)

    def directory_path(self, directory: Optional[str]) -> str:
        return join(self._root or self._base_dir, directory)

    def _cd(self, directory: Optional[str]) -> None:
        """Reconnect if needed and change into a base-relative directory."""
        self._ensure_connected()
        assert self.ftp_client is not None, "Client not connected"
        target = self.directory_path(directory)
        try:
            self.ftp_client.cwd(target)
        except error_perm as e:
            raise DirectoryNotFoundError(f"error while switching into dir {target}: {e}") from e
        except all_errors as e:
            raise TransferError(f"error while switching into dir {target}: {e}") from e

    def _ls(self, directory: Optional[str]) -> Optional[List[FileDescriptor]]:
        """List the directory, trying MLSD first with LIST fallback."""
        try:
            self._cd(directory)
        except DirectoryNotFoundError:
            return None

        try:
            # Try MLSD first (RFC 3659 standardized format)
            return self._ls_mlsd()
        except error_perm:
            # MLSD not supported, fall back to LIST parsing
            pass
        except all_errors as e:
            raise TransferError(f"Failed to list directory '{directory}': {e}") from e

        return self._ls_list(directory)

    def _ls_mlsd(self) -> List[FileDescriptor]:
        """List the current directory using MLSD (RFC 3659).

        Raises:
            error_perm: If MLSD is not supported by the server
        """
        assert self.ftp_client is not None, "Client not connected"
        result: List[FileDescriptor] = []

        for name, facts in self.ftp_client.mlsd():
            # Skip current and parent directory entries
            file_type_str = facts.get("type", "").lower()
            if file_type_str in ("cdir", "pdir"):
                continue

            if file_type_str == "dir":
                file_type = FileType.DIRECTORY
            else:
                file_type = FileType.FILE

            size: Optional[int] = None
            if "size" in facts:
                try:
                    size = int(facts["size"])
                except ValueError:
                    pass

            # YYYYMMDDHHMMSS[.sss], UTC
            modified_time: Optional[datetime] = None
            if "modify" in facts:
                try:
                    modify_str = facts["modify"].split(".")[0]
                    modified_time = datetime.strptime(modify_str, "%Y%m%d%H%M%S")
                except ValueError:
                    pass

            result.append(
                FileDescriptor(
                    path=PurePosixPath(name),
                    filetype=file_type,
                    size=size,
                    modified_time=modified_time,
                )
            )

        return result

    def _ls_list(self, directory: Optional[str]) -> List[FileDescriptor]:
        """List the current directory using LIST with regex parsing."""
        assert self.ftp_client is not None, "Client not connected"
        result: List[FileDescriptor] = []

        try:
            lines: List[str] = []
            self.ftp_client.dir(lines.append)

            for line in lines:
                if fd := self._parse_list_line(line):
                    result.append(fd)

            if not result and lines:
                # Unparseable listing format, fall back to plain names
                for name in self.ftp_client.nlst():
                    is_dir = self._is_directory(name, directory)
                    result.append(
                        FileDescriptor(
                            path=PurePosixPath(name),
                            filetype=FileType.DIRECTORY if is_dir else FileType.FILE,
                        )
                    )
        except all_errors as e:
            raise TransferError(f"Failed to list directory '{directory}': {e}") from e

        return result

    def _is_directory(self, name: str, directory: Optional[str]) -> bool:
        """Check whether ``name`` in the current directory is a directory."""
        assert self.ftp_client is not None, "Client not connected"
        try:
            self.ftp_client.cwd(name)
        except all_errors:
            # Cannot cwd into path - it's not a directory (or doesn't exist)
            return False
        self.ftp_client.cwd(self.directory_path(directory))
        return True

    def _parse_list_line(self, line: str) -> Optional[FileDescriptor]:
        # Try Unix style first
        unix_match = self._UNIX_PATTERN.match(line)
        if unix_match:
            file_type = (
                FileType.DIRECTORY if unix_match.group(1) == "d" else FileType.FILE
            )
            size = int(unix_match.group(6))

            date_str = unix_match.group(7)
            modified_time: Optional[datetime]
            try:
                modified_time = datetime.strptime(date_str, "%b %d %Y")
            except ValueError:
                try:
                    # Recent entries carry a time instead of the year
                    current_year = datetime.now().year
                    modified_time = datetime.strptime(
                        f"{current_year} {date_str}", "%Y %b %d %H:%M"
                    )
                except ValueError:
                    modified_time = None

            return FileDescriptor(
                path=PurePosixPath(unix_match.group(8)),
                filetype=file_type,
                size=size,
                modified_time=modified_time,
            )

        # Try Windows style
        windows_match = self._WINDOWS_PATTERN.match(line)
        if windows_match:
            try:
                modified_time = datetime.strptime(
                    windows_match.group(1), "%m-%d-%y %I:%M%p"
                )
            except ValueError:
                modified_time = None

            dir_or_size = windows_match.group(2)
            is_dir = dir_or_size == "<DIR>"

            return FileDescriptor(
                path=PurePosixPath(windows_match.group(3)),
                filetype=FileType.DIRECTORY if is_dir else FileType.FILE,
                size=0 if is_dir else int(dir_or_size),
                modified_time=modified_time,
            )

        return None

    def open_input(self, file: RemoteFile) -> IO[bytes]:
        self._cd(file.directory)
        assert self.ftp_client is not None, "Client not connected"
        logger.debug("creating input stream for file %s", file.name)
        conn = self._call(
            f"retrieving {file.name}", self.ftp_client.transfercmd, f"RETR {file.name}"
        )
        return io.BufferedReader(_TransferStream(self.ftp_client, conn, writable=False))

    def open_output(self, file: RemoteFile) -> IO[bytes]:
        self._cd(file.directory)
        assert self.ftp_client is not None, "Client not connected"
        logger.debug("creating output stream for file %s", file.name)
        conn = self._call(
            f"storing {file.name}", self.ftp_client.transfercmd, f"STOR {file.name}"
        )
        return io.BufferedWriter(_TransferStream(self.ftp_client, conn, writable=True))

    def remove(self, file: RemoteFile) -> None:
        self._cd(file.directory)
        assert self.ftp_client is not None, "Client not connected"
        logger.debug("deleting %s", file.name)
        self._call(f"deleting {file.name}", self.ftp_client.delete, file.name)

    def move(self, file: RemoteFile, new_name: str) -> None:
        self._cd(file.directory)
        assert self.ftp_client is not None, "Client not connected"
        logger.debug("renaming %s to %s", file.name, new_name)
        self._call(f"renaming {file.name}", self.ftp_client.rename, file.name, new_name)
