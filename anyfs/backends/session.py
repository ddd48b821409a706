"""Stateful, lazily reconnecting sessions for remote backends.

Remote servers drop idle connections without telling the client. Every
remote operation therefore goes through ``_ensure_connected`` first, which
reuses a live session, and otherwise tears the old one down and reconnects
once. A failure while reconnecting (bad credentials, missing base directory)
propagates to the caller.
"""

import logging
from abc import abstractmethod
from enum import Enum, auto
from typing import IO, Any, Callable, Optional, Tuple, Type, TypeVar

from anyfs.exceptions import TransferError
from anyfs.filedescriptor import FileDescriptor, find_entry
from anyfs.filesystem import File, FileSystem
from anyfs.paths import join, strip_leading
from anyfs.uri import URI

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(Enum):
    DISCONNECTED = auto()
    CONNECTED = auto()


class RemoteFile(File):
    """File on a remote backend. Every operation is a round trip through the
    owning filesystem."""

    _filesystem: "RemoteFileSystem"

    @property
    def path(self) -> str:
        return self._filesystem.file_path(self)

    def exists(self) -> bool:
        return self._filesystem.stat(self) is not None

    def length(self) -> int:
        entry = self._filesystem.stat(self)
        if entry is None or entry.size is None:
            return 0
        return entry.size

    def last_modified(self) -> float:
        entry = self._filesystem.stat(self)
        if entry is None:
            return 0
        return entry.timestamp

    def get_input_stream(self) -> IO[bytes]:
        return self._filesystem.open_input(self)

    def get_output_stream(self) -> IO[bytes]:
        return self._filesystem.open_output(self)

    def delete(self) -> None:
        if not self.exists():
            return
        self._filesystem.remove(self)

    def _rename(self, new_name: str) -> None:
        self._filesystem.move(self, new_name)


class RemoteFileSystem(FileSystem):
    """Base class for backends holding a connection that can go stale.

    Subclasses implement the transport hooks (``_connect``, ``_disconnect``,
    ``_is_connected``, ``_probe``) and the directory-scoped operations
    (``_ls``, ``open_input``, ``open_output``, ``remove``, ``move``).
    """

    file_class: Type[RemoteFile] = RemoteFile

    # errors that mean the peer dropped the connection
    closed_errors: Tuple[Type[BaseException], ...] = (EOFError, ConnectionError)
    # errors the client library raises for a failed operation
    backend_errors: Tuple[Type[BaseException], ...] = (OSError, EOFError)

    def __init__(self, settings=None) -> None:
        super().__init__(settings)
        self.state = SessionState.DISCONNECTED

    def init(self, uri: URI) -> None:
        logger.debug("creating %s filesystem for %s", self.scheme, uri)
        self._uri = uri
        self._base_dir = self._resolve_base_dir(uri)
        self._ensure_connected()

    def create(self, filename: str, directory: Optional[str] = None) -> RemoteFile:
        directory = strip_leading(directory) or None
        return self.file_class(self, directory, filename)

    def close(self) -> None:
        if self.state is SessionState.DISCONNECTED:
            return
        logger.debug("disconnect from %s", self._uri)
        try:
            self._disconnect()
        finally:
            self.state = SessionState.DISCONNECTED
            logger.debug("filesystem closed")

    def stat(self, file: RemoteFile) -> Optional[FileDescriptor]:
        """Listing entry of ``file`` in its directory, or None if absent."""
        return find_entry(self._ls(file.directory), file.name)

    def file_path(self, file: File) -> str:
        return join(self.directory_path(file.directory), file.name)

    def directory_path(self, directory: Optional[str]) -> str:
        """Backend path of a base-relative directory."""
        return join(self._base_dir, directory)

    def _ensure_connected(self) -> None:
        """Reuse the live session or reconnect.

        A session that reports itself connected is probed first; the
        probe catches connections the server closed after an idle timeout.
        """
        if self.state is SessionState.CONNECTED:
            if self._is_connected():
                try:
                    self._probe()
                    return
                except self.backend_errors as e:
                    if self._closed_by_peer(e):
                        logger.info(
                            "connection to %s closed by foreign host, performing auto reconnect",
                            self._uri,
                        )
                    else:
                        logger.warning(
                            "connection check on %s failed (%s), reconnecting", self._uri, e
                        )
            else:
                logger.info("session to %s is no longer connected, reconnecting", self._uri)

        self._reconnect()

    def _reconnect(self) -> None:
        if self.state is SessionState.CONNECTED:
            self._disconnect()
            self.state = SessionState.DISCONNECTED

        logger.debug("open %s connection to %s", self.scheme, self._uri)
        try:
            self._connect()
        except BaseException:
            self._disconnect()
            raise
        self.state = SessionState.CONNECTED
        logger.debug("connected to %s", self._uri)

    def _closed_by_peer(self, error: BaseException) -> bool:
        return isinstance(error, self.closed_errors)

    def _call(self, action: str, func: Callable[..., T], *args: Any) -> T:
        """Run one client call, wrapping client errors as TransferError."""
        try:
            return func(*args)
        except self.backend_errors as e:
            raise TransferError(f"{action} failed: {e}") from e

    def _resolve_base_dir(self, uri: URI) -> str:
        return uri.path

    @abstractmethod
    def _connect(self) -> None:
        """Open the transport, authenticate and enter the base directory."""

    @abstractmethod
    def _disconnect(self) -> None:
        """Drop the connection handles. Must not raise."""

    @abstractmethod
    def _is_connected(self) -> bool:
        """Whether the connection handles report themselves connected."""

    @abstractmethod
    def _probe(self) -> None:
        """Cheap round trip proving the session still works."""

    @abstractmethod
    def open_input(self, file: RemoteFile) -> IO[bytes]:
        """Open a remote file for reading."""

    @abstractmethod
    def open_output(self, file: RemoteFile) -> IO[bytes]:
        """Open a remote file for writing."""

    @abstractmethod
    def remove(self, file: RemoteFile) -> None:
        """Delete an existing remote file."""

    @abstractmethod
    def move(self, file: RemoteFile, new_name: str) -> None:
        """Rename an existing remote file within its directory."""
