from abc import abstractmethod, ABCMeta
from contextlib import AbstractContextManager
from types import TracebackType
from typing import IO, List, Optional

from typing_extensions import Self

from anyfs.config import Settings, get_settings
from anyfs.exceptions import InvalidArgumentError, NotFoundError
from anyfs.filedescriptor import FileDescriptor, FileType, NameFilter, select_names
from anyfs.uri import URI


class File(metaclass=ABCMeta):
    """
    Reference to a file on a backend.

    A File is a ``(filesystem, directory, name)`` triple. It holds no content;
    every operation re-queries the backend through its owning FileSystem.
    ``directory`` is relative to the filesystem's base directory, None meaning
    the base directory itself.
    """

    def __init__(
        self, filesystem: "FileSystem", directory: Optional[str], name: str
    ) -> None:
        self._filesystem = filesystem
        self._directory = directory
        self._name = name

    @property
    def filesystem(self) -> "FileSystem":
        return self._filesystem

    @property
    def directory(self) -> Optional[str]:
        return self._directory

    @property
    def name(self) -> str:
        return self._name

    @property
    @abstractmethod
    def path(self) -> str:
        """Full backend path of the file."""

    @abstractmethod
    def exists(self) -> bool:
        """
        Check whether the file exists.

        Returns:
            True if the file exists. Absence is never an error.
        """

    @abstractmethod
    def length(self) -> int:
        """
        Size of the file in bytes.

        Returns:
            The size, or 0 if the file does not exist
        """

    @abstractmethod
    def last_modified(self) -> float:
        """
        Time of the last modification.

        Returns:
            POSIX timestamp in seconds, or 0 if the file does not exist
        """

    @abstractmethod
    def get_input_stream(self) -> IO[bytes]:
        """
        Open the file for reading.

        The caller owns the returned stream and must close it, preferably
        with a ``with`` block.
        """

    @abstractmethod
    def get_output_stream(self) -> IO[bytes]:
        """
        Open the file for writing, replacing any existing content.

        The caller owns the returned stream and must close it, preferably
        with a ``with`` block.
        """

    @abstractmethod
    def delete(self) -> None:
        """
        Delete the file. Deleting a missing file is a no-op.
        """

    def rename(self, new_name: Optional[str]) -> None:
        """
        Rename the file within its directory.

        Args:
            new_name: The new file name, without any directory part

        Raises:
            InvalidArgumentError: If new_name is None or empty
            NotFoundError: If the file does not exist
        """
        if not new_name:
            raise InvalidArgumentError("no filename given")
        if not self.exists():
            raise NotFoundError(
                f"file {self._name} does not exist in dir {self._directory}"
            )
        self._rename(new_name)
        self._name = new_name

    @abstractmethod
    def _rename(self, new_name: str) -> None:
        """Backend specific rename of an existing file."""

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(directory={self._directory!r}, "
            f"name={self._name!r})"
        )


class FileSystem(AbstractContextManager, metaclass=ABCMeta):
    """
    A session against one storage backend.

    Created by the factory, initialised once with ``init``, then used for any
    number of operations and closed once by its owner. A FileSystem is a
    single logical session and must not be shared between threads.
    """

    scheme: str = ""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings if settings is not None else get_settings()
        self._uri: Optional[URI] = None
        self._base_dir = ""

    @property
    def uri(self) -> Optional[URI]:
        return self._uri

    @property
    def base_dir(self) -> str:
        """Root path captured from the URI by ``init``."""
        return self._base_dir

    @abstractmethod
    def init(self, uri: URI) -> None:
        """
        One-time setup from the parsed URI. Remote backends connect here.

        Raises:
            FSConnectionError: On network or authentication failure
        """

    @abstractmethod
    def create(self, filename: str, directory: Optional[str] = None) -> File:
        """
        Create a file reference. Does not touch the backend contents.

        Args:
            filename: Name of the file
            directory: Directory relative to the base directory, None for
                the base directory itself

        Returns:
            A File bound to this filesystem
        """

    def list(
        self, directory: Optional[str] = None, name_filter: Optional[NameFilter] = None
    ) -> Optional[List[str]]:
        """
        List the names of the files in a directory.

        Args:
            directory: Directory relative to the base directory
            name_filter: Optional predicate on the entry name

        Returns:
            File names, an empty list for an empty directory or None if the
            directory does not exist
        """
        entries = self._ls(directory)
        if entries is None:
            return None
        return select_names(entries, FileType.FILE, name_filter)

    def list_dirs(
        self, directory: Optional[str] = None, name_filter: Optional[NameFilter] = None
    ) -> Optional[List[str]]:
        """
        List the names of the subdirectories of a directory.

        Args:
            directory: Directory relative to the base directory
            name_filter: Optional predicate on the entry name

        Returns:
            Directory names, an empty list if there are none or None if the
            directory does not exist
        """
        entries = self._ls(directory)
        if entries is None:
            return None
        return select_names(entries, FileType.DIRECTORY, name_filter)

    @abstractmethod
    def _ls(self, directory: Optional[str]) -> Optional[List[FileDescriptor]]:
        """Entries of a base-relative directory, None if it does not exist."""

    @abstractmethod
    def close(self) -> None:
        """
        Release the backend connection. Closing twice is a no-op.
        """

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
