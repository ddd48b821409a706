import logging
import os
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import IO, List, Optional

from anyfs.exceptions import TransferError
from anyfs.filedescriptor import FileDescriptor, FileType
from anyfs.filesystem import File, FileSystem
from anyfs.paths import join, normalize, strip_leading
from anyfs.uri import URI

logger = logging.getLogger(__name__)


class LocalFile(File):
    def __init__(
        self, filesystem: "LocalFileSystem", directory: Optional[str], name: str
    ) -> None:
        super().__init__(filesystem, directory, name)
        self._dir_path = join(filesystem.base_dir, directory)

    @property
    def path(self) -> str:
        return os.path.join(self._dir_path, self._name)

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def length(self) -> int:
        try:
            return os.stat(self.path).st_size
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise TransferError(f"unable to stat {self.path}: {e}") from e

    def last_modified(self) -> float:
        try:
            return os.stat(self.path).st_mtime
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise TransferError(f"unable to stat {self.path}: {e}") from e

    def get_input_stream(self) -> IO[bytes]:
        try:
            return open(self.path, "rb")
        except OSError as e:
            raise TransferError(f"unable to open {self.path} for reading: {e}") from e

    def get_output_stream(self) -> IO[bytes]:
        try:
            return open(self.path, "wb")
        except OSError as e:
            raise TransferError(f"unable to open {self.path} for writing: {e}") from e

    def delete(self) -> None:
        if not self.exists():
            return
        logger.debug("deleting %s", self.path)
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise TransferError(f"unable to delete {self.path}: {e}") from e

    def _rename(self, new_name: str) -> None:
        target = os.path.join(self._dir_path, new_name)
        logger.debug("renaming %s to %s", self.path, target)
        try:
            os.rename(self.path, target)
        except OSError as e:
            raise TransferError(f"unable to rename {self.path}: {e}") from e


class LocalFileSystem(FileSystem):
    scheme = "file"

    def init(self, uri: URI) -> None:
        logger.debug("creating local filesystem for uri %s", uri)
        self._uri = uri
        base = normalize(uri.path)
        if not base:
            # "/" normalizes to "", keep the filesystem root
            base = "/" if uri.path[:1] in ("/", "\\") else "."
        self._base_dir = base

    def create(self, filename: str, directory: Optional[str] = None) -> LocalFile:
        directory = strip_leading(directory) or None
        dir_path = join(self._base_dir, directory)
        if not os.path.isdir(dir_path):
            logger.debug("creating dir %s", dir_path)
            try:
                os.makedirs(dir_path, exist_ok=True)
            except OSError as e:
                raise TransferError(f"unable to create dir {dir_path}: {e}") from e
        logger.debug("creating file handle for dir %s, file: %s", dir_path, filename)
        return LocalFile(self, directory, filename)

    def close(self) -> None:
        pass

    def _ls(self, directory: Optional[str]) -> Optional[List[FileDescriptor]]:
        path = join(self._base_dir, directory)
        result = []

        try:
            entries = os.listdir(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise TransferError(f"Failed to list directory '{path}': {e}") from e

        for entry_name in entries:
            entry_path = Path(path) / entry_name

            try:
                # lstat so that broken symlinks are still listed
                stat_info = entry_path.lstat()

                if entry_path.is_symlink():
                    try:
                        entry_path.stat()
                        file_type = FileType.DIRECTORY if entry_path.is_dir() else FileType.FILE
                    except OSError:
                        # Broken symlink - treat as file
                        file_type = FileType.FILE
                else:
                    file_type = FileType.DIRECTORY if entry_path.is_dir() else FileType.FILE

                result.append(
                    FileDescriptor(
                        path=PurePosixPath(entry_name),
                        filetype=file_type,
                        size=stat_info.st_size,
                        modified_time=datetime.fromtimestamp(stat_info.st_mtime),
                    )
                )
            except OSError:
                # Skip files that disappear or are inaccessible
                continue

        return result
