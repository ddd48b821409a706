from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from enum import Enum, auto
from typing import Callable, Iterable, List, Optional

NameFilter = Callable[[str], bool]


class FileType(Enum):
    FILE = auto()
    DIRECTORY = auto()


@dataclass
class FileDescriptor:
    path: PurePosixPath
    filetype: FileType
    size: Optional[int] = None
    modified_time: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_directory(self) -> bool:
        return self.filetype == FileType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.filetype == FileType.FILE

    @property
    def timestamp(self) -> float:
        """Modification time as POSIX seconds, 0 when unknown."""
        if self.modified_time is None:
            return 0.0
        return self.modified_time.timestamp()

    def __str__(self) -> str:
        return f"{str(self.filetype)} {self.path.as_posix()}"


def select_names(
    entries: Iterable[FileDescriptor],
    filetype: FileType,
    name_filter: Optional[NameFilter] = None,
) -> List[str]:
    """Names of the entries of one kind that pass ``name_filter``."""
    return [
        entry.name
        for entry in entries
        if entry.filetype == filetype
        and entry.name not in (".", "..")
        and (name_filter is None or name_filter(entry.name))
    ]


def find_entry(
    entries: Optional[Iterable[FileDescriptor]], name: str
) -> Optional[FileDescriptor]:
    """Return the entry with exactly ``name``, or None."""
    if entries is None:
        return None
    for entry in entries:
        if entry.name == name:
            return entry
    return None
