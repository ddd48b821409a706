"""Scheme based dispatch from URI strings to filesystem backends.

Quick Start:
    from anyfs.factory import create_filesystem

    with create_filesystem("sftp://user:pw@host/data") as fs:
        for name in fs.list() or []:
            print(name)
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from anyfs.backends import get_backend, is_backend
from anyfs.backends.local import LocalFileSystem
from anyfs.config import Settings, get_settings, set_settings
from anyfs.exceptions import FSError, InvalidArgumentError
from anyfs.filesystem import FileSystem
from anyfs.uri import parse_uri, split_scheme

logger = logging.getLogger(__name__)

# a backend class, or the name of a built-in backend
Backend = Union[str, Type[FileSystem]]


class FileSystemFactory:
    """Maps URI schemes to backends and creates initialised filesystems."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        table: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self._registry: Dict[str, Backend] = {}
        self.load(self.settings.schemes if table is None else table)

    def load(self, table: Any) -> None:
        """Replace the registry from a scheme -> backend name mapping.

        A table that is not a mapping leaves the registry empty; entries
        naming an unknown backend are skipped.
        """
        self._registry = {}
        if not isinstance(table, Mapping):
            logger.error(
                "scheme table must be a mapping, got %s - no schemes registered",
                type(table).__name__,
            )
            return

        for scheme, name in table.items():
            if not isinstance(scheme, str) or not isinstance(name, str):
                logger.warning("skipping malformed scheme entry %r -> %r", scheme, name)
                continue
            name = name.strip().lower()
            if not is_backend(name):
                logger.warning("unknown backend '%s' for scheme '%s' - skipping", name, scheme)
                continue
            self._registry[scheme.lower()] = name

    def register(self, scheme: str, backend: Optional[Backend]) -> None:
        """Map ``scheme`` to ``backend``, replacing any previous mapping.

        Passing None removes the mapping.
        """
        if not scheme:
            raise InvalidArgumentError("scheme cannot be empty")
        if backend is None:
            self.unregister(scheme)
            return
        if isinstance(backend, str) and not is_backend(backend):
            raise InvalidArgumentError(f"unknown backend '{backend}'")
        logger.debug("registering scheme %s -> %s", scheme, backend)
        self._registry[scheme.lower()] = backend

    def unregister(self, scheme: str) -> None:
        logger.debug("unregistering scheme %s", scheme)
        self._registry.pop(scheme.lower(), None)

    def schemes(self) -> List[str]:
        return sorted(self._registry)

    def lookup(self, scheme: str) -> Optional[Type[FileSystem]]:
        """Backend class for ``scheme``, None if it is not registered.

        Raises:
            MissingDependencyError: If the backend's client library is missing
        """
        backend = self._registry.get(scheme.lower())
        if backend is None:
            return None
        if isinstance(backend, str):
            return get_backend(backend)
        return backend

    def create_filesystem(self, uri: Optional[str]) -> FileSystem:
        """Create and initialise the filesystem for ``uri``.

        Args:
            uri: Connection URI, or a plain local path

        Returns:
            An initialised FileSystem; the caller must close it

        Raises:
            InvalidArgumentError: If uri is None or empty
            FSError: If parsing or backend initialisation fails
        """
        if not uri:
            raise InvalidArgumentError("no uri given")

        scheme = split_scheme(uri)
        backend = self.lookup(scheme)
        if backend is None:
            logger.warning(
                "no filesystem registered for scheme %s, falling back to local", scheme
            )
            backend = LocalFileSystem

        logger.debug("creating %s for scheme %s", backend.__name__, scheme)
        try:
            fs = backend(settings=self.settings)
            fs.init(parse_uri(uri))
        except FSError:
            raise
        except Exception as e:
            raise FSError(f"unable to create filesystem for scheme {scheme}: {e}") from e
        return fs


_factory: Optional[FileSystemFactory] = None


def get_factory() -> FileSystemFactory:
    """Process-wide factory, built from the process settings on first use."""
    global _factory
    if _factory is None:
        _factory = FileSystemFactory(get_settings())
    return _factory


def configure(settings: Optional[Settings]) -> FileSystemFactory:
    """Install ``settings`` process-wide and rebuild the default factory.

    None restores the defaults.
    """
    global _factory
    set_settings(settings)
    _factory = FileSystemFactory(get_settings())
    return _factory


def create_filesystem(uri: Optional[str]) -> FileSystem:
    return get_factory().create_filesystem(uri)


def register(scheme: str, backend: Optional[Backend]) -> None:
    get_factory().register(scheme, backend)


def unregister(scheme: str) -> None:
    get_factory().unregister(scheme)
