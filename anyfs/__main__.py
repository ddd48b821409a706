import argparse
import logging
import os
import shutil
import sys
from datetime import datetime
from typing import IO, List, Optional, Tuple

from anyfs.config import ConfigError, Settings, ValidationError
from anyfs.exceptions import FSError
from anyfs.factory import FileSystemFactory
from anyfs.filesystem import FileSystem
from anyfs.paths import normalize

DEFAULT_CONFIG_PATH = "~/.anyfsconf.toml"


class Exit(Exception):
    pass


def config_file_type(path: str) -> Optional[IO[bytes]]:
    """Custom FileType that doesn't error if default file doesn't exist."""
    default_config_path = os.path.expanduser(DEFAULT_CONFIG_PATH)
    # A missing default file means built-in settings
    if path == default_config_path and not os.path.exists(path):
        return None
    return open(path, "rb")


def split_name(name: str) -> Tuple[Optional[str], str]:
    """Split ``dir/sub/file`` into the directory and the file name."""
    directory, _, filename = normalize(name).rpartition("/")
    if not filename:
        raise Exit(f"fatal error: no file name in '{name}'")
    return directory or None, filename


def cmd_ls(fs: FileSystem, args: argparse.Namespace) -> None:
    dirs = fs.list_dirs(args.dir)
    files = fs.list(args.dir)
    if dirs is None or files is None:
        raise Exit(f"fatal error: directory '{args.dir or '/'}' does not exist")
    for name in sorted(dirs):
        print(f"{name}/")
    for name in sorted(files):
        print(name)


def cmd_get(fs: FileSystem, args: argparse.Namespace) -> None:
    directory, name = split_name(args.name)
    f = fs.create(name, directory)
    if not f.exists():
        raise Exit(f"fatal error: {f.path} does not exist")
    dest = args.dest or name
    if os.path.isdir(dest):
        dest = os.path.join(dest, name)
    with f.get_input_stream() as src, open(dest, "wb") as out:
        shutil.copyfileobj(src, out)


def cmd_put(fs: FileSystem, args: argparse.Namespace) -> None:
    if not os.path.isfile(args.source):
        raise Exit(f"fatal error: {args.source} is not a file")
    f = fs.create(os.path.basename(args.source), args.dir)
    with open(args.source, "rb") as src, f.get_output_stream() as out:
        shutil.copyfileobj(src, out)


def cmd_rm(fs: FileSystem, args: argparse.Namespace) -> None:
    directory, name = split_name(args.name)
    fs.create(name, directory).delete()


def cmd_mv(fs: FileSystem, args: argparse.Namespace) -> None:
    directory, name = split_name(args.name)
    fs.create(name, directory).rename(args.new)


def cmd_stat(fs: FileSystem, args: argparse.Namespace) -> None:
    directory, name = split_name(args.name)
    f = fs.create(name, directory)
    if not f.exists():
        raise Exit(f"fatal error: {f.path} does not exist")
    modified = datetime.fromtimestamp(f.last_modified())
    print(f"path:     {f.path}")
    print(f"size:     {f.length()}")
    print(f"modified: {modified.isoformat(sep=' ', timespec='seconds')}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anyfs", description="access local, FTP, SFTP and SMB storage by URI"
    )

    default_config_path = os.path.expanduser(DEFAULT_CONFIG_PATH)

    parser.add_argument("--config", type=config_file_type, default=default_config_path)
    parser.add_argument("-v", "--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command", required=True)

    ls = commands.add_parser("ls", help="list a directory")
    ls.add_argument("uri")
    ls.add_argument("dir", nargs="?", default=None)
    ls.set_defaults(func=cmd_ls)

    get = commands.add_parser("get", help="download a file")
    get.add_argument("uri")
    get.add_argument("name")
    get.add_argument("dest", nargs="?", default=None)
    get.set_defaults(func=cmd_get)

    put = commands.add_parser("put", help="upload a file")
    put.add_argument("uri")
    put.add_argument("source")
    put.add_argument("dir", nargs="?", default=None)
    put.set_defaults(func=cmd_put)

    rm = commands.add_parser("rm", help="delete a file")
    rm.add_argument("uri")
    rm.add_argument("name")
    rm.set_defaults(func=cmd_rm)

    mv = commands.add_parser("mv", help="rename a file within its directory")
    mv.add_argument("uri")
    mv.add_argument("name")
    mv.add_argument("new")
    mv.set_defaults(func=cmd_mv)

    stat = commands.add_parser("stat", help="show size and modification time")
    stat.add_argument("uri")
    stat.add_argument("name")
    stat.set_defaults(func=cmd_stat)

    return parser


def load_settings(config_file: Optional[IO[bytes]]) -> Settings:
    if config_file is None:
        return Settings()

    try:
        settings = Settings.from_file(config_file)
    except (ConfigError, ValidationError) as e:
        raise Exit(f"Configuration error: {e}")

    # Show configuration warnings if any
    for warning in settings.get_warnings():
        print(f"Warning: {warning}", file=sys.stderr)

    return settings


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the anyfs command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
        factory = FileSystemFactory(settings)
        try:
            with factory.create_filesystem(args.uri) as fs:
                args.func(fs, args)
        except FSError as e:
            raise Exit(f"fatal error: {e}")
    except Exit as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    finally:
        if args.config is not None:
            args.config.close()


if __name__ == "__main__":
    main()
