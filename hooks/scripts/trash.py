#!/usr/bin/env python3
"""trash - move files to the system Trash instead of deleting them.

The reversible target the rm hooks rewrite to.

    macOS: ~/.Trash
    Linux: freedesktop.org Trash layout ($XDG_DATA_HOME/Trash, with .trashinfo)

Usage:
    trash <file1> [file2] [file3...]
"""

import argparse
import os
import shutil
import sys
from datetime import datetime
from pathlib import Path
from urllib.parse import quote

__version__ = "1.0.0"

TRASHINFO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

EPILOG = """\
examples:
    trash file.txt           Move a single file to trash
    trash folder/            Move a folder to trash
    trash a.txt b.txt c/     Move multiple items to trash
    trash -- -weird          Trash a file whose name starts with a dash
"""


class TrashError(Exception):
    """A path could not be moved to the trash."""

    pass


def get_trash_dir(platform: str | None = None) -> Path:
    """Get the trash directory for a platform.

    Args:
        platform: sys.platform value (default: current platform).

    Returns:
        ~/.Trash on macOS, $XDG_DATA_HOME/Trash (or ~/.local/share/Trash) on Linux.

    Raises:
        TrashError: Unsupported platform.
    """
    platform = sys.platform if platform is None else platform
    if platform == "darwin":
        return Path.home() / ".Trash"
    if platform.startswith("linux"):
        data_home = os.environ.get("XDG_DATA_HOME", "")
        if not data_home:
            data_home = str(Path.home() / ".local" / "share")
        return Path(data_home) / "Trash"
    raise TrashError(f"unsupported operating system: {platform}")


def unique_path(path: Path) -> Path:
    """Return path, or the first free "name N.ext" sibling if it is taken.

    report.txt -> report 1.txt -> report 2.txt ...
    """
    if not os.path.lexists(path):
        return path

    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} {counter}{path.suffix}")
        if not os.path.lexists(candidate):
            return candidate
        counter += 1


def _move(source: str, dest: Path) -> None:
    """Move source to dest; copy+delete across devices, symlinks kept as links."""
    try:
        shutil.move(source, str(dest))
    except OSError as e:
        raise TrashError(f"cannot move to trash: {e}") from e


def _trash_macos(abs_path: str, trash_dir: Path) -> Path:
    try:
        trash_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise TrashError(f"cannot create trash directory: {e}") from e

    dest = unique_path(trash_dir / os.path.basename(abs_path))
    _move(abs_path, dest)
    return dest


def _trash_freedesktop(abs_path: str, trash_dir: Path) -> Path:
    files_dir = trash_dir / "files"
    info_dir = trash_dir / "info"
    try:
        files_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        info_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise TrashError(f"cannot create trash directory: {e}") from e

    dest = unique_path(files_dir / os.path.basename(abs_path))
    info_path = info_dir / f"{dest.name}.trashinfo"
    deleted_at = datetime.now().strftime(TRASHINFO_DATE_FORMAT)
    info = f"[Trash Info]\nPath={quote(abs_path)}\nDeletionDate={deleted_at}\n"

    try:
        with open(info_path, "w", encoding="utf-8") as f:
            f.write(info)
        os.chmod(info_path, 0o600)
    except OSError as e:
        raise TrashError(f"cannot create trash info file: {e}") from e

    try:
        _move(abs_path, dest)
    except TrashError:
        info_path.unlink(missing_ok=True)
        raise
    return dest


def move_to_trash(path: str, platform: str | None = None) -> Path:
    """Move one file or directory to the trash.

    Args:
        path: Path to trash (relative paths resolve against the cwd).
        platform: sys.platform value (default: current platform).

    Returns:
        Where the item now lives inside the trash.

    Raises:
        TrashError: Missing path, unsupported platform, or failed move.
    """
    # abspath, not resolve(): a symlink is trashed as a link
    abs_path = os.path.abspath(path)
    try:
        os.lstat(abs_path)
    except FileNotFoundError:
        raise TrashError("no such file or directory") from None
    except OSError as e:
        raise TrashError(f"cannot access: {e}") from e

    platform = sys.platform if platform is None else platform
    trash_dir = get_trash_dir(platform)
    if platform == "darwin":
        return _trash_macos(abs_path, trash_dir)
    return _trash_freedesktop(abs_path, trash_dir)


def main(argv: list[str] | None = None) -> int:
    """trash command line entry point.

    Returns:
        0 if every path was trashed, 1 otherwise (or when no path is given).
    """
    parser = argparse.ArgumentParser(
        prog="trash",
        description="Move files and folders to the system Trash, allowing recovery if needed.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("-v", "--version", action="version", version=f"trash v{__version__}")
    parser.add_argument("paths", nargs="*", metavar="path", help="files or folders to trash")
    # Unknown dash tokens are paths too: `rm -x file` is rewritten to `trash -x file`
    args, extra = parser.parse_known_args(argv)
    paths = extra + args.paths

    if not paths:
        parser.print_help()
        return 1

    has_errors = False
    for path in paths:
        try:
            move_to_trash(path)
        except TrashError as e:
            print(f"trash: {path}: {e}", file=sys.stderr)
            has_errors = True
        else:
            print(f"'{path}' moved to trash")

    return 1 if has_errors else 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
