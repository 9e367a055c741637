import os
from pathlib import Path
from types import TracebackType
from typing import (
    Iterator,
    Optional,
    Type,
)

from etcnode.exceptions import (
    DataDirLocked,
)


def is_under_path(base_path: Path, path: Path, strict: bool = True) -> bool:
    """
    Check whether ``path`` is located under ``base_path``. With ``strict`` the
    two being equal does not count.
    """
    absolute_base_path = Path(os.path.abspath(base_path))
    absolute_path = Path(os.path.abspath(path))
    if strict and absolute_base_path == absolute_path:
        return False
    return absolute_path == absolute_base_path or absolute_base_path in absolute_path.parents


def iter_files(path: Path) -> Iterator[Path]:
    for root, _, filenames in os.walk(path):
        for filename in filenames:
            yield Path(root) / filename


def directory_size(path: Path) -> int:
    """
    Return the total size in bytes of all regular files below ``path``.
    """
    return sum(
        file_path.stat().st_size
        for file_path in iter_files(path)
        if file_path.is_file()
    )


class PidFile:
    """
    Exclusively create a file holding the current process id for as long as the
    context is open. A second instance finds the file and fails with
    :class:`~etcnode.exceptions.DataDirLocked`.
    """

    _fd: Optional[int] = None

    def __init__(self, filename: str, path: Path) -> None:
        self.filepath = path / filename

    def __enter__(self) -> 'PidFile':
        try:
            self._fd = os.open(self.filepath, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise DataDirLocked(
                f"The chain directory is in use by another process: `{self.filepath}` exists"
            )
        os.write(self._fd, str(os.getpid()).encode('ascii'))
        os.fsync(self._fd)
        return self

    def __exit__(self,
                 exc_type: Optional[Type[BaseException]],
                 exc_value: Optional[BaseException],
                 traceback: Optional[TracebackType]) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        try:
            self.filepath.unlink()
        except FileNotFoundError:
            pass
