import os
from pathlib import Path
import sys

from etcnode.constants import (
    BASE_DIR_NAME_DARWIN,
    BASE_DIR_NAME_POSIX,
    BASE_DIR_NAME_WINDOWS,
    LEGACY_BRAND_DIR_NAME_DARWIN,
    LEGACY_BRAND_DIR_NAME_POSIX,
    LEGACY_BRAND_DIR_NAME_WINDOWS,
)
from etcnode.exceptions import (
    ConfigValidationError,
)


def get_home() -> Path:
    try:
        return Path(os.environ['HOME'])
    except KeyError:
        raise ConfigValidationError(
            "Cannot determine default data directory, $HOME is not set. "
            "Please set it manually (--data-dir)"
        )


def _get_platform_dir(posix_name: str, darwin_name: str, windows_name: str) -> Path:
    if sys.platform == 'darwin':
        return get_home() / 'Library' / darwin_name
    elif sys.platform == 'win32':
        try:
            return Path(os.environ['APPDATA']) / windows_name
        except KeyError:
            return get_home() / 'AppData' / 'Roaming' / windows_name
    else:
        return get_home() / posix_name


def get_default_base_dir() -> Path:
    """
    Return the OS-default base directory that all chain subdirectories live under.

    This is the only place the process environment is consulted for it; every
    other component receives the resolved path.
    """
    try:
        return Path(os.environ['ETCNODE_BASE_DIR']).expanduser()
    except KeyError:
        return _get_platform_dir(
            BASE_DIR_NAME_POSIX,
            BASE_DIR_NAME_DARWIN,
            BASE_DIR_NAME_WINDOWS,
        )


def get_legacy_brand_dir(base_dir: Path) -> Path:
    """
    Return the directory that releases under the previous product name used as
    their base. It sits beside ``base_dir``.
    """
    try:
        return Path(os.environ['ETCNODE_LEGACY_BRAND_DIR']).expanduser()
    except KeyError:
        pass

    if sys.platform == 'darwin':
        name = LEGACY_BRAND_DIR_NAME_DARWIN
    elif sys.platform == 'win32':
        name = LEGACY_BRAND_DIR_NAME_WINDOWS
    else:
        name = LEGACY_BRAND_DIR_NAME_POSIX
    return base_dir.parent / name
