"""
Classify what the OS-default base directory holds before anything is written to it.

The schema of a data directory is never recorded on disk; it is inferred from
the names of its immediate children:

* ``<base>/<chain>/...`` for the current per-chain layout
* ``<base>/{chaindata,keystore,nodes,dapp,nodekey}`` for releases that predate it
* ``<base>/geth/...`` for the unrelated lineage that shares the directory name
"""
from enum import (
    Enum,
    auto,
)
import logging
from pathlib import Path
from typing import (
    Callable,
    NamedTuple,
    Tuple,
)

from etcnode._utils.filesystem import (
    directory_size,
)
from etcnode.constants import (
    BUILTIN_CHAIN_NAMES,
    CHAIN_DESCRIPTOR_FILE,
    CHAINDATA_DIR,
    FOREIGN_MARKER_DIRS,
    LEGACY_MARKER_DIRS,
    LEGACY_MARKER_FILES,
    LEGACY_TESTNET_DIR,
    LEVELDB_MARKER_FILES,
    MORDEN_CHAIN_NAME,
)

logger = logging.getLogger('etcnode.layout')


class LegacyClassification(Enum):
    ABSENT = auto()
    CURRENT = auto()
    MIGRATABLE_OWN_SCHEMA = auto()
    FOREIGN_SCHEMA = auto()
    MIGRATABLE_EMPTY = auto()


class LegacyLayout(NamedTuple):
    classification: LegacyClassification
    base_dir: Path
    # the directory whose markers would move: the base, or <base>/testnet for morden
    source_dir: Path
    markers: Tuple[str, ...]

    @property
    def is_migratable(self) -> bool:
        return self.classification is LegacyClassification.MIGRATABLE_OWN_SCHEMA


GenuineDataPredicate = Callable[[Path], bool]


def has_min_chaindata_bytes(min_bytes: int) -> GenuineDataPredicate:
    """
    Return a predicate that holds when the chaindata directory contains at
    least ``min_bytes`` bytes of files.
    """
    def predicate(chaindata_dir: Path) -> bool:
        if not chaindata_dir.is_dir():
            return False
        return directory_size(chaindata_dir) >= min_bytes
    return predicate


# any non-empty file below chaindata counts as chain data
has_genuine_chaindata = has_min_chaindata_bytes(1)


def has_leveldb_files(chaindata_dir: Path) -> bool:
    """
    Stricter predicate: the chaindata directory was opened as a LevelDB database.
    """
    return chaindata_dir.is_dir() and all(
        (chaindata_dir / name).exists() for name in LEVELDB_MARKER_FILES
    )


def find_legacy_markers(directory: Path) -> Tuple[str, ...]:
    markers = [
        name for name in LEGACY_MARKER_DIRS
        if (directory / name).is_dir()
    ]
    markers.extend(
        name for name in LEGACY_MARKER_FILES
        if (directory / name).is_file()
    )
    return tuple(markers)


def _is_chain_subdir(path: Path, chain_name: str) -> bool:
    if not path.is_dir() or path.name.startswith('.'):
        return False
    if path.name == LEGACY_TESTNET_DIR or path.name in FOREIGN_MARKER_DIRS:
        return False
    if path.name in BUILTIN_CHAIN_NAMES or path.name == chain_name:
        return True
    return (path / CHAIN_DESCRIPTOR_FILE).is_file()


def has_chain_subdirs(base_dir: Path, chain_name: str) -> bool:
    return any(_is_chain_subdir(child, chain_name) for child in base_dir.iterdir())


def _legacy_source_dir(base_dir: Path, chain_name: str) -> Path:
    if chain_name == MORDEN_CHAIN_NAME:
        legacy_testnet_dir = base_dir / LEGACY_TESTNET_DIR
        if legacy_testnet_dir.is_dir() and find_legacy_markers(legacy_testnet_dir):
            return legacy_testnet_dir
    return base_dir


def classify(base_dir: Path,
             chain_name: str,
             is_genuine: GenuineDataPredicate = has_genuine_chaindata) -> LegacyLayout:
    """
    Classify ``base_dir`` for a process that resolved to ``chain_name``.

    ``is_genuine`` receives the legacy ``chaindata`` directory and decides
    whether it holds data worth moving.
    """
    if not base_dir.exists():
        return LegacyLayout(LegacyClassification.ABSENT, base_dir, base_dir, ())

    if (base_dir / chain_name).is_dir():
        logger.debug("Base directory %s already holds %s", base_dir, chain_name)
        return LegacyLayout(LegacyClassification.CURRENT, base_dir, base_dir, ())

    foreign = tuple(name for name in FOREIGN_MARKER_DIRS if (base_dir / name).is_dir())
    if foreign:
        logger.debug("Base directory %s belongs to another client (found %s)", base_dir, foreign)
        return LegacyLayout(LegacyClassification.FOREIGN_SCHEMA, base_dir, base_dir, foreign)

    source_dir = _legacy_source_dir(base_dir, chain_name)
    markers = find_legacy_markers(source_dir)
    if not markers:
        if has_chain_subdirs(base_dir, chain_name):
            logger.debug("Base directory %s already uses per-chain subdirectories", base_dir)
            return LegacyLayout(LegacyClassification.CURRENT, base_dir, base_dir, ())
        # nothing this client ever wrote; treated like a missing directory
        return LegacyLayout(LegacyClassification.ABSENT, base_dir, source_dir, ())

    if is_genuine(source_dir / CHAINDATA_DIR):
        classification = LegacyClassification.MIGRATABLE_OWN_SCHEMA
    else:
        classification = LegacyClassification.MIGRATABLE_EMPTY

    logger.debug(
        "Base directory %s classified as %s (markers: %s)",
        base_dir,
        classification.name,
        ', '.join(markers),
    )
    return LegacyLayout(classification, base_dir, source_dir, markers)
