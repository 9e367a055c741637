import os
from pathlib import Path
from typing import (
    List,
    NamedTuple,
    Optional,
    Tuple,
)

from eth_utils import (
    get_extended_debug_logger,
)

from etcnode.config import (
    NodeConfig,
)
from etcnode.constants import (
    LEGACY_TESTNET_DIR,
    MIGRATION_STAGING_PREFIX,
)
from etcnode.exceptions import (
    DirectoryStructureError,
    MigrationIOError,
)
from etcnode.layout import (
    LegacyClassification,
    LegacyLayout,
    classify,
    has_leveldb_files,
)

logger = get_extended_debug_logger('etcnode.migration')


class MigrationDecision(NamedTuple):
    should_migrate: bool
    reason: str


def decide_migration(layout: LegacyLayout, node_config: NodeConfig) -> MigrationDecision:
    """
    Decide whether the legacy contents of the base directory move into the
    chain subdirectory of ``node_config``.
    """
    if layout.classification is not LegacyClassification.MIGRATABLE_OWN_SCHEMA:
        return MigrationDecision(False, f"base directory is {layout.classification.name}")
    if not node_config.chain_identity.is_builtin:
        return MigrationDecision(False, f"custom chain {node_config.chain_name!r} selected")
    if node_config.is_data_dir_overridden:
        return MigrationDecision(False, "data directory set explicitly")
    if node_config.chain_dir.exists():
        return MigrationDecision(False, f"{node_config.chain_dir} already exists")
    return MigrationDecision(True, "legacy data found in default location")


def staging_dir_for(base_dir: Path, chain_name: str) -> Path:
    return base_dir / f"{MIGRATION_STAGING_PREFIX}{chain_name}"


def rollback_interrupted_migrations(base_dir: Path) -> List[Path]:
    """
    Move everything left in staging directories by an interrupted migration back
    into the base directory, so the next classification sees the legacy layout
    again. Return the staging directories that were rolled back.
    """
    if not base_dir.is_dir():
        return []

    rolled_back = []
    for staging_dir in sorted(base_dir.glob(f"{MIGRATION_STAGING_PREFIX}*")):
        if not staging_dir.is_dir():
            continue
        logger.warning("Rolling back interrupted data directory migration in %s", staging_dir)
        for entry in sorted(staging_dir.iterdir()):
            destination = base_dir / entry.name
            if destination.exists():
                raise MigrationIOError(
                    f"Cannot roll back interrupted migration: {destination} exists "
                    f"and {entry} is still staged"
                )
            try:
                os.rename(entry, destination)
            except OSError as err:
                raise MigrationIOError(f"Cannot roll back {entry} to {destination}: {err}") from err
        staging_dir.rmdir()
        rolled_back.append(staging_dir)
    return rolled_back


def _restore(moved: List[Tuple[Path, Path]]) -> None:
    for source, destination in reversed(moved):
        os.rename(destination, source)


def migrate_to_chain_subdir(layout: LegacyLayout, chain_dir: Path) -> None:
    """
    Move the legacy markers of ``layout`` into ``chain_dir``.

    Entries are first renamed into a hidden staging directory beside
    ``chain_dir``, which is renamed into place only once everything moved.
    On failure every entry is moved back and :class:`MigrationIOError` is raised.
    """
    if chain_dir.exists() and not chain_dir.is_dir():
        raise DirectoryStructureError(
            f"found file named '{chain_dir.name}' in {chain_dir.parent}, which conflicts "
            f"with the chain directory naming convention: {chain_dir}"
        )

    source_dir = layout.source_dir
    if source_dir.name == LEGACY_TESTNET_DIR and source_dir.parent == layout.base_dir:
        logger.info("Moving legacy testnet data from %s to %s", source_dir, chain_dir)
        try:
            os.rename(source_dir, chain_dir)
        except OSError as err:
            raise MigrationIOError(f"Cannot move {source_dir} to {chain_dir}: {err}") from err
        return

    staging_dir = staging_dir_for(chain_dir.parent, chain_dir.name)
    try:
        staging_dir.mkdir()
    except OSError as err:
        raise MigrationIOError(f"Cannot create staging directory {staging_dir}: {err}") from err

    moved: List[Tuple[Path, Path]] = []
    try:
        for name in layout.markers:
            source = source_dir / name
            destination = staging_dir / name
            logger.debug2("Moving %s to %s", source, destination)
            os.rename(source, destination)
            moved.append((source, destination))
        os.rename(staging_dir, chain_dir)
    except OSError as err:
        try:
            _restore(moved)
            staging_dir.rmdir()
        except OSError as restore_err:
            raise MigrationIOError(
                f"Failed to move legacy data from {source_dir} to {chain_dir} ({err}) and to "
                f"restore it ({restore_err}). Staged entries in {staging_dir} are rolled back "
                "on the next start."
            ) from err
        raise MigrationIOError(
            f"Failed to move legacy data from {source_dir} to {chain_dir}: {err}"
        ) from err

    logger.info(
        "Moved legacy data (%s) from %s to %s",
        ', '.join(layout.markers),
        source_dir,
        chain_dir,
    )


def migrate_legacy_brand_dir(node_config: NodeConfig, legacy_brand_dir: Path) -> bool:
    """
    Rename the base directory of the previous product name to the current base
    directory. Only applies to the default location and only once: an existing
    current base directory is never replaced, and a directory holding another
    client's data is never touched.

    Ownership is judged from the directory layout alone: a top-level
    ``chaindata`` holding LevelDB files and no ``geth/`` subdirectory. The chain
    database is not opened, so the genesis and fork hashes of the stored chain
    are not compared against the selected chain, and data another client left
    in the pre-``geth/`` layout is renamed as well.
    """
    base_dir = node_config.base_dir
    if node_config.is_data_dir_overridden or not node_config.chain_identity.is_builtin:
        return False
    if base_dir.exists():
        logger.debug("Using existing data directory at %s", base_dir)
        return False

    brand_layout = classify(legacy_brand_dir, node_config.chain_name, is_genuine=has_leveldb_files)
    if not brand_layout.is_migratable:
        logger.debug(
            "Not renaming %s: it is %s",
            legacy_brand_dir,
            brand_layout.classification.name,
        )
        return False

    logger.warning(
        "Found existing data directory %s with chaindata. Moving it to %s. "
        "To use a different data directory use the --data-dir flag.",
        legacy_brand_dir,
        base_dir,
    )
    try:
        base_dir.parent.mkdir(parents=True, exist_ok=True)
        os.rename(legacy_brand_dir, base_dir)
    except OSError as err:
        raise MigrationIOError(f"Cannot move {legacy_brand_dir} to {base_dir}: {err}") from err
    return True


class MigrationResult(NamedTuple):
    migrated: bool
    reason: str
    source_dir: Optional[Path]


def migrate_if_necessary(layout: LegacyLayout, node_config: NodeConfig) -> MigrationResult:
    decision = decide_migration(layout, node_config)
    if not decision.should_migrate:
        logger.debug("Not migrating %s: %s", layout.base_dir, decision.reason)
        return MigrationResult(False, decision.reason, None)

    migrate_to_chain_subdir(layout, node_config.chain_dir)
    return MigrationResult(True, decision.reason, layout.source_dir)
