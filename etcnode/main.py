"""
Startup sequence of the node.

Steps run strictly in order, and nothing on disk changes before the command
line, the chain configuration and the command arguments are known to be valid:

1. parse flags
2. resolve the chain and validate its descriptor
3. roll back an interrupted migration and rename a legacy brand directory,
   unless the default base directory is unknown and a data directory is given
4. classify the base directory and migrate it into the chain subdirectory
5. initialize the current layout for the chain
6. lock the chain directory, bootstrap developer mode and run the command
"""
import argparse
import logging
from pathlib import Path
import sys
from typing import (
    Optional,
    Sequence,
    Tuple,
)

from etcnode._utils.filesystem import PidFile
from etcnode._utils.logging import (
    setup_stderr_logging,
    verbosity_to_level,
)
from etcnode._utils.xdg import (
    get_default_base_dir,
    get_legacy_brand_dir,
)
from etcnode.boot_info import BootInfo
from etcnode.cli.commands import (
    COMMANDS,
    get_command,
)
from etcnode.cli.parser import parse_cli_args
from etcnode.config import (
    NodeConfig,
    resolve_chain,
)
from etcnode.constants import (
    PID_FILE,
)
from etcnode.exceptions import (
    BaseEtcNodeError,
    CommandError,
    ConfigValidationError,
)
from etcnode.ezdev import (
    apply_dev_overlay,
    bootstrap_dev_chain,
)
from etcnode.initialization import (
    initialize_chaindata,
    initialize_data_dir,
)
from etcnode.layout import (
    LegacyClassification,
    LegacyLayout,
    classify,
)
from etcnode.migration import (
    MigrationResult,
    migrate_if_necessary,
    migrate_legacy_brand_dir,
    rollback_interrupted_migrations,
)

logger = logging.getLogger('etcnode.main')


def _resolve_base_dir(args: argparse.Namespace) -> Optional[Path]:
    try:
        return get_default_base_dir()
    except ConfigValidationError as err:
        if not args.data_dir:
            raise
        logger.debug("Skipping legacy layout checks: %s", err)
        return None


def _migrate_legacy_layouts(node_config: NodeConfig) -> Tuple[LegacyLayout, MigrationResult]:
    base_dir = node_config.base_dir
    if base_dir is None:
        layout = LegacyLayout(LegacyClassification.ABSENT, node_config.data_dir, node_config.data_dir, ())
        return layout, MigrationResult(False, "default data directory unknown", None)

    rollback_interrupted_migrations(base_dir)
    migrate_legacy_brand_dir(node_config, get_legacy_brand_dir(base_dir))

    layout = classify(base_dir, node_config.chain_name)
    return layout, migrate_if_necessary(layout, node_config)


def boot(argv: Sequence[str]) -> int:
    args, _ = parse_cli_args(argv, tuple(COMMANDS))
    min_log_level = verbosity_to_level(args.verbosity)
    setup_stderr_logging(min_log_level)

    command = get_command(args.command)
    command.validate(args.command_args)

    base_dir = _resolve_base_dir(args)
    data_dir = Path(args.data_dir).expanduser() if args.data_dir else base_dir
    chain_identity, chain_config = resolve_chain(args, data_dir)

    node_config = NodeConfig.from_parser_args(args, base_dir, chain_identity)
    if node_config.dev_mode:
        node_config = apply_dev_overlay(node_config)
    logger.debug("Resolved %r", node_config)

    layout, migration = _migrate_legacy_layouts(node_config)

    initialize_data_dir(node_config)

    with PidFile(PID_FILE, node_config.chain_dir):
        if node_config.dev_mode:
            node_config, chain_config = bootstrap_dev_chain(node_config, chain_config)
        initialize_chaindata(chain_config, node_config)

        boot_info = BootInfo(
            args=args,
            node_config=node_config,
            chain_config=chain_config,
            layout=layout,
            migration=migration,
            min_log_level=min_log_level,
        )
        return command.run(boot_info, args.command_args)


def main(argv: Sequence[str] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    try:
        return boot(argv)
    except CommandError as err:
        print(err, file=sys.stderr)
        print(err.usage, file=sys.stderr)
        return err.exit_code
    except BaseEtcNodeError as err:
        print(f"Fatal: {err}", file=sys.stderr)
        return err.exit_code


def run() -> None:
    sys.exit(main())
