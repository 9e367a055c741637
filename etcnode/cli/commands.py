import json
import logging
from pathlib import Path
from typing import (
    Callable,
    Dict,
    NamedTuple,
    Sequence,
)

from etcnode._utils.chains import load_nodekey
from etcnode.boot_info import BootInfo
from etcnode.config import ChainConfig
from etcnode.constants import EXIT_OK
from etcnode.dump import (
    get_dump_backend,
    parse_dump_args,
)
from etcnode.exceptions import (
    ConfigValidationError,
    StateEngineUnavailable,
)
from etcnode.initialization import (
    is_chaindata_initialized,
    is_data_dir_initialized,
)

logger = logging.getLogger('etcnode.commands')


class Command(NamedTuple):
    name: str
    help: str
    # checks the command arguments before anything on disk changes
    validate: Callable[[Sequence[str]], None]
    run: Callable[[BootInfo, Sequence[str]], int]


def _no_args(name: str) -> Callable[[Sequence[str]], None]:
    def validate(command_args: Sequence[str]) -> None:
        if command_args:
            raise ConfigValidationError(
                f"invalid use of {name}: unexpected arguments {list(command_args)}"
            )
    return validate


def run_node(boot_info: BootInfo, command_args: Sequence[str]) -> int:
    node_config = boot_info.node_config
    chain_config = boot_info.chain_config

    logger.info("Allotted %dMB cache", node_config.cache_mb)
    logger.info(
        "Starting %s (network %d) in %s",
        chain_config.display_name,
        chain_config.network_id,
        node_config.chain_dir,
    )
    if node_config.ipc_path is None:
        logger.info("IPC endpoint disabled")
    else:
        logger.info("IPC endpoint: %s", node_config.ipc_path)
    if node_config.dev_mode:
        logger.info("Developer mode: discovery off, mining on, automine %s", node_config.automine)
    return EXIT_OK


def show_status(boot_info: BootInfo, command_args: Sequence[str]) -> int:
    node_config = boot_info.node_config
    chain_config = boot_info.chain_config
    node_id = load_nodekey(node_config.nodekey_path).public_key.to_hex()
    forks = ', '.join(f"{fork.name}@{fork.block}" for fork in chain_config.forks)
    lines = [
        f"chain:        {node_config.chain_name} ({chain_config.display_name})",
        f"network:      {chain_config.network_id}",
        f"consensus:    {chain_config.consensus}",
        f"forks:        {forks}",
        f"bootnodes:    {len(chain_config.bootstrap_nodes)}",
        f"node id:      {node_id}",
        f"chain dir:    {node_config.chain_dir}",
        f"keystore:     {node_config.keystore_dir}",
        f"ipc:          {node_config.ipc_path or 'disabled'}",
        f"cache:        {node_config.cache_mb}MB",
        f"layout:       {'complete' if is_data_dir_initialized(node_config) else 'incomplete'}",
        f"chaindata:    {'initialized' if is_chaindata_initialized(node_config) else 'empty'}",
        f"base layout:  {boot_info.layout.classification.name.lower()}",
        f"migrated:     {'yes' if boot_info.migration.migrated else 'no'}",
    ]
    print('\n'.join(lines))
    return EXIT_OK


def run_dump(boot_info: BootInfo, command_args: Sequence[str]) -> int:
    request = parse_dump_args(command_args)
    try:
        backend = get_dump_backend()
    except ImportError as err:
        raise StateEngineUnavailable(f"Cannot load the state dump backend: {err}") from err
    result = backend(boot_info, request)
    print(json.dumps(result, indent=4, default=str))
    return EXIT_OK


def _validate_dump_config(command_args: Sequence[str]) -> None:
    if len(command_args) != 1 or not command_args[0].strip():
        raise ConfigValidationError("invalid use of dump-config: a single output file path is required")


def dump_chain_config(boot_info: BootInfo, command_args: Sequence[str]) -> int:
    """
    Write the built-in configuration of the selected chain to a JSON file, as
    a starting point for a custom chain.
    """
    identity = boot_info.node_config.chain_identity
    if not identity.is_builtin:
        raise ConfigValidationError(
            f"invalid chain for dump-config: {identity.name!r} is not a built-in chain"
        )

    path = Path(command_args[0].strip()).expanduser()
    if path.is_dir():
        raise ConfigValidationError(f"invalid output path for dump-config: {path} is a directory")
    if not path.parent.exists():
        raise ConfigValidationError(f"invalid output path for dump-config: {path.parent} does not exist")

    ChainConfig.from_builtin(identity.name).write_json_file(path)
    logger.info("Wrote chain configuration of %s to %s", identity.name, path)
    return EXIT_OK


def _validate_dump(command_args: Sequence[str]) -> None:
    parse_dump_args(command_args)


COMMANDS: Dict[str, Command] = {
    command.name: command for command in (
        Command('status', "Show the resolved configuration", _no_args('status'), show_status),
        Command(
            'dump',
            "Dump state at <blocks> [<addresses>]",
            _validate_dump,
            run_dump,
        ),
        Command(
            'dump-config',
            "Write the built-in chain configuration to <path>",
            _validate_dump_config,
            dump_chain_config,
        ),
    )
}

DEFAULT_COMMAND = Command('run', "Run the node", _no_args('run'), run_node)


def get_command(name: str = None) -> Command:
    if name is None:
        return DEFAULT_COMMAND
    return COMMANDS[name]
