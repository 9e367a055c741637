"""
Command line flags of the node.

Every flag accepts two spellings, the hyphenated one shown in the help and
the flat one older releases used; both store into the same destination.
Parsing never touches the filesystem.
"""
import argparse
from typing import (
    Iterable,
    NoReturn,
    Sequence,
    Tuple,
)

from etcnode import __version__
from etcnode.constants import (
    DEFAULT_CACHE_MB,
)
from etcnode.exceptions import (
    CommandError,
    FlagError,
)


class EtcNodeArgumentParser(argparse.ArgumentParser):
    """
    An argument parser that raises instead of printing usage and exiting, so
    that the caller decides the exit status and what is shown.
    """

    def error(self, message: str) -> NoReturn:
        raise FlagError(message)


def _add_data_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('data directory')
    group.add_argument(
        '--data-dir', '--datadir',
        dest='data_dir',
        default=None,
        help="Data directory for the chain subdirectories (default: OS-specific base directory)",
    )
    group.add_argument(
        '--keystore', '--key-store',
        dest='keystore',
        default=None,
        help="Directory for the keystore (default: <chain-dir>/keystore)",
    )


def _add_chain_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('chain')
    group.add_argument(
        '--chain',
        dest='chain',
        default=None,
        help=(
            "Name of the chain to run: mainnet, morden or the name of a custom "
            "chain whose chain.json is in <data-dir>/<name>/"
        ),
    )
    group.add_argument(
        '--testnet', '--morden',
        dest='testnet',
        action='store_true',
        default=None,
        help="Run on the Morden test network (same as --chain morden)",
    )
    group.add_argument(
        '--chain-config', '--chainconfig',
        dest='chain_config',
        default=None,
        help="Path to a JSON chain configuration file describing a custom chain",
    )


def _add_network_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('network')
    group.add_argument(
        '--no-discover', '--nodiscover',
        dest='no_discover',
        action='store_true',
        default=None,
        help="Disable the peer discovery mechanism",
    )
    group.add_argument(
        '--ipc-disable', '--ipcdisable',
        dest='ipc_disable',
        action='store_true',
        default=None,
        help="Disable the IPC-RPC server",
    )
    group.add_argument(
        '--ipc-path', '--ipcpath',
        dest='ipc_path',
        default=None,
        help="Filename for the IPC socket inside the chain directory, or an absolute path",
    )


def _add_node_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('node')
    group.add_argument(
        '--cache',
        dest='cache',
        type=int,
        default=None,
        help=f"Megabytes of memory allocated to internal caching (default: {DEFAULT_CACHE_MB})",
    )
    group.add_argument(
        '--light-kdf', '--lightkdf',
        dest='light_kdf',
        action='store_true',
        default=None,
        help="Reduce key-derivation RAM and CPU usage at some expense of KDF strength",
    )
    group.add_argument(
        '--mine',
        dest='mine',
        action='store_true',
        default=None,
        help="Enable mining",
    )
    group.add_argument(
        '--dev',
        dest='dev',
        action='store_true',
        default=None,
        help="Developer mode: private chain with funded local accounts and automining",
    )
    group.add_argument(
        '--verbosity',
        dest='verbosity',
        type=int,
        default=3,
        help="Logging verbosity: 0=silent, 1=error, 2=warn, 3=info, 4=debug, 5=detail, 6=trace",
    )


def build_parser(command_names: Iterable[str]) -> EtcNodeArgumentParser:
    parser = EtcNodeArgumentParser(
        prog='etcnode',
        description='Ethereum Classic node',
        allow_abbrev=False,
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    _add_data_flags(parser)
    _add_chain_flags(parser)
    _add_network_flags(parser)
    _add_node_flags(parser)

    parser.add_argument(
        'command',
        nargs='?',
        default=None,
        metavar='COMMAND',
        help=f"One of: {', '.join(command_names)} (default: run the node)",
    )
    parser.add_argument(
        'command_args',
        nargs='*',
        metavar='ARGS',
        help="Arguments of the command",
    )
    return parser


def _flag_name(arg: str) -> str:
    return arg.split('=', 1)[0]


def parse_cli_args(argv: Sequence[str],
                   command_names: Sequence[str]) -> Tuple[argparse.Namespace, str]:
    """
    Parse ``argv`` and return the namespace together with the usage text.

    Raise :class:`~etcnode.exceptions.FlagError` for an unknown or malformed flag
    and :class:`~etcnode.exceptions.CommandError` for an unknown command.
    """
    parser = build_parser(command_names)
    args, unknown = parser.parse_known_args(argv)

    unknown_flags = [arg for arg in unknown if arg.startswith('-')]
    if unknown_flags:
        raise FlagError(f"flag provided but not defined: {_flag_name(unknown_flags[0])}")
    if unknown and args.command is None:
        raise FlagError(f"unexpected arguments: {' '.join(unknown)}")
    # command arguments given after a flag are left over by argparse
    args.command_args = list(args.command_args) + unknown

    usage = parser.format_help()
    if args.command is not None and args.command not in command_names:
        raise CommandError(args.command, usage)

    return args, usage
