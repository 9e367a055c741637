import argparse
import json
import logging
from pathlib import (
    Path,
)
from typing import (  # noqa: F401
    Any,
    Dict,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)

from cached_property import cached_property
from eth_typing import (
    Address,
)

from etcnode._utils.chain_descriptor import (
    ChainDescriptor,
    Fork,
    GenesisParams,
    extract_chain_descriptor,
    read_chain_descriptor,
    write_json_file,
)
from etcnode._utils.chains import (
    construct_node_config_params,
    get_chain_dir,
    get_ipc_path,
    get_nodekey_path,
)
from etcnode.constants import (
    ASSETS_DIR,
    BUILTIN_CHAIN_NAMES,
    CHAIN_DESCRIPTOR_FILE,
    CHAINDATA_DIR,
    CUSTOM_CHAIN_NAME,
    DEFAULT_CACHE_MB,
    DEFAULT_IPC_FILENAME,
    KEYSTORE_DIR,
    LEGACY_TESTNET_DIR,
    LOG_DIR,
    MAINNET_ALIASES,
    MAINNET_CHAIN_NAME,
    MIGRATION_STAGING_PREFIX,
    MIN_CACHE_MB,
    MORDEN_ALIASES,
    MORDEN_CHAIN_NAME,
)
from etcnode.exceptions import (
    ConfigValidationError,
)

logger = logging.getLogger('etcnode.config')


class ChainIdentity(NamedTuple):
    """
    The chain selected for this process and how it was selected. ``source`` is
    one of ``default``, ``testnet``, ``flag`` or ``descriptor``.
    """
    name: str
    source: str
    descriptor_path: Optional[Path] = None

    @property
    def is_builtin(self) -> bool:
        """
        Whether this is one of the preconfigured chains chosen by name. A
        descriptor file always makes the chain custom, whatever it calls itself.
        """
        return self.source != 'descriptor' and self.name in BUILTIN_CHAIN_NAMES

    @property
    def is_custom(self) -> bool:
        return not self.is_builtin


def _load_builtin_descriptor(chain_name: str) -> Dict[str, Any]:
    if chain_name not in BUILTIN_CHAIN_NAMES:
        raise TypeError(f"Unknown or unsupported builtin chain: {chain_name}")
    with (ASSETS_DIR / f'{chain_name}.json').open('r') as descriptor_file:
        return json.load(descriptor_file)


class ChainConfig:
    """
    Genesis parameters, allocation and fork schedule of the chain this node runs.
    """

    def __init__(self,
                 descriptor: ChainDescriptor,
                 chain_name: str = None) -> None:

        self.descriptor = descriptor
        self._chain_name = chain_name

    @property
    def chain_name(self) -> str:
        if self._chain_name is not None:
            return self._chain_name
        elif self.descriptor.identity is not None:
            return self.descriptor.identity
        else:
            return CUSTOM_CHAIN_NAME

    @property
    def display_name(self) -> str:
        return self.descriptor.name or self.chain_name

    @property
    def network_id(self) -> int:
        return self.descriptor.network_id

    @property
    def consensus(self) -> str:
        return self.descriptor.consensus

    @property
    def genesis_params(self) -> GenesisParams:
        """
        Return the genesis header fields parsed from the descriptor.
        """
        return self.descriptor.genesis_params

    @cached_property
    def allocation(self) -> Dict[Address, int]:
        """
        Return the genesis allocation as canonical address to balance in wei.
        """
        return dict(self.descriptor.allocation)

    @property
    def forks(self) -> Tuple[Fork, ...]:
        return self.descriptor.forks

    @property
    def bootstrap_nodes(self) -> Tuple[str, ...]:
        return self.descriptor.bootstrap

    def renamed(self, chain_name: str) -> 'ChainConfig':
        return type(self)(self.descriptor, chain_name=chain_name)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.descriptor.raw)

    def write_json_file(self, path: Path) -> None:
        write_json_file(path, self.to_dict())

    @classmethod
    def from_descriptor_file(cls,
                             path: Path,
                             chain_name: str = None) -> 'ChainConfig':
        return cls(read_chain_descriptor(path), chain_name=chain_name)

    @classmethod
    def from_builtin(cls, chain_name: str) -> 'ChainConfig':
        descriptor = extract_chain_descriptor(_load_builtin_descriptor(chain_name))
        return cls(descriptor, chain_name=chain_name)


def is_valid_chain_dir_name(name: str) -> bool:
    if not name or name in ('.', '..'):
        return False
    if name.startswith('.') or name.startswith(MIGRATION_STAGING_PREFIX):
        return False
    if '/' in name or '\\' in name:
        return False
    return name != LEGACY_TESTNET_DIR


def resolve_chain(args: argparse.Namespace, data_dir: Path) -> Tuple[ChainIdentity, ChainConfig]:
    """
    Map the chain related flags to a :class:`ChainIdentity` and a validated
    :class:`ChainConfig`.

    Only reads files. Any invalid descriptor raises
    :class:`~etcnode.exceptions.ConfigValidationError` before anything on disk changes.
    """
    chain = args.chain.strip() if args.chain else None
    descriptor_path = Path(args.chain_config).expanduser() if args.chain_config else None

    if descriptor_path is not None and (chain or args.testnet):
        raise ConfigValidationError(
            "invalid flag combination: --chain-config cannot be combined with --chain or --testnet"
        )
    if args.testnet and chain and chain not in MORDEN_ALIASES:
        raise ConfigValidationError(
            f"invalid flag combination: --testnet conflicts with --chain {chain}"
        )

    if descriptor_path is not None:
        descriptor = read_chain_descriptor(descriptor_path)
        name = descriptor.identity or CUSTOM_CHAIN_NAME
        if not is_valid_chain_dir_name(name):
            raise ConfigValidationError(f"invalid chain identity in {descriptor_path}: {name!r}")
        identity = ChainIdentity(name, 'descriptor', descriptor_path)
        return identity, ChainConfig(descriptor, chain_name=name)

    if args.testnet:
        return ChainIdentity(MORDEN_CHAIN_NAME, 'testnet'), ChainConfig.from_builtin(MORDEN_CHAIN_NAME)

    if not chain:
        # developer mode runs on the test chain unless told otherwise
        default_name = MORDEN_CHAIN_NAME if args.dev else MAINNET_CHAIN_NAME
        return ChainIdentity(default_name, 'default'), ChainConfig.from_builtin(default_name)

    if chain in MAINNET_ALIASES:
        return ChainIdentity(MAINNET_CHAIN_NAME, 'flag'), ChainConfig.from_builtin(MAINNET_CHAIN_NAME)
    if chain in MORDEN_ALIASES:
        return ChainIdentity(MORDEN_CHAIN_NAME, 'flag'), ChainConfig.from_builtin(MORDEN_CHAIN_NAME)

    if not is_valid_chain_dir_name(chain):
        raise ConfigValidationError(f"invalid chain name: {chain!r}")

    custom_descriptor_path = get_chain_dir(chain, data_dir) / CHAIN_DESCRIPTOR_FILE
    if custom_descriptor_path.is_file():
        logger.info("Using chain configuration for %s from %s", chain, custom_descriptor_path)
        return (
            ChainIdentity(chain, 'flag', custom_descriptor_path),
            ChainConfig.from_descriptor_file(custom_descriptor_path, chain_name=chain),
        )

    logger.warning(
        "No chain configuration found at %s, using mainnet parameters for custom chain %s",
        custom_descriptor_path,
        chain,
    )
    return ChainIdentity(chain, 'flag'), ChainConfig.from_builtin(MAINNET_CHAIN_NAME).renamed(chain)


class NodeConfig:
    """
    The resolved, read-only configuration of a node process. It is built once
    from the parsed command line and handed to every startup step; use
    :meth:`replace` to derive a changed copy.
    """

    def __init__(self,
                 base_dir: Optional[Path],
                 chain_identity: ChainIdentity,
                 data_dir: Path = None,
                 keystore_dir: Path = None,
                 ipc_disabled: bool = False,
                 ipc_path: str = DEFAULT_IPC_FILENAME,
                 cache_mb: int = DEFAULT_CACHE_MB,
                 no_discover: bool = False,
                 light_kdf: bool = False,
                 mine: bool = False,
                 dev_mode: bool = False,
                 automine: bool = False) -> None:

        if base_dir is None and data_dir is None:
            raise ValueError("NodeConfig needs a base directory or an explicit data directory")
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._chain_identity = chain_identity
        self._data_dir = Path(data_dir).expanduser() if data_dir is not None else None
        self._keystore_dir = Path(keystore_dir).expanduser() if keystore_dir is not None else None
        self._ipc_disabled = ipc_disabled
        self._ipc_path = ipc_path
        self._cache_mb = cache_mb
        self._no_discover = no_discover
        self._light_kdf = light_kdf
        self._mine = mine
        self._dev_mode = dev_mode
        self._automine = automine

    def _as_kwargs(self) -> Dict[str, Any]:
        return {
            'base_dir': self._base_dir,
            'chain_identity': self._chain_identity,
            'data_dir': self._data_dir,
            'keystore_dir': self._keystore_dir,
            'ipc_disabled': self._ipc_disabled,
            'ipc_path': self._ipc_path,
            'cache_mb': self._cache_mb,
            'no_discover': self._no_discover,
            'light_kdf': self._light_kdf,
            'mine': self._mine,
            'dev_mode': self._dev_mode,
            'automine': self._automine,
        }

    def replace(self, **overrides: Any) -> 'NodeConfig':
        kwargs = self._as_kwargs()
        unknown = set(overrides) - set(kwargs)
        if unknown:
            raise TypeError(f"Unknown NodeConfig fields: {sorted(unknown)}")
        kwargs.update(overrides)
        return type(self)(**kwargs)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, NodeConfig):
            return NotImplemented
        return self._as_kwargs() == other._as_kwargs()

    def __repr__(self) -> str:
        return f"NodeConfig(chain={self.chain_name!r}, chain_dir={str(self.chain_dir)!r})"

    @property
    def base_dir(self) -> Optional[Path]:
        """
        The OS-default base directory. Legacy layouts are only ever looked for here.
        ``None`` when it cannot be determined and the data directory is set explicitly.
        """
        return self._base_dir

    @property
    def data_dir(self) -> Path:
        """
        The directory all chain subdirectories are resolved relative to.
        """
        if self._data_dir is not None:
            return self._data_dir
        return self._base_dir

    @property
    def is_data_dir_overridden(self) -> bool:
        return self._data_dir is not None

    @property
    def chain_identity(self) -> ChainIdentity:
        return self._chain_identity

    @property
    def chain_name(self) -> str:
        return self._chain_identity.name

    @property
    def chain_dir(self) -> Path:
        """
        The per-chain subdirectory holding every file of the selected chain.
        """
        return get_chain_dir(self.chain_name, self.data_dir)

    @property
    def chaindata_dir(self) -> Path:
        return self.chain_dir / CHAINDATA_DIR

    @property
    def keystore_dir(self) -> Path:
        if self._keystore_dir is not None:
            return self._keystore_dir
        return self.chain_dir / KEYSTORE_DIR

    @property
    def nodekey_path(self) -> Path:
        return get_nodekey_path(self.chain_dir)

    @property
    def log_dir(self) -> Path:
        return self.chain_dir / LOG_DIR

    @property
    def chain_descriptor_path(self) -> Path:
        return self.chain_dir / CHAIN_DESCRIPTOR_FILE

    @property
    def ipc_path(self) -> Optional[Path]:
        """
        Return the IPC endpoint, or ``None`` when IPC is disabled.
        """
        if self._ipc_disabled:
            return None
        return get_ipc_path(self.chain_dir, self._ipc_path)

    @property
    def cache_mb(self) -> int:
        return max(self._cache_mb, MIN_CACHE_MB)

    @property
    def no_discover(self) -> bool:
        return self._no_discover

    @property
    def light_kdf(self) -> bool:
        return self._light_kdf

    @property
    def mine(self) -> bool:
        return self._mine

    @property
    def dev_mode(self) -> bool:
        return self._dev_mode

    @property
    def automine(self) -> bool:
        return self._automine

    @classmethod
    def from_parser_args(cls,
                         parser_args: argparse.Namespace,
                         base_dir: Optional[Path],
                         chain_identity: ChainIdentity) -> 'NodeConfig':
        """
        Initialize a :class:`~etcnode.config.NodeConfig` from the namespace object produced by
        an :class:`~argparse.ArgumentParser`.
        """
        constructor_kwargs = construct_node_config_params(parser_args)
        return cls(base_dir=base_dir, chain_identity=chain_identity, **constructor_kwargs)
