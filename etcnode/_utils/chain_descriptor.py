"""
Parse, validate and write JSON chain descriptors.

A descriptor looks like::

    {
        "identity": "mychain",
        "network": 7,
        "consensus": "ethash",
        "genesis": {"nonce": "0x42", ..., "alloc": {...} | "alloc_file": "alloc.csv"},
        "chainConfig": {"forks": [...], "badHashes": [...]},
        "bootstrap": ["enode://..."],
        "include": ["other.json"]
    }

Files named in ``include`` are resolved relative to the including file and are
merged over it. ``alloc_file`` names a CSV file with one
``"<hex-address>","<decimal-balance>"`` record per line.
"""
import csv
import json
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    NamedTuple,
    Optional,
    Set,
    Tuple,
)

from eth_typing import (
    Address,
)
from eth_utils import (
    decode_hex,
    is_hex,
    is_hex_address,
    to_canonical_address,
    to_checksum_address,
)

from etcnode.constants import (
    CONSENSUS_ENGINES,
    DEFAULT_CONSENSUS,
)
from etcnode.exceptions import (
    ConfigValidationError,
)


class GenesisParams(NamedTuple):
    nonce: str
    timestamp: str
    parent_hash: str
    extra_data: str
    gas_limit: str
    difficulty: str
    mixhash: str
    coinbase: str


class Fork(NamedTuple):
    name: str
    block: int
    required_hash: Optional[str]
    features: Tuple[Dict[str, Any], ...]


class ChainDescriptor(NamedTuple):
    identity: Optional[str]
    name: Optional[str]
    network_id: int
    consensus: str
    genesis_params: GenesisParams
    allocation: Dict[Address, int]
    forks: Tuple[Fork, ...]
    bootstrap: Tuple[str, ...]
    raw: Dict[str, Any]


def _invalid(field: str) -> ConfigValidationError:
    return ConfigValidationError(
        "invalid chain configuration file. Please check the existence and "
        f"integrity of keys and values for: {field}"
    )


def resolve_path(path: str, adjacent_path: Path) -> Path:
    """
    Resolve ``path`` against the directory holding ``adjacent_path`` unless it is absolute.
    """
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    return adjacent_path.parent / candidate


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        with path.open('r') as descriptor_file:
            loaded = json.load(descriptor_file)
    except OSError as err:
        raise ConfigValidationError(f"invalid chain configuration file, cannot read it: {err}")
    except json.JSONDecodeError as err:
        raise ConfigValidationError(f"invalid JSON in chain configuration file {path}: {err}")

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"invalid chain configuration file {path}: expected an object")
    return loaded


def read_allocation_file(path: Path) -> Dict[str, Dict[str, str]]:
    """
    Read an allocation CSV into the inline ``alloc`` shape.
    """
    alloc: Dict[str, Dict[str, str]] = {}
    try:
        with path.open('r', newline='') as alloc_file:
            for line_number, row in enumerate(csv.reader(alloc_file), start=1):
                if not row:
                    continue
                if len(row) != 2:
                    raise ConfigValidationError(
                        f"invalid number of values in line {line_number} of {path}: "
                        f"expected 2, got {len(row)}"
                    )
                address, balance = (value.strip() for value in row)
                alloc[address] = {'balance': balance}
    except OSError as err:
        raise ConfigValidationError(f"invalid allocation file, cannot read it: {err}")
    except csv.Error as err:
        raise ConfigValidationError(f"invalid allocation file {path}: {err}")
    return alloc


def _merge(config: Dict[str, Any], loaded: Dict[str, Any]) -> None:
    for key, value in loaded.items():
        if value is None and key in config:
            continue
        config[key] = value


def _expand_allocation_file(config: Dict[str, Any], current_file: Path) -> None:
    genesis = config.get('genesis')
    if not genesis:
        return
    if not isinstance(genesis, dict):
        raise _invalid("genesis")
    if not genesis.get('alloc_file'):
        return
    if not isinstance(genesis['alloc_file'], str):
        raise _invalid("genesis.alloc_file")

    if genesis.get('alloc'):
        raise ConfigValidationError(
            f'invalid chain configuration file {current_file}: "alloc" values already set, '
            'but "alloc_file" is provided'
        )

    alloc_path = resolve_path(genesis['alloc_file'], current_file)
    genesis['alloc'] = read_allocation_file(alloc_path)
    genesis['alloc_file'] = ''


def load_raw_descriptor(path: Path) -> Dict[str, Any]:
    """
    Load ``path`` and everything it includes into a single merged dictionary.
    Each file is processed at most once.
    """
    config: Dict[str, Any] = {}
    processed: Set[Path] = set()

    def process_file(file_path: Path) -> None:
        resolved = Path(file_path).resolve()
        if resolved in processed:
            return
        processed.add(resolved)

        _merge(config, _load_json(resolved))
        _expand_allocation_file(config, resolved)

        includes = config.pop('include', None) or []
        if not isinstance(includes, list) or not all(isinstance(include, str) for include in includes):
            raise _invalid("include")
        for include in includes:
            process_file(resolve_path(include, resolved))

    process_file(path)
    return config


def _is_hex_of_size(value: Any, max_bytes: int, exact: bool = False) -> bool:
    if not isinstance(value, str) or not is_hex(value):
        return False
    try:
        size = len(decode_hex(value))
    except ValueError:
        return False
    if exact:
        return size == max_bytes
    return size <= max_bytes


def _is_hex_quantity(value: Any, max_bytes: int) -> bool:
    if not isinstance(value, str) or not value.startswith('0x'):
        return False
    try:
        quantity = int(value, 16) if value != '0x' else 0
    except ValueError:
        return False
    return quantity.bit_length() <= max_bytes * 8


def _extract_genesis_params(genesis: Dict[str, Any]) -> GenesisParams:
    for field in ('nonce', 'gasLimit', 'difficulty'):
        if not genesis.get(field):
            raise _invalid(f"genesis.{field}")

    if not _is_hex_quantity(genesis['nonce'], 8):
        raise _invalid("genesis.nonce")
    for field in ('gasLimit', 'difficulty', 'timestamp'):
        value = genesis.get(field, '0x00')
        if not _is_hex_quantity(value, 32):
            raise _invalid(f"genesis.{field}")
    for field in ('parentHash', 'mixhash'):
        value = genesis.get(field)
        if value and not _is_hex_of_size(value, 32, exact=True):
            raise _invalid(f"genesis.{field}")
    if genesis.get('extraData') and not _is_hex_of_size(genesis['extraData'], 32):
        raise _invalid("genesis.extraData")

    coinbase = genesis.get('coinbase') or '0x' + '00' * 20
    if not is_hex_address(coinbase):
        raise _invalid(f"genesis.coinbase (invalid address {coinbase!r})")

    return GenesisParams(
        nonce=genesis['nonce'],
        timestamp=genesis.get('timestamp', '0x00'),
        parent_hash=genesis.get('parentHash') or '0x' + '00' * 32,
        extra_data=genesis.get('extraData') or '0x',
        gas_limit=genesis['gasLimit'],
        difficulty=genesis['difficulty'],
        mixhash=genesis.get('mixhash') or '0x' + '00' * 32,
        coinbase=to_checksum_address(coinbase),
    )


def _extract_allocation(genesis: Dict[str, Any]) -> Dict[Address, int]:
    alloc = genesis.get('alloc') or {}
    if not isinstance(alloc, dict):
        raise _invalid("genesis.alloc")

    allocation: Dict[Address, int] = {}
    for raw_address, account in alloc.items():
        address = raw_address if raw_address.startswith('0x') else '0x' + raw_address
        if not is_hex_address(address):
            raise _invalid(f"genesis.alloc (invalid address {raw_address!r})")
        balance = account.get('balance', '0') if isinstance(account, dict) else account
        try:
            allocation[to_canonical_address(address)] = int(str(balance), 10)
        except ValueError:
            raise _invalid(f"genesis.alloc (invalid balance {balance!r} for {raw_address})")
    return allocation


def _extract_forks(chain_config: Dict[str, Any]) -> Tuple[Fork, ...]:
    raw_forks = chain_config.get('forks') or []
    if not isinstance(raw_forks, list):
        raise _invalid("forks")

    forks: List[Fork] = []
    for raw_fork in raw_forks:
        if not isinstance(raw_fork, dict):
            raise _invalid(f"forks (invalid fork {raw_fork!r})")
        try:
            block = int(raw_fork['block'])
        except (KeyError, TypeError, ValueError):
            raise _invalid(f"forks ({raw_fork.get('name', '?')}.block)")
        required_hash = raw_fork.get('requiredHash') or None
        if required_hash is not None and not _is_hex_of_size(required_hash, 32, exact=True):
            raise _invalid(f"forks ({raw_fork.get('name', '?')}.requiredHash)")
        features = raw_fork.get('features') or []
        if not isinstance(features, list):
            raise _invalid(f"forks ({raw_fork.get('name', '?')}.features)")
        forks.append(Fork(
            name=str(raw_fork.get('name', '')),
            block=block,
            required_hash=required_hash,
            features=tuple(features),
        ))
    return tuple(sorted(forks, key=lambda fork: fork.block))


def extract_chain_descriptor(config: Dict[str, Any]) -> ChainDescriptor:
    """
    Validate a merged descriptor dictionary and return its typed form.
    Raise :class:`~etcnode.exceptions.ConfigValidationError` on the first problem found.
    """
    if not config:
        raise _invalid("all empty")

    # 'id' is the deprecated spelling of 'identity'
    identity = config.get('identity') or config.get('id') or None
    if identity is not None and not isinstance(identity, str):
        raise _invalid("identity")
    name = config.get('name') or None
    if name is not None and not isinstance(name, str):
        raise _invalid("name")

    try:
        network_id = int(config.get('network') or 0)
    except (TypeError, ValueError):
        raise _invalid("networkId")
    if network_id == 0:
        raise _invalid("networkId")

    consensus = config.get('consensus') or DEFAULT_CONSENSUS
    if not isinstance(consensus, str) or consensus not in CONSENSUS_ENGINES:
        raise _invalid("consensus")

    genesis = config.get('genesis')
    if not isinstance(genesis, dict):
        raise _invalid("genesis")

    chain_config = config.get('chainConfig')
    if not isinstance(chain_config, dict):
        raise _invalid("chainConfig")
    if not chain_config.get('forks'):
        raise _invalid("forks")

    bootstrap = config.get('bootstrap') or []
    if not isinstance(bootstrap, list) or not all(isinstance(node, str) for node in bootstrap):
        raise _invalid("bootstrap")

    return ChainDescriptor(
        identity=identity,
        name=name,
        network_id=network_id,
        consensus=consensus,
        genesis_params=_extract_genesis_params(genesis),
        allocation=_extract_allocation(genesis),
        forks=_extract_forks(chain_config),
        bootstrap=tuple(bootstrap),
        raw=config,
    )


def read_chain_descriptor(path: Path) -> ChainDescriptor:
    """
    Read and validate the descriptor at ``path``, following includes and allocation files.
    """
    if not path.exists():
        raise ConfigValidationError(f"invalid chain configuration path, no file found at: {path}")
    elif path.is_dir():
        raise ConfigValidationError(f"invalid chain configuration path, {path} is a directory")

    return extract_chain_descriptor(load_raw_descriptor(path))


def write_json_file(path: Path, content: Dict[str, Any]) -> None:
    path.write_text(json.dumps(content, indent=4) + '\n')
