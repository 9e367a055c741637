import argparse
import os
from pathlib import Path
from typing import (
    Any,
    Dict,
    Optional,
)

from eth_keys import keys
from eth_keys.datatypes import PrivateKey
from eth_keys.exceptions import ValidationError
from eth_utils import (
    decode_hex,
    encode_hex,
)

from etcnode.constants import (
    NODEKEY_FILE,
)
from etcnode.exceptions import (
    ConfigValidationError,
)


#
# Filesystem path utils
#
def get_chain_dir(chain_name: str, data_dir: Path) -> Path:
    """
    Returns the directory path where data for a given chain will be stored.
    """
    return data_dir / chain_name


def get_nodekey_path(chain_dir: Path) -> Path:
    """
    Returns the path to the private key used for devp2p connections.
    """
    return chain_dir / NODEKEY_FILE


def get_ipc_path(chain_dir: Path, ipc_path: str) -> Path:
    """
    Returns the IPC endpoint: ``ipc_path`` if absolute, else the file of that
    name inside ``chain_dir``.
    """
    candidate = Path(ipc_path)
    if candidate.is_absolute():
        return candidate
    return chain_dir / candidate


#
# Nodekey loading
#
def load_nodekey(nodekey_path: Path) -> PrivateKey:
    raw_nodekey = nodekey_path.read_text().strip()
    try:
        return keys.PrivateKey(decode_hex(raw_nodekey))
    except (ValueError, ValidationError) as err:
        raise ConfigValidationError(f"invalid nodekey in {nodekey_path}: {err}") from err


def create_nodekey(nodekey_path: Path) -> PrivateKey:
    nodekey = keys.PrivateKey(os.urandom(32))
    nodekey_path.write_text(encode_hex(nodekey.to_bytes())[2:])
    return nodekey


def construct_node_config_params(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Helper function for constructing the kwargs to initialize a NodeConfig object.
    """
    params: Dict[str, Optional[Any]] = {
        'data_dir': args.data_dir,
        'keystore_dir': args.keystore,
        'ipc_disabled': args.ipc_disable,
        'ipc_path': args.ipc_path,
        'cache_mb': args.cache,
        'no_discover': args.no_discover,
        'light_kdf': args.light_kdf,
        'mine': args.mine,
        'dev_mode': args.dev,
    }
    return {key: value for key, value in params.items() if value is not None}
