import logging
import os

from etcnode._utils.chain_descriptor import (
    write_json_file,
)
from etcnode._utils.chains import (
    create_nodekey,
)
from etcnode._utils.filesystem import (
    is_under_path,
)
from etcnode.config import (
    ChainConfig,
    NodeConfig,
)
from etcnode.constants import (
    DAPP_DIR,
    NODES_DIR,
)
from etcnode.exceptions import (
    DirectoryStructureError,
    MissingPath,
)

logger = logging.getLogger('etcnode.initialization')

GENESIS_SEED_FILE = 'genesis.json'


def is_data_dir_initialized(node_config: NodeConfig) -> bool:
    """
    Return ``True`` if the chain directory and all expected sub directories exist,
    otherwise return ``False``
    """

    if not os.path.exists(node_config.chain_dir):
        return False

    if not os.path.exists(node_config.chaindata_dir):
        return False

    if not os.path.exists(node_config.keystore_dir):
        return False

    if not os.path.exists(node_config.chain_dir / NODES_DIR):
        return False

    if not node_config.nodekey_path.exists():
        return False

    return True


def is_chaindata_initialized(node_config: NodeConfig) -> bool:
    chaindata_dir = node_config.chaindata_dir
    return chaindata_dir.is_dir() and any(chaindata_dir.iterdir())


def initialize_data_dir(node_config: NodeConfig) -> None:
    """
    Create the current layout for the selected chain, leaving anything already
    there untouched.
    """
    data_dir = node_config.data_dir
    should_create_data_dir = (
        not data_dir.exists() and
        (
            # the default location and anything below it are always created
            not node_config.is_data_dir_overridden or
            (
                node_config.base_dir is not None and
                is_under_path(node_config.base_dir, data_dir, strict=False)
            ) or
            data_dir.parent.exists()
        )
    )
    if should_create_data_dir:
        data_dir.mkdir(parents=True, exist_ok=True)
    elif not data_dir.exists():
        # we don't lazily create deeply nested non-default directories.
        raise MissingPath(
            f"The data directory provided does not exist: `{str(data_dir)}`",
            data_dir,
        )

    chain_dir = node_config.chain_dir
    if chain_dir.exists() and not chain_dir.is_dir():
        raise DirectoryStructureError(
            f"found file named '{chain_dir.name}' in {data_dir}, which conflicts "
            f"with the chain directory naming convention: {chain_dir}"
        )
    if not chain_dir.exists():
        logger.info("Creating data directory for chain %s at %s", node_config.chain_name, chain_dir)

    # Initialize chaindata, keystore, nodes and dapp directories
    os.makedirs(node_config.chaindata_dir, exist_ok=True)
    os.makedirs(node_config.keystore_dir, exist_ok=True)
    os.makedirs(chain_dir / NODES_DIR, exist_ok=True)
    os.makedirs(chain_dir / DAPP_DIR, exist_ok=True)
    os.makedirs(node_config.log_dir, exist_ok=True)

    if not node_config.nodekey_path.exists():
        create_nodekey(node_config.nodekey_path)
        logger.debug("Generated new nodekey at %s", node_config.nodekey_path)


def initialize_chaindata(chain_config: ChainConfig, node_config: NodeConfig) -> None:
    """
    Seed an empty chain database with the genesis the state engine starts from.
    A chaindata directory that holds anything is left as it is.
    """
    if is_chaindata_initialized(node_config):
        return

    seed_path = node_config.chaindata_dir / GENESIS_SEED_FILE
    genesis = chain_config.genesis_params
    write_json_file(seed_path, {
        'identity': chain_config.chain_name,
        'network': chain_config.network_id,
        'genesis': {
            'nonce': genesis.nonce,
            'timestamp': genesis.timestamp,
            'parentHash': genesis.parent_hash,
            'extraData': genesis.extra_data,
            'gasLimit': genesis.gas_limit,
            'difficulty': genesis.difficulty,
            'mixhash': genesis.mixhash,
            'coinbase': genesis.coinbase,
            'alloc': {
                '0x' + address.hex(): {'balance': str(balance)}
                for address, balance in chain_config.allocation.items()
            },
        },
    })
    logger.debug("Wrote genesis seed for %s to %s", chain_config.chain_name, seed_path)
