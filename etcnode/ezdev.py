"""
Developer mode: a private chain with funded local accounts and mining enabled.

The chain directory of a developer node holds, next to the usual layout:

* ``chain.json``: written on first run only, includes ``dev_genesis.json``
* ``dev_genesis.json``: the genesis block, regenerated on every run
* ``dev_genesis_alloc.csv``: one funded account per line, regenerated on every run
"""
import logging
from pathlib import Path
from typing import (
    Iterable,
    List,
    Tuple,
)

from etcnode._utils.chain_descriptor import (
    write_json_file,
)
from etcnode.accounts import (
    Account,
    KeyStore,
)
from etcnode.config import (
    ChainConfig,
    NodeConfig,
)
from etcnode.constants import (
    DEV_ACCOUNT_BALANCE,
    DEV_ACCOUNT_COUNT,
    DEV_ACCOUNT_PASSWORD,
    DEV_GENESIS_ALLOC_FILE,
    DEV_GENESIS_FILE,
)

logger = logging.getLogger('etcnode.ezdev')


def apply_dev_overlay(node_config: NodeConfig) -> NodeConfig:
    """
    Force the settings a developer node always runs with, whatever the command
    line said about them.
    """
    return node_config.replace(no_discover=True, light_kdf=True, mine=True)


def ensure_dev_accounts(keystore: KeyStore) -> List[Account]:
    existing = keystore.accounts()
    if existing:
        logger.warning("Found existing keyfiles, using:")
        for account in existing:
            logger.warning("%s %s", account.address, account.file)
        return existing

    logger.warning("No existing developer accounts found, creating %d", DEV_ACCOUNT_COUNT)
    created = []
    for _ in range(DEV_ACCOUNT_COUNT):
        account = keystore.new_account(DEV_ACCOUNT_PASSWORD)
        logger.warning("%s %s", account.address, account.file)
        created.append(account)
    return created


def write_allocation_file(path: Path, accounts: Iterable[Account], balance: int) -> None:
    lines = [f'"{account.address}","{balance}"\n' for account in accounts]
    path.write_text(''.join(lines))


def build_dev_genesis(chain_config: ChainConfig) -> dict:
    genesis = chain_config.genesis_params
    return {
        'genesis': {
            'nonce': genesis.nonce,
            'timestamp': genesis.timestamp,
            'parentHash': genesis.parent_hash,
            'extraData': genesis.extra_data,
            'gasLimit': genesis.gas_limit,
            'difficulty': genesis.difficulty,
            'mixhash': genesis.mixhash,
            'coinbase': genesis.coinbase,
            'alloc_file': DEV_GENESIS_ALLOC_FILE,
        },
    }


def build_dev_descriptor(chain_config: ChainConfig) -> dict:
    descriptor = chain_config.to_dict()
    descriptor['identity'] = chain_config.chain_name
    descriptor['include'] = [DEV_GENESIS_FILE]
    # the genesis comes from the included file
    descriptor['genesis'] = None
    return descriptor


def bootstrap_dev_chain(node_config: NodeConfig,
                        chain_config: ChainConfig) -> Tuple[NodeConfig, ChainConfig]:
    """
    Fund the local accounts in a developer genesis and return the configuration
    the node continues with.

    ``node_config`` must already carry the developer overlay and its chain
    directory must exist. The returned chain configuration is read back from
    the descriptor on disk with the same parser used for ``--chain-config``.
    """
    chain_dir = node_config.chain_dir
    keystore = KeyStore(node_config.keystore_dir, light_kdf=node_config.light_kdf)
    accounts = ensure_dev_accounts(keystore)

    write_allocation_file(chain_dir / DEV_GENESIS_ALLOC_FILE, accounts, DEV_ACCOUNT_BALANCE)

    descriptor_path = node_config.chain_descriptor_path
    if not descriptor_path.exists():
        write_json_file(descriptor_path, build_dev_descriptor(chain_config))
        logger.info("Wrote developer chain configuration to %s", descriptor_path)
    else:
        logger.debug("Using existing chain configuration at %s", descriptor_path)

    write_json_file(chain_dir / DEV_GENESIS_FILE, build_dev_genesis(chain_config))

    dev_chain_config = ChainConfig.from_descriptor_file(
        descriptor_path,
        chain_name=node_config.chain_name,
    )
    return node_config.replace(automine=True), dev_chain_config
