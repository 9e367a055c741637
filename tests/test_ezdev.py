import json

import pytest

from eth_utils import to_canonical_address

from etcnode.config import (
    ChainConfig,
    ChainIdentity,
    NodeConfig,
)
from etcnode.constants import (
    DEV_ACCOUNT_BALANCE,
    DEV_ACCOUNT_COUNT,
    EXIT_OK,
)
from etcnode.ezdev import (
    apply_dev_overlay,
    bootstrap_dev_chain,
)
from etcnode.initialization import initialize_data_dir
from etcnode.main import main


@pytest.fixture
def dev_node_config(tmp_path):
    node_config = apply_dev_overlay(NodeConfig(
        base_dir=tmp_path / 'base',
        chain_identity=ChainIdentity('morden', 'default'),
        dev_mode=True,
    ))
    initialize_data_dir(node_config)
    return node_config


def test_overlay_overrides_user_values(tmp_path):
    node_config = NodeConfig(
        base_dir=tmp_path,
        chain_identity=ChainIdentity('morden', 'default'),
        no_discover=False,
        light_kdf=False,
        mine=False,
    )
    overlaid = apply_dev_overlay(node_config)

    assert overlaid.no_discover
    assert overlaid.light_kdf
    assert overlaid.mine
    assert not overlaid.automine


def test_bootstrap_creates_funded_accounts(dev_node_config):
    node_config, chain_config = bootstrap_dev_chain(dev_node_config, ChainConfig.from_builtin('morden'))
    chain_dir = node_config.chain_dir

    assert node_config.automine
    assert len(list(node_config.keystore_dir.iterdir())) == DEV_ACCOUNT_COUNT

    alloc_lines = (chain_dir / 'dev_genesis_alloc.csv').read_text().splitlines()
    assert len(alloc_lines) == DEV_ACCOUNT_COUNT
    for line in alloc_lines:
        address, balance = line.split(',')
        assert address.startswith('"0x') and address.endswith('"')
        assert balance == f'"{DEV_ACCOUNT_BALANCE}"'

    assert len(chain_config.allocation) == DEV_ACCOUNT_COUNT
    assert set(chain_config.allocation.values()) == {DEV_ACCOUNT_BALANCE}
    first_address = alloc_lines[0].split(',')[0].strip('"')
    assert to_canonical_address(first_address) in chain_config.allocation


def test_bootstrap_writes_descriptor_files(dev_node_config):
    bootstrap_dev_chain(dev_node_config, ChainConfig.from_builtin('morden'))
    chain_dir = dev_node_config.chain_dir

    descriptor = json.loads((chain_dir / 'chain.json').read_text())
    assert descriptor['include'] == ['dev_genesis.json']
    assert descriptor['genesis'] is None

    genesis = json.loads((chain_dir / 'dev_genesis.json').read_text())
    assert genesis['genesis']['alloc_file'] == 'dev_genesis_alloc.csv'
    assert 'alloc' not in genesis['genesis']


def test_bootstrap_reuses_accounts_and_descriptor(dev_node_config):
    chain_config = ChainConfig.from_builtin('morden')
    _, first = bootstrap_dev_chain(dev_node_config, chain_config)

    descriptor_path = dev_node_config.chain_descriptor_path
    descriptor = json.loads(descriptor_path.read_text())
    descriptor['name'] = 'My dev chain'
    descriptor_path.write_text(json.dumps(descriptor))
    (dev_node_config.chain_dir / 'dev_genesis_alloc.csv').write_text('')

    _, second = bootstrap_dev_chain(dev_node_config, chain_config)

    assert len(list(dev_node_config.keystore_dir.iterdir())) == DEV_ACCOUNT_COUNT
    assert second.allocation == first.allocation
    assert second.display_name == 'My dev chain'


def test_bootstrap_uses_existing_keyfiles(dev_node_config):
    address = 'ab' * 20
    dev_node_config.keystore_dir.joinpath('UTC--2017--' + address).write_text(json.dumps({
        'address': address,
        'crypto': {},
        'version': 3,
    }))

    _, chain_config = bootstrap_dev_chain(dev_node_config, ChainConfig.from_builtin('morden'))

    assert chain_config.allocation == {to_canonical_address('0x' + address): DEV_ACCOUNT_BALANCE}


def test_dev_flag(base_dir, capsys):
    assert main(['--dev', 'status']) == EXIT_OK

    chain_dir = base_dir / 'morden'
    assert (chain_dir / 'chain.json').is_file()
    assert len(list((chain_dir / 'keystore').iterdir())) == DEV_ACCOUNT_COUNT

    genesis_seed = json.loads((chain_dir / 'chaindata' / 'genesis.json').read_text())
    assert len(genesis_seed['genesis']['alloc']) == DEV_ACCOUNT_COUNT
    assert 'morden' in capsys.readouterr().out
