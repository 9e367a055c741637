import json
import sys

from eth_keys.datatypes import PrivateKey
import pytest

from conftest import (
    make_foreign_layout,
    make_legacy_layout,
    snapshot,
)
from etcnode._utils.chains import load_nodekey
from etcnode.constants import (
    EXIT_COMMAND_ERROR,
    EXIT_FLAG_ERROR,
    EXIT_OK,
    EXIT_UNAVAILABLE,
    EXIT_VALIDATION_ERROR,
)
from etcnode.main import main

LEGACY_MARKERS = ('chaindata', 'keystore', 'nodes', 'dapp', 'nodekey')


def legacy_entries(directory):
    return {
        path: content for path, content in snapshot(directory).items()
        if path.split('/')[0] in LEGACY_MARKERS
    }


def without_node_id(status_output):
    return '\n'.join(line for line in status_output.splitlines() if not line.startswith('node id:'))


def test_fresh_start(base_dir):
    assert main([]) == EXIT_OK

    chain_dir = base_dir / 'mainnet'
    for name in ('chaindata', 'keystore', 'nodes', 'dapp', 'log'):
        assert (chain_dir / name).is_dir()
    assert len((chain_dir / 'nodekey').read_text()) == 64
    assert (chain_dir / 'chaindata' / 'genesis.json').is_file()
    assert not (chain_dir / 'etcnode.pid').exists()


@pytest.mark.parametrize(
    'argv, chain_name',
    (
        ([], 'mainnet'),
        (['--testnet'], 'morden'),
        (['--chain', 'morden'], 'morden'),
    ),
)
def test_migrates_legacy_layout(legacy_base_dir, argv, chain_name):
    legacy = legacy_entries(legacy_base_dir)

    assert main(argv) == EXIT_OK

    for name in LEGACY_MARKERS:
        assert not (legacy_base_dir / name).exists()
    assert legacy_entries(legacy_base_dir / chain_name) == legacy


@pytest.mark.parametrize(
    'argv_factory, chain_dir_factory',
    (
        (lambda tmp: ['--chain', 'kitty'], lambda base, tmp: base / 'kitty'),
        (lambda tmp: ['--datadir', str(tmp / 'other')], lambda base, tmp: tmp / 'other' / 'mainnet'),
        (lambda tmp: ['--data-dir', str(tmp / 'other')], lambda base, tmp: tmp / 'other' / 'mainnet'),
    ),
)
def test_custom_chain_or_data_dir_leaves_legacy_intact(legacy_base_dir, tmp_path, argv_factory, chain_dir_factory):
    legacy = legacy_entries(legacy_base_dir)

    assert main(argv_factory(tmp_path)) == EXIT_OK

    assert legacy_entries(legacy_base_dir) == legacy
    chain_dir = chain_dir_factory(legacy_base_dir, tmp_path)
    assert (chain_dir / 'chaindata' / 'genesis.json').is_file()
    assert not (legacy_base_dir / 'mainnet').exists()


def test_invalid_descriptor_changes_nothing(legacy_base_dir, morden_descriptor, write_descriptor, capsys):
    morden_descriptor['identity'] = 'kitty'
    morden_descriptor['genesis']['coinbase'] = '0xnot-an-address'
    path = write_descriptor(morden_descriptor)
    before = snapshot(legacy_base_dir)

    exit_code = main(['--chain-config', str(path)])

    assert exit_code != 0
    assert 'invalid' in capsys.readouterr().err
    assert snapshot(legacy_base_dir) == before


def test_invalid_descriptor_creates_no_base_dir(base_dir, morden_descriptor, write_descriptor, capsys):
    morden_descriptor['genesis']['coinbase'] = '0x1234'
    path = write_descriptor(morden_descriptor)

    assert main(['--chainconfig', str(path)]) != 0
    assert 'invalid' in capsys.readouterr().err
    assert not base_dir.exists()


def test_valid_descriptor_creates_custom_chain_dir(legacy_base_dir, morden_descriptor, write_descriptor):
    morden_descriptor['identity'] = 'kitty'
    legacy = legacy_entries(legacy_base_dir)

    assert main(['--chain-config', str(write_descriptor(morden_descriptor))]) == EXIT_OK

    assert legacy_entries(legacy_base_dir) == legacy
    assert (legacy_base_dir / 'kitty' / 'chaindata').is_dir()


def test_empty_legacy_layout_is_left_alongside(empty_legacy_base_dir):
    before = snapshot(empty_legacy_base_dir)

    assert main([]) == EXIT_OK

    after = snapshot(empty_legacy_base_dir)
    assert {path: after[path] for path in before} == before
    assert any((empty_legacy_base_dir / 'mainnet' / 'chaindata').iterdir())


def test_foreign_layout_is_left_untouched(base_dir):
    make_foreign_layout(base_dir)
    before = snapshot(base_dir)

    assert main([]) == EXIT_OK

    after = snapshot(base_dir)
    assert {path: after[path] for path in before} == before
    assert (base_dir / 'mainnet' / 'chaindata').is_dir()


@pytest.mark.parametrize('argv', ([], ['--testnet']))
def test_second_run_is_noop(legacy_base_dir, argv):
    assert main(argv) == EXIT_OK
    before = snapshot(legacy_base_dir)

    assert main(argv) == EXIT_OK

    assert snapshot(legacy_base_dir) == before


def test_migration_resumes_after_interruption(legacy_base_dir):
    staging_dir = legacy_base_dir / '.migrating-mainnet'
    staging_dir.mkdir()
    (legacy_base_dir / 'chaindata').rename(staging_dir / 'chaindata')
    staged = snapshot(staging_dir)

    assert main([]) == EXIT_OK

    assert not staging_dir.exists()
    assert not (legacy_base_dir / 'chaindata').exists()
    assert {
        path: content for path, content in snapshot(legacy_base_dir / 'mainnet').items()
        if path.startswith('chaindata')
    } == staged


def test_legacy_brand_dir_is_renamed_and_migrated(base_dir, legacy_brand_dir):
    make_legacy_layout(legacy_brand_dir)
    legacy = legacy_entries(legacy_brand_dir)

    assert main([]) == EXIT_OK

    assert not legacy_brand_dir.exists()
    assert legacy_entries(base_dir / 'mainnet') == legacy


def test_foreign_brand_dir_is_left_untouched(base_dir, legacy_brand_dir):
    make_foreign_layout(legacy_brand_dir)
    before = snapshot(legacy_brand_dir)

    assert main([]) == EXIT_OK

    assert snapshot(legacy_brand_dir) == before
    assert (base_dir / 'mainnet').is_dir()


def test_flag_aliases_are_equivalent(tmp_path, base_dir, capsys):
    hyphenated = ['--data-dir', str(tmp_path / 'a'), '--no-discover', '--ipc-path', 'node.ipc', 'status']
    flat = ['--datadir', str(tmp_path / 'b'), '--nodiscover', '--ipcpath', 'node.ipc', 'status']

    assert main(hyphenated) == EXIT_OK
    out_hyphenated = without_node_id(capsys.readouterr().out)
    assert main(flat) == EXIT_OK
    out_flat = without_node_id(capsys.readouterr().out)

    assert out_hyphenated.replace(str(tmp_path / 'a'), '<dir>') == out_flat.replace(str(tmp_path / 'b'), '<dir>')
    assert set(snapshot(tmp_path / 'a')) == set(snapshot(tmp_path / 'b'))


@pytest.mark.parametrize('argv', (['--bogus-flag'], ['status', '--bogus-flag'], ['--testnet', 'dump', '0', '--bogus-flag']))
def test_unknown_flag(base_dir, capsys, argv):
    assert main(argv) == EXIT_FLAG_ERROR

    err = capsys.readouterr().err
    assert 'not defined' in err
    assert '--bogus-flag' in err
    assert 'usage' not in err.lower()
    assert not base_dir.exists()


def test_malformed_flag_value(base_dir, capsys):
    assert main(['--cache', 'lots']) == EXIT_FLAG_ERROR
    assert 'usage' not in capsys.readouterr().err.lower()


def test_unknown_command(base_dir, capsys):
    assert main(['frobnicate']) == EXIT_COMMAND_ERROR

    err = capsys.readouterr().err
    assert 'Invalid command' in err
    assert 'usage:' in err
    assert not base_dir.exists()


@pytest.mark.parametrize('cache, allotted', (('8', 16), ('256', 256)))
def test_cache_is_echoed(base_dir, capsys, cache, allotted):
    assert main(['--cache', cache]) == EXIT_OK
    assert f'Allotted {allotted}MB cache' in capsys.readouterr().err


def test_status(base_dir, capsys):
    assert main(['--testnet', 'status']) == EXIT_OK

    out = capsys.readouterr().out
    assert 'morden' in out
    assert str(base_dir / 'morden') in out
    assert 'Homestead@494000' in out
    node_id = load_nodekey(base_dir / 'morden' / 'nodekey').public_key.to_hex()
    assert f'node id:      {node_id}' in out


def test_status_of_migrated_legacy_node(legacy_base_dir, capsys):
    assert main(['status']) == EXIT_OK

    out = capsys.readouterr().out
    assert 'migrated:     yes' in out
    assert PrivateKey(b'\xaa' * 32).public_key.to_hex() in out


def test_status_with_corrupt_nodekey(base_dir, capsys):
    assert main([]) == EXIT_OK
    (base_dir / 'mainnet' / 'nodekey').write_text('not hex')

    assert main(['status']) == EXIT_VALIDATION_ERROR
    assert 'invalid nodekey' in capsys.readouterr().err


def test_dump_without_arguments(base_dir, capsys):
    exit_code = main(['dump'])

    assert exit_code != 0
    assert 'invalid' in capsys.readouterr().err
    assert not base_dir.exists()


def test_dump_without_state_engine(base_dir, capsys):
    assert main(['dump', '0,1']) == EXIT_UNAVAILABLE
    assert 'state engine' in capsys.readouterr().err


def test_dump_config(base_dir, tmp_path):
    target = tmp_path / 'morden.json'

    assert main(['--testnet', 'dump-config', str(target)]) == EXIT_OK

    assert json.loads(target.read_text())['identity'] == 'morden'


def test_dump_config_refuses_custom_chain(base_dir, tmp_path, capsys):
    assert main(['--chain', 'kitty', 'dump-config', str(tmp_path / 'kitty.json')]) != 0
    assert 'invalid' in capsys.readouterr().err


def test_dump_config_requires_path(base_dir, capsys):
    assert main(['dump-config', ' ']) != 0
    assert 'invalid' in capsys.readouterr().err


def test_locked_chain_dir(base_dir, capsys):
    assert main([]) == EXIT_OK
    pid_file = base_dir / 'mainnet' / 'etcnode.pid'
    pid_file.write_text('12345')

    assert main([]) == EXIT_UNAVAILABLE

    assert 'in use' in capsys.readouterr().err
    assert pid_file.read_text() == '12345'


def test_missing_nested_data_dir(base_dir, tmp_path, capsys):
    assert main(['--datadir', str(tmp_path / 'does' / 'not' / 'exist')]) != 0
    assert 'does not exist' in capsys.readouterr().err


@pytest.mark.parametrize(
    'mutate',
    (
        lambda d: d.__setitem__('genesis', 'not-an-object'),
        lambda d: d['genesis'].__setitem__('alloc', ['0x' + '11' * 20]),
        lambda d: d['chainConfig'].__setitem__('forks', ['Homestead', 'Diehard']),
    ),
)
def test_malformed_descriptor_is_a_validation_error(base_dir, morden_descriptor, write_descriptor, capsys, mutate):
    morden_descriptor['identity'] = 'kitty'
    mutate(morden_descriptor)
    path = write_descriptor(morden_descriptor)

    assert main(['--chain-config', str(path), 'status']) == EXIT_VALIDATION_ERROR

    err = capsys.readouterr().err
    assert 'invalid' in err
    assert 'Traceback' not in err
    assert not base_dir.exists()


@pytest.mark.skipif(sys.platform in ('darwin', 'win32'), reason="posix layout")
def test_explicit_data_dir_without_home(base_dir, tmp_path, monkeypatch, capsys):
    monkeypatch.delenv('ETCNODE_BASE_DIR')
    monkeypatch.delenv('HOME', raising=False)

    assert main(['--data-dir', str(tmp_path / 'node'), 'status']) == EXIT_OK
    out = capsys.readouterr().out
    assert str(tmp_path / 'node' / 'mainnet') in out
    assert 'base layout:  absent' in out

    assert main([]) == EXIT_VALIDATION_ERROR
    assert '$HOME is not set' in capsys.readouterr().err
