import json
import logging
from pathlib import Path
from typing import Dict

import pytest

from etcnode.constants import ASSETS_DIR


@pytest.fixture
def home_dir(tmp_path):
    home = tmp_path / 'home'
    home.mkdir()
    return home


@pytest.fixture
def base_dir(home_dir, monkeypatch):
    base = home_dir / '.ethereum-classic'
    monkeypatch.setenv('ETCNODE_BASE_DIR', str(base))
    monkeypatch.setenv('ETCNODE_LEGACY_BRAND_DIR', str(home_dir / '.ethereum'))
    monkeypatch.delenv('ETCNODE_DUMP_BACKEND', raising=False)
    return base


@pytest.fixture
def legacy_brand_dir(home_dir, base_dir):
    return home_dir / '.ethereum'


def make_legacy_layout(directory: Path, genuine: bool = True) -> Path:
    """
    Populate ``directory`` the way releases without per-chain subdirectories did.
    Without ``genuine`` the chain database is an empty directory.
    """
    chaindata = directory / 'chaindata'
    chaindata.mkdir(parents=True)
    if genuine:
        (chaindata / 'CURRENT').write_text('MANIFEST-000004\n')
        (chaindata / 'LOCK').write_text('')
        (chaindata / 'LOG').write_text('2017/01/01-00:00:00.000000 opened\n')
        (chaindata / '000005.ldb').write_bytes(b'\x01\x02\x03' * 100)

    keystore = directory / 'keystore'
    keystore.mkdir()
    if genuine:
        (keystore / 'UTC--2017-01-01T00-00-00.000000000Z--0000000000000000000000000000000000000001').write_text('{}')

    (directory / 'nodes').mkdir()
    (directory / 'dapp').mkdir()
    (directory / 'nodekey').write_text('aa' * 32)
    return directory


def make_foreign_layout(directory: Path) -> Path:
    (directory / 'geth' / 'chaindata').mkdir(parents=True)
    (directory / 'geth' / 'chaindata' / 'CURRENT').write_text('MANIFEST-000002\n')
    (directory / 'geth' / 'nodekey').write_text('bb' * 32)
    (directory / 'keystore').mkdir()
    (directory / 'geth.ipc').write_text('')
    return directory


def snapshot(directory: Path) -> Dict[str, bytes]:
    """
    Map every path below ``directory`` to its contents (``b'<dir>'`` for directories).
    """
    return {
        str(path.relative_to(directory)): b'<dir>' if path.is_dir() else path.read_bytes()
        for path in sorted(directory.rglob('*'))
    }


@pytest.fixture
def legacy_base_dir(base_dir):
    return make_legacy_layout(base_dir)


@pytest.fixture
def empty_legacy_base_dir(base_dir):
    return make_legacy_layout(base_dir, genuine=False)


@pytest.fixture
def morden_descriptor():
    return json.loads((ASSETS_DIR / 'morden.json').read_text())


@pytest.fixture
def write_descriptor(tmp_path):
    def _write(content, name='chain.json', directory=None):
        target_dir = directory or tmp_path / 'descriptors'
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_text(json.dumps(content))
        return path
    return _write


@pytest.fixture(autouse=True)
def remove_stderr_log_handler():
    yield
    logger = logging.getLogger('etcnode')
    for handler in list(logger.handlers):
        if getattr(handler, '_etcnode_stderr', False):
            logger.removeHandler(handler)
