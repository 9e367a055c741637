from datetime import (
    datetime,
    timezone,
)
import json
import logging
from pathlib import Path
from typing import (
    List,
    NamedTuple,
)

from eth_account import Account as LocalAccount
from eth_utils import (
    is_hex_address,
    to_checksum_address,
)

from etcnode.constants import (
    LIGHT_SCRYPT_N,
    STANDARD_SCRYPT_N,
)

logger = logging.getLogger('etcnode.accounts')


class Account(NamedTuple):
    address: str
    file: Path


def keyfile_name(address: str, created_at: datetime) -> str:
    timestamp = created_at.strftime('%Y-%m-%dT%H-%M-%S.%f000Z')
    return f"UTC--{timestamp}--{address[2:].lower()}"


class KeyStore:
    """
    Encrypted key files in one directory, one account per file.
    """

    def __init__(self, keystore_dir: Path, light_kdf: bool = False) -> None:
        self.keystore_dir = keystore_dir
        self.scrypt_n = LIGHT_SCRYPT_N if light_kdf else STANDARD_SCRYPT_N

    def accounts(self) -> List[Account]:
        """
        Return the accounts found in the key directory, ordered by file name.
        Files that are not key files are skipped.
        """
        if not self.keystore_dir.is_dir():
            return []

        found = []
        for path in sorted(self.keystore_dir.iterdir()):
            if not path.is_file() or path.name.startswith('.'):
                continue
            try:
                keyfile = json.loads(path.read_text())
            except (OSError, UnicodeDecodeError, json.JSONDecodeError):
                logger.debug("Skipping unreadable key file %s", path)
                continue
            address = keyfile.get('address') if isinstance(keyfile, dict) else None
            if not address:
                continue
            if not address.startswith('0x'):
                address = '0x' + address
            if not is_hex_address(address):
                continue
            found.append(Account(to_checksum_address(address), path))
        return found

    def new_account(self, password: str) -> Account:
        self.keystore_dir.mkdir(parents=True, exist_ok=True)

        local_account = LocalAccount.create()
        keyfile = LocalAccount.encrypt(
            local_account.key,
            password,
            kdf='scrypt',
            iterations=self.scrypt_n,
        )
        address = to_checksum_address(local_account.address)
        path = self.keystore_dir / keyfile_name(address, datetime.now(timezone.utc))
        path.write_text(json.dumps(keyfile))
        path.chmod(0o600)
        return Account(address, path)
