from pathlib import Path


ASSETS_DIR = Path(__file__).parent / 'assets'

#
# Chain identities
#
MAINNET_CHAIN_NAME = 'mainnet'
MORDEN_CHAIN_NAME = 'morden'
CUSTOM_CHAIN_NAME = 'custom'

MAINNET_NETWORK_ID = 1
MORDEN_NETWORK_ID = 2

# every accepted spelling, mapped to the on-disk chain name
MAINNET_ALIASES = frozenset({'mainnet', 'main', 'etc', 'classic'})
MORDEN_ALIASES = frozenset({'morden', 'testnet', 'test'})

BUILTIN_CHAIN_NAMES = frozenset({MAINNET_CHAIN_NAME, MORDEN_CHAIN_NAME})

#
# On-disk layout
#
CHAINDATA_DIR = 'chaindata'
KEYSTORE_DIR = 'keystore'
NODES_DIR = 'nodes'
DAPP_DIR = 'dapp'
NODEKEY_FILE = 'nodekey'
LOG_DIR = 'log'
PID_FILE = 'etcnode.pid'
CHAIN_DESCRIPTOR_FILE = 'chain.json'

DEFAULT_IPC_FILENAME = 'geth.ipc'

LEGACY_MARKER_DIRS = (DAPP_DIR, KEYSTORE_DIR, CHAINDATA_DIR, NODES_DIR)
LEGACY_MARKER_FILES = (NODEKEY_FILE, DEFAULT_IPC_FILENAME)

# pre-per-chain releases kept testnet data in <base>/testnet
LEGACY_TESTNET_DIR = 'testnet'

# the foreign lineage stores its chain under <base>/geth/
FOREIGN_MARKER_DIRS = ('geth',)

# LevelDB writes these on open; a chaindata dir without them was never a database
LEVELDB_MARKER_FILES = ('LOG', 'LOCK', 'CURRENT')

MIGRATION_STAGING_PREFIX = '.migrating-'

#
# Base directory names
#
BASE_DIR_NAME_POSIX = '.ethereum-classic'
BASE_DIR_NAME_DARWIN = 'EthereumClassic'
BASE_DIR_NAME_WINDOWS = 'EthereumClassic'
LEGACY_BRAND_DIR_NAME_POSIX = '.ethereum'
LEGACY_BRAND_DIR_NAME_DARWIN = 'Ethereum'
LEGACY_BRAND_DIR_NAME_WINDOWS = 'Ethereum'

#
# Cache
#
DEFAULT_CACHE_MB = 128
MIN_CACHE_MB = 16

#
# Developer mode
#
DEV_ACCOUNT_COUNT = 10
DEV_ACCOUNT_PASSWORD = ''
DEV_ACCOUNT_BALANCE = 10000000000000000000000000000000
DEV_GENESIS_FILE = 'dev_genesis.json'
DEV_GENESIS_ALLOC_FILE = 'dev_genesis_alloc.csv'

#
# Key derivation
#
STANDARD_SCRYPT_N = 1 << 18
LIGHT_SCRYPT_N = 1 << 12

#
# Consensus engines accepted in chain descriptors
#
CONSENSUS_ENGINES = frozenset({'ethash', 'ethash-test'})
DEFAULT_CONSENSUS = 'ethash'

DUMP_BACKEND_ENV = 'ETCNODE_DUMP_BACKEND'
DEFAULT_DUMP_BACKEND = 'etcnode.dump.unavailable_dump_backend'

#
# Exit statuses
#
EXIT_OK = 0
EXIT_FLAG_ERROR = 1
EXIT_VALIDATION_ERROR = 2
EXIT_COMMAND_ERROR = 3
EXIT_IO_ERROR = 4
EXIT_UNAVAILABLE = 5
