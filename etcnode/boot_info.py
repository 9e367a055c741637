from argparse import Namespace
from typing import NamedTuple

from etcnode.config import (
    ChainConfig,
    NodeConfig,
)
from etcnode.layout import LegacyLayout
from etcnode.migration import MigrationResult


class BootInfo(NamedTuple):
    args: Namespace
    node_config: NodeConfig
    chain_config: ChainConfig
    layout: LegacyLayout
    migration: MigrationResult
    min_log_level: int
