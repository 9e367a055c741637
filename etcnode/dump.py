"""
Arguments and backend of the ``dump`` command.

``dump <blocks> [<addresses>]`` where ``<blocks>`` is a block number, a
comma-separated list of block numbers, or a 32-byte block hash, and
``<addresses>`` an optional comma-separated list of account addresses.
"""
import os
from typing import (
    Any,
    Callable,
    NamedTuple,
    Sequence,
    Tuple,
    Union,
    cast,
)

from eth_typing import (
    Hash32,
)
from eth_utils import (
    decode_hex,
    is_hex,
    is_hex_address,
    to_checksum_address,
)

from etcnode._utils.module_loading import (
    import_string,
)
from etcnode.constants import (
    DEFAULT_DUMP_BACKEND,
    DUMP_BACKEND_ENV,
)
from etcnode.exceptions import (
    DumpArgumentError,
    StateEngineUnavailable,
)

BlockSelector = Union[int, Hash32]


class DumpRequest(NamedTuple):
    blocks: Tuple[BlockSelector, ...]
    addresses: Tuple[str, ...]


def _parse_block_number(value: str) -> int:
    try:
        number = int(value, 10)
    except ValueError:
        raise DumpArgumentError(f"invalid block number: {value!r}")
    if number < 0:
        raise DumpArgumentError(f"invalid block number: {value!r}")
    return number


def parse_block_selectors(value: str) -> Tuple[BlockSelector, ...]:
    value = value.strip()
    if not value:
        raise DumpArgumentError("invalid block selector: empty")

    if value.startswith('0x'):
        if not is_hex(value) or len(value) != 66:
            raise DumpArgumentError(f"invalid block hash: {value!r}")
        return (Hash32(decode_hex(value)),)

    return tuple(_parse_block_number(part.strip()) for part in value.split(','))


def parse_address_filters(value: str) -> Tuple[str, ...]:
    addresses = []
    for part in value.split(','):
        address = part.strip()
        if not is_hex_address(address):
            raise DumpArgumentError(f"invalid address: {address!r}")
        addresses.append(to_checksum_address(address))
    return tuple(addresses)


def parse_dump_args(args: Sequence[str]) -> DumpRequest:
    if not args:
        raise DumpArgumentError("invalid use of dump: at least a block selector is required")
    if len(args) > 2:
        raise DumpArgumentError(f"invalid use of dump: unexpected arguments {list(args[2:])}")

    blocks = parse_block_selectors(args[0])
    addresses = parse_address_filters(args[1]) if len(args) == 2 else ()
    return DumpRequest(blocks, addresses)


DumpBackend = Callable[[Any, DumpRequest], Any]


def get_dump_backend() -> DumpBackend:
    import_path = os.environ.get(DUMP_BACKEND_ENV, DEFAULT_DUMP_BACKEND)
    return cast(DumpBackend, import_string(import_path))


def unavailable_dump_backend(boot_info: Any, request: DumpRequest) -> Any:
    raise StateEngineUnavailable(
        "No state engine is configured to dump state from. "
        f"Set {DUMP_BACKEND_ENV} to the import path of a dump function."
    )
