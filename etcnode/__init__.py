from importlib.metadata import (
    PackageNotFoundError,
    version,
)

try:
    __version__ = version("etcnode")
except PackageNotFoundError:
    __version__ = "unknown"
