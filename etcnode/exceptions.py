from pathlib import Path

from etcnode.constants import (
    EXIT_COMMAND_ERROR,
    EXIT_FLAG_ERROR,
    EXIT_IO_ERROR,
    EXIT_UNAVAILABLE,
    EXIT_VALIDATION_ERROR,
)


class BaseEtcNodeError(Exception):
    """
    The base class for all errors raised by the node startup sequence.
    ``exit_code`` is the process exit status used when the error reaches ``main``.
    """
    exit_code = EXIT_VALIDATION_ERROR


class FlagError(BaseEtcNodeError):
    """
    Raised when a command line flag is unknown or its value is malformed.
    """
    exit_code = EXIT_FLAG_ERROR


class CommandError(BaseEtcNodeError):
    """
    Raised when the first positional argument does not name a known command.
    """
    exit_code = EXIT_COMMAND_ERROR

    def __init__(self, command: str, usage: str) -> None:
        super().__init__(f"Invalid command: {command!r}")
        self.command = command
        self.usage = usage


class ConfigValidationError(BaseEtcNodeError):
    """
    Raised when a chain descriptor or a configuration value is invalid.
    """
    exit_code = EXIT_VALIDATION_ERROR


class DumpArgumentError(ConfigValidationError):
    """
    Raised when the ``dump`` command receives missing or malformed selectors.
    """
    pass


class MissingPath(BaseEtcNodeError):
    """
    Raised when a required, non-default path does not exist.
    """
    exit_code = EXIT_IO_ERROR

    def __init__(self, msg: str, path: Path) -> None:
        super().__init__(msg)
        self.path = path


class MigrationIOError(BaseEtcNodeError):
    """
    Raised when moving a legacy data directory fails. The legacy directory is
    restored before this is raised.
    """
    exit_code = EXIT_IO_ERROR


class DirectoryStructureError(BaseEtcNodeError):
    """
    Raised when a path the current layout needs as a directory is something else.
    """
    exit_code = EXIT_IO_ERROR


class DataDirLocked(BaseEtcNodeError):
    """
    Raised when another process holds the chain directory.
    """
    exit_code = EXIT_UNAVAILABLE


class StateEngineUnavailable(BaseEtcNodeError):
    """
    Raised when a command needs the state engine and none is configured.
    """
    exit_code = EXIT_UNAVAILABLE
