from importlib import import_module
from typing import Any


def import_string(dotted_path: str) -> Any:
    """
    Import a variable using its path and name, e.g. ``"etcnode.dump.unavailable_dump_backend"``.
    Raise ImportError if the import failed.
    """
    try:
        module_path, class_name = dotted_path.rsplit('.', 1)
    except ValueError:
        msg = f"{dotted_path} doesn't look like a module path"
        raise ImportError(msg)

    module = import_module(module_path)

    try:
        return getattr(module, class_name)
    except AttributeError:
        msg = f'Module "{module_path}" does not define a "{class_name}" attribute/class'
        raise ImportError(msg)
