"""Import helpers for DB-API driver modules."""

import importlib
from typing import Any, Optional

from sqlbridge.exceptions import MissingDependencyError

__all__ = ("import_driver",)


def import_driver(module_name: str, install_package: Optional[str] = None) -> "Any":
    """Import a DB-API 2.0 driver module.

    Args:
        module_name: Importable name of the driver (``sqlite3``, ``psycopg``...).
        install_package: Extra/package name suggested when the driver is missing.

    Raises:
        MissingDependencyError: The driver is not installed.

    Returns:
        The driver module.
    """
    try:
        return importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        raise MissingDependencyError(module_name, install_package) from e
