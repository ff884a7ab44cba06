"""Table and column descriptors read from the database catalog.

SQLite is read through ``sqlite_master`` and ``PRAGMA table_info``; every other
dialect through ``information_schema``.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Union

from sqlbridge.dbapi.query import query
from sqlbridge.dbapi.spec import DatabaseSpec, as_spec
from sqlbridge.parameters import placeholder

if TYPE_CHECKING:
    from sqlbridge.typing import DictRow

__all__ = ("DatabaseMetadata", "get_columns", "get_tables")

DEFAULT_TABLE_TYPES = ("TABLE", "VIEW")


def _placeholders(db: DatabaseSpec, count: int) -> str:
    return ", ".join(placeholder(db.paramstyle, position) for position in range(1, count + 1))


def get_tables(db: "Union[DatabaseSpec, str]", types: "Sequence[str]" = DEFAULT_TABLE_TYPES) -> "list[DictRow]":
    """Describe the user tables and views of the database.

    Args:
        db: Database spec or URL.
        types: Table types to include (``TABLE``, ``VIEW``).

    Returns:
        Dicts with ``table_name``, ``table_type`` and ``table_schema`` keys.
    """
    db = as_spec(db)
    wanted = [table_type.upper() for table_type in types]
    if not wanted:
        return []
    if db.dialect == "sqlite":
        sql = (
            "SELECT name AS table_name, UPPER(type) AS table_type, 'main' AS table_schema "
            f"FROM sqlite_master WHERE UPPER(type) IN ({_placeholders(db, len(wanted))}) "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return query(db, [sql, *wanted])

    catalog_types = ["BASE TABLE" if table_type == "TABLE" else table_type for table_type in wanted]
    sql = (
        "SELECT table_name, CASE table_type WHEN 'BASE TABLE' THEN 'TABLE' ELSE table_type END AS table_type, "
        "table_schema FROM information_schema.tables "
        f"WHERE table_type IN ({_placeholders(db, len(catalog_types))}) "
        "AND table_schema NOT IN ('information_schema', 'pg_catalog') ORDER BY table_schema, table_name"
    )
    return query(db, [sql, *catalog_types])


def get_columns(db: "Union[DatabaseSpec, str]", table: str) -> "list[DictRow]":
    """Describe the columns of ``table`` in ordinal order.

    Returns:
        Dicts with ``column_name``, ``data_type``, ``nullable``, ``default_value``
        and ``primary_key`` keys.
    """
    db = as_spec(db)
    if db.dialect == "sqlite":
        quoted = '"' + table.replace('"', '""') + '"'
        rows = query(db, f"PRAGMA table_info({quoted})")
        return [
            {
                "column_name": row["name"],
                "data_type": row["type"],
                "nullable": not row["notnull"],
                "default_value": row["dflt_value"],
                "primary_key": bool(row["pk"]),
            }
            for row in rows
        ]

    rows = query(
        db,
        [
            "SELECT c.column_name, c.data_type, c.is_nullable, c.column_default, "
            "CASE WHEN k.column_name IS NULL THEN 0 ELSE 1 END AS primary_key "
            "FROM information_schema.columns c "
            "LEFT JOIN information_schema.table_constraints t "
            "ON t.table_name = c.table_name AND t.table_schema = c.table_schema "
            "AND t.constraint_type = 'PRIMARY KEY' "
            "LEFT JOIN information_schema.key_column_usage k "
            "ON k.constraint_name = t.constraint_name AND k.table_schema = t.table_schema "
            "AND k.column_name = c.column_name "
            f"WHERE c.table_name = {placeholder(db.paramstyle, 1)} ORDER BY c.ordinal_position",
            table,
        ],
    )
    return [
        {
            "column_name": row["column_name"],
            "data_type": row["data_type"],
            "nullable": str(row["is_nullable"]).upper() == "YES",
            "default_value": row["column_default"],
            "primary_key": bool(row["primary_key"]),
        }
        for row in rows
    ]


class DatabaseMetadata:
    """Catalog reader bound to one database spec (usually one with an attached connection)."""

    __slots__ = ("_db",)

    def __init__(self, db: "Union[DatabaseSpec, str]") -> None:
        self._db = as_spec(db)

    @property
    def db(self) -> DatabaseSpec:
        return self._db

    def get_tables(self, types: "Sequence[str]" = DEFAULT_TABLE_TYPES) -> "list[DictRow]":
        return get_tables(self._db, types)

    def get_columns(self, table: str) -> "list[DictRow]":
        return get_columns(self._db, table)

    def table_names(self, types: "Sequence[str]" = DEFAULT_TABLE_TYPES) -> "list[str]":
        return [row["table_name"] for row in self.get_tables(types)]

    def __repr__(self) -> str:
        return f"DatabaseMetadata({self._db!r})"
