"""Row-returning primitives of the DB-API access layer."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from typing_extensions import NotRequired, TypedDict

from sqlbridge.dbapi.core import managed_connection
from sqlbridge.dbapi.spec import DatabaseSpec, as_spec
from sqlbridge.exceptions import QueryError
from sqlbridge.parameters import placeholder
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.typing import DictRow, IdentifierTransform, RowFn, SQLParams

__all__ = (
    "QueryOptions",
    "db_query_with_resultset",
    "find_by_keys",
    "get_by_id",
    "make_cols_unique",
    "normalize_sql_params",
    "query",
    "result_set_seq",
)

logger = get_logger("dbapi.query")


class QueryOptions(TypedDict, total=False):
    """Options accepted by :func:`query`."""

    identifiers: "NotRequired[IdentifierTransform]"
    as_arrays: NotRequired[bool]
    row_fn: "NotRequired[RowFn]"
    result_set_fn: "NotRequired[Callable[[list[Any]], Any]]"
    max_rows: NotRequired[int]
    fetch_size: NotRequired[int]
    entities: "NotRequired[Callable[[str], str]]"


def normalize_sql_params(sql_params: "SQLParams") -> "tuple[str, list[Any]]":
    """Split ``[sql, *params]`` (or a bare SQL string) into SQL text and parameters.

    Raises:
        QueryError: The vector is empty or does not start with SQL text.
    """
    if isinstance(sql_params, str):
        return sql_params, []
    if not isinstance(sql_params, Sequence) or not sql_params or not isinstance(sql_params[0], str):
        msg = f"Expected [sql, *params] with SQL text first, got {sql_params!r}"
        raise QueryError(msg)
    return sql_params[0], list(sql_params[1:])


def make_cols_unique(columns: "Sequence[str]") -> "list[str]":
    """Suffix repeated column names with ``_2``, ``_3``... so every key stays addressable."""
    seen: dict[str, int] = {}
    unique: list[str] = []
    for column in columns:
        if column not in seen:
            seen[column] = 1
            unique.append(column)
            continue
        seen[column] += 1
        candidate = f"{column}_{seen[column]}"
        while candidate in seen:
            seen[column] += 1
            candidate = f"{column}_{seen[column]}"
        seen[candidate] = 1
        unique.append(candidate)
    return unique


def result_set_seq(
    cursor: Any,
    identifiers: "IdentifierTransform" = str.lower,
    as_arrays: bool = False,
    row_fn: "Optional[RowFn]" = None,
    max_rows: Optional[int] = None,
) -> "list[Any]":
    """Materialize a cursor's result set.

    Column names pass through ``identifiers``. Rows are dicts, or tuples after a
    leading column-name list when ``as_arrays`` is set. A cursor without a
    result set yields an empty list.
    """
    if cursor.description is None:
        return []
    columns = make_cols_unique([identifiers(str(description[0])) for description in cursor.description])
    fetched = cursor.fetchall() if max_rows is None else cursor.fetchmany(max_rows)
    if as_arrays:
        rows: list[Any] = [tuple(record) for record in fetched]
    else:
        rows = [dict(zip(columns, record)) for record in fetched]
    if row_fn is not None:
        rows = [row_fn(row) for row in rows]
    if as_arrays:
        return [columns, *rows]
    return rows


def db_query_with_resultset(
    db: "Union[DatabaseSpec, str]",
    sql_params: "SQLParams",
    func: "Callable[[Any], Any]",
    options: "Optional[Mapping[str, Any]]" = None,
) -> Any:
    """Execute a query and hand the open cursor to ``func``, returning its result."""
    db = as_spec(db)
    sql, parameters = normalize_sql_params(sql_params)
    logger.debug("Query: %s", sql, extra={"extra_fields": {"parameter_count": len(parameters)}})
    with managed_connection(db) as connection:
        cursor = connection.cursor()
        if options and options.get("fetch_size"):
            cursor.arraysize = options["fetch_size"]
        try:
            cursor.execute(sql, parameters)
            return func(cursor)
        finally:
            cursor.close()


def query(
    db: "Union[DatabaseSpec, str]", sql_params: "SQLParams", options: "Optional[Mapping[str, Any]]" = None
) -> Any:
    """Run a row-returning statement.

    Args:
        db: Database spec or URL.
        sql_params: ``[sql, *params]`` or a bare SQL string.
        options: :class:`QueryOptions`. ``identifiers`` defaults to ``str.lower``;
            ``result_set_fn`` (default ``list``) receives the materialized rows.

    Returns:
        The rows, as transformed by ``result_set_fn``.
    """
    opts = dict(options or {})
    result_set_fn = opts.get("result_set_fn", list)

    def _collect(cursor: Any) -> Any:
        return result_set_fn(
            result_set_seq(
                cursor,
                identifiers=opts.get("identifiers", str.lower),
                as_arrays=opts.get("as_arrays", False),
                row_fn=opts.get("row_fn"),
                max_rows=opts.get("max_rows"),
            )
        )

    return db_query_with_resultset(db, sql_params, _collect, opts)


def find_by_keys(
    db: "Union[DatabaseSpec, str]",
    table: str,
    columns: "Mapping[str, Any]",
    options: "Optional[Mapping[str, Any]]" = None,
) -> "list[DictRow]":
    """Select the rows of ``table`` whose columns equal every value in ``columns``."""
    db = as_spec(db)
    entities = (options or {}).get("entities", _identity)
    predicates = []
    parameters = []
    for column, value in columns.items():
        if value is None:
            predicates.append(f"{entities(column)} IS NULL")
            continue
        parameters.append(value)
        predicates.append(f"{entities(column)} = {placeholder(db.paramstyle, len(parameters))}")
    where = f" WHERE {' AND '.join(predicates)}" if predicates else ""
    return query(db, [f"SELECT * FROM {entities(table)}{where}", *parameters], options)


def get_by_id(
    db: "Union[DatabaseSpec, str]",
    table: str,
    pk_value: Any,
    pk_name: str = "id",
    options: "Optional[Mapping[str, Any]]" = None,
) -> "Optional[DictRow]":
    """Return the row of ``table`` whose ``pk_name`` equals ``pk_value``, or ``None``."""
    rows = find_by_keys(db, table, {pk_name: pk_value}, options)
    return rows[0] if rows else None


def _identity(name: str) -> str:
    return name
