"""Identifier casing transforms applied to result-set column names."""

import re
from functools import lru_cache

# Handles sequences like "HTTPRequest" -> "HTTP_Request" or "SSLError" -> "SSL_Error"
_SNAKE_CASE_RE_ACRONYM_SEQUENCE = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
# Handles transitions like "camelCase" -> "camel_Case"
_SNAKE_CASE_RE_LOWER_UPPER_TRANSITION = re.compile(r"([a-z\d])([A-Z])")
_SNAKE_CASE_RE_REPLACE_SEP = re.compile(r"[-\s.]+")
_SNAKE_CASE_RE_CLEAN_MULTIPLE_UNDERSCORE = re.compile(r"__+")

__all__ = (
    "camelize",
    "lisp_case",
    "snake_case",
    "sql_name",
)


@lru_cache(maxsize=512)
def lisp_case(identifier: str) -> str:
    """Lower-case an identifier and swap underscores for hyphens.

    This is the default identifier transform: ``CREATED_AT`` becomes
    ``created-at`` and ``Id`` becomes ``id``.

    Args:
        identifier: Column name as reported by the driver.

    Returns:
        The lisp-cased identifier.
    """
    return identifier.lower().replace("_", "-")


@lru_cache(maxsize=512)
def sql_name(identifier: str) -> str:
    """Turn a lisp-cased name back into an SQL identifier (``created-at`` -> ``created_at``)."""
    return identifier.replace("-", "_")


@lru_cache(maxsize=512)
def camelize(identifier: str) -> str:
    """Convert a snake-cased column name to camel case.

    Args:
        identifier: The string to convert.

    Returns:
        The converted string.
    """
    words = identifier.lower().split("_")
    return "".join(word if index == 0 else word.capitalize() for index, word in enumerate(words))


@lru_cache(maxsize=512)
def snake_case(identifier: str) -> str:
    """Convert a column name to snake_case.

    Handles CamelCase, PascalCase, and names with spaces, hyphens or dots as
    separators. Acronyms are kept together (``HTTPRequest`` -> ``http_request``).

    Args:
        identifier: The string to convert.

    Returns:
        The snake_case version of the string.
    """
    if not identifier:
        return ""
    s = _SNAKE_CASE_RE_REPLACE_SEP.sub("_", identifier.strip())
    s = _SNAKE_CASE_RE_ACRONYM_SEQUENCE.sub(r"\1_\2", s)
    s = _SNAKE_CASE_RE_LOWER_UPPER_TRANSITION.sub(r"\1_\2", s)
    s = re.sub(r"[^\w_]", "", s, flags=re.UNICODE)
    s = _SNAKE_CASE_RE_CLEAN_MULTIPLE_UNDERSCORE.sub("_", s)
    return s.lower().strip("_")
