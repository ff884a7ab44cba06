"""Positional bind-parameter styles understood by DB-API 2.0 drivers."""

from enum import Enum
from typing import Union

from sqlbridge.exceptions import ImproperConfigurationError

__all__ = ("ParameterStyle", "placeholder")


class ParameterStyle(str, Enum):
    """Parameter style enumeration with DB-API ``paramstyle`` values."""

    QMARK = "qmark"
    NUMERIC = "numeric"
    FORMAT = "format"
    PYFORMAT = "pyformat"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value: "Union[ParameterStyle, str]") -> "ParameterStyle":
        """Resolve a style from an enum member or a driver ``paramstyle`` string.

        Raises:
            ImproperConfigurationError: The style is not positional.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            msg = f"Unsupported parameter style {value!r}; expected one of {', '.join(s.value for s in cls)}"
            raise ImproperConfigurationError(msg) from e


def placeholder(style: "Union[ParameterStyle, str]", position: int) -> str:
    """Return the placeholder text for the 1-based ``position``.

    ``pyformat`` drivers accept ``%s`` for positional sequences, so both format
    styles render the same way.
    """
    style = ParameterStyle.coerce(style)
    if style is ParameterStyle.QMARK:
        return "?"
    if style is ParameterStyle.NUMERIC:
        return f":{position}"
    return "%s"
