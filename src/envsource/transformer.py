"""Conversion of raw string values to Python types.

Environment values are always strings. ``to`` turns one into the type a
caller asks for. Each base type comes in three flavours:

- ``"integer"``: an empty string has a default meaning (``0``)
- ``"integer?"``: an empty string is ``None``
- ``"integer!"``: an empty string is an error

Supported base types are ``string``, ``integer``, ``float``, ``boolean`` and
``module``. A callable may be given instead of a type name; it receives the
raw string and its return value is used as-is.
"""

import importlib
import re
from typing import Any, Callable, Union

from .errors import TransformError

ConversionType = Union[str, Callable[[str], Any]]

FALSE_VALUES = frozenset({"false", "0", ""})

# ASCII digits only; no underscores, no other numeral systems
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
FLOAT_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def _to_string(value: str) -> str:
    return value


def _to_integer(value: str) -> int:
    if value == "":
        return 0
    text = value.strip()
    if INTEGER_PATTERN.fullmatch(text) is None:
        raise TransformError(f"{value!r}: not an integer")
    return int(text)


def _to_float(value: str) -> float:
    if value == "":
        return 0.0
    text = value.strip()
    if FLOAT_PATTERN.fullmatch(text) is None:
        raise TransformError(f"{value!r}: not a float")
    return float(text)


def _to_boolean(value: str) -> bool:
    return value.lower() not in FALSE_VALUES


def _to_module(value: str) -> Any:
    try:
        return importlib.import_module(value)
    except ImportError as e:
        raise TransformError(f"{value!r}: not an importable module ({e})") from e
    except (TypeError, ValueError) as e:
        raise TransformError(f"{value!r}: not a module name") from e


CONVERTERS: dict[str, Callable[[str], Any]] = {
    "string": _to_string,
    "integer": _to_integer,
    "float": _to_float,
    "boolean": _to_boolean,
    "module": _to_module,
}


def to(value: str, type_: ConversionType = "string") -> Any:
    """Convert a raw string to the given type.

    Args:
        value: The raw string.
        type_: A type name (optionally suffixed with ``?`` or ``!``) or a
            callable taking the raw string.

    Raises:
        TransformError: If the input is not a string, the type is unknown,
            the value cannot be parsed, or a required value is empty.

    Examples:
        >>> to("5432", "integer")
        5432
        >>> to("", "boolean?") is None
        True
    """
    if callable(type_):
        return type_(value)

    if not isinstance(value, str):
        raise TransformError("Input must be a string.")

    base = type_
    suffix = ""
    if isinstance(type_, str) and type_[-1:] in ("?", "!"):
        base, suffix = type_[:-1], type_[-1]

    converter = CONVERTERS.get(base) if isinstance(base, str) else None
    if converter is None:
        raise TransformError(f"Unknown type {type_!r}")

    if value == "":
        if suffix == "?":
            return None
        if suffix == "!":
            raise TransformError("non-empty value required")

    return converter(value)
