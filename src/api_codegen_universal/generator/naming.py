"""Identifier case conversion for emitted declarations."""

import re
from functools import lru_cache

STYLES = ("PascalCase", "camelCase", "snake_case", "kebab-case")


def _words(value: str) -> list[str]:
    return [part for part in re.split(r"[^A-Za-z0-9]+", value) if part]


@lru_cache(maxsize=1024)
def to_pascal_case(value: str) -> str:
    """Convert a string to PascalCase.

    Only the first letter of each word is touched, so acronyms survive and
    the conversion is idempotent.

    Examples:
        >>> to_pascal_case("getUsers_Query_Params")
        'GetUsersQueryParams'
        >>> to_pascal_case("ResultVO_User")
        'ResultVOUser'
    """
    return "".join(word[0].upper() + word[1:] for word in _words(value))


@lru_cache(maxsize=1024)
def to_camel_case(value: str) -> str:
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


@lru_cache(maxsize=1024)
def to_snake_case(value: str) -> str:
    """Convert a string to snake_case.

    Examples:
        >>> to_snake_case("GetUsersQueryParams")
        'get_users_query_params'
        >>> to_snake_case("HTTPResponse")
        'http_response'
    """
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", value)
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value)
    return "_".join(word.lower() for word in _words(value))


@lru_cache(maxsize=1024)
def to_kebab_case(value: str) -> str:
    return to_snake_case(value).replace("_", "-")


_CONVERTERS = {
    "PascalCase": to_pascal_case,
    "camelCase": to_camel_case,
    "snake_case": to_snake_case,
    "kebab-case": to_kebab_case,
}


def convert(value: str, style: str = "PascalCase") -> str:
    """Convert ``value`` to the given naming style."""
    try:
        converter = _CONVERTERS[style]
    except KeyError:
        raise ValueError(f"Unknown naming style: {style}") from None
    return converter(value) or value
