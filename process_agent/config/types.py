from enum import Enum


class Affirmative(Enum):
    """Result of parsing an optional boolean-ish setting."""

    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"


def parse_affirmative(value: str | None) -> Affirmative:
    """Parse a conventional "true" value.

    Empty or missing values carry no opinion and map to ``UNSET`` so callers
    keep their current value. ``true``, ``yes`` and ``1`` (any case) are
    ``TRUE``; anything else is an explicit ``FALSE``.
    """
    if value is None or value == "":
        return Affirmative.UNSET
    if value.strip().lower() in ("true", "yes", "1"):
        return Affirmative.TRUE
    return Affirmative.FALSE


def first_value(value: str, sep: str = ",") -> str:
    """First entry of a separated list, e.g. the first of several API keys."""
    return value.split(sep)[0].strip()


def split_list(value: str, sep: str = ",") -> list[str]:
    return [item.strip() for item in value.split(sep) if item.strip()]
