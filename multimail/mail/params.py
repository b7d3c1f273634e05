"""
Normalization of raw webhook payloads.

Providers POST their notifications in one of three shapes: a JSON object,
an ``application/x-www-form-urlencoded`` body, or ``multipart/form-data``
fields (which Django exposes as a list of key/value pairs). ``parse_params``
reduces all three to a single dict of field name to value, where a field
that appears once maps to its value and a repeated field maps to the list
of its values in arrival order.
"""

import json
from collections.abc import Mapping
from urllib.parse import unquote_plus

from multimail.exceptions import InvalidInput


def parse_params(raw) -> dict:
    """
    Parse raw POST data into a params dict.

    Args:
        raw: A JSON or query string, a list of (key, value) pairs, or an
            already parsed mapping.

    Returns:
        Dict of field name to a scalar value or a list of values.

    Raises:
        InvalidInput: If ``raw`` is none of the supported shapes.
    """
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded
        return _flatten(_parse_query(raw))

    if isinstance(raw, (list, tuple)):
        return _flatten(_group(_pairs(raw)))

    if isinstance(raw, Mapping):
        return raw

    raise InvalidInput(f"Can't handle {type(raw).__name__} input")


def _parse_query(raw) -> dict:
    """
    Group the fields of a query string by name.

    A bare key with no ``=`` contributes no value, so it maps to an empty
    list unless the same key also appears with a value.
    """
    grouped = {}
    for field in raw.split("&"):
        if not field:
            continue
        key, sep, value = field.partition("=")
        values = grouped.setdefault(unquote_plus(key), [])
        if sep:
            values.append(unquote_plus(value))
    return grouped


def _pairs(items):
    for index, item in enumerate(items):
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise InvalidInput(
                f"Can't handle list input: item {index} is not a (key, value) pair"
            )
        yield item[0], item[1]


def _group(pairs) -> dict:
    grouped = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)
    return grouped


def _flatten(grouped: dict) -> dict:
    return {
        key: values[0] if len(values) == 1 else values
        for key, values in grouped.items()
    }
