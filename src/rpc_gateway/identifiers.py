"""Normalisation of user-supplied block identifiers."""

from __future__ import annotations

import re

from .errors import GatewayError, validation_error

LATEST_TAG = "latest"

_HEX_NUMERAL = re.compile(r"^0[xX][0-9a-fA-F]+$")
_DECIMAL_NUMERAL = re.compile(r"^[0-9]+$")


def normalize_block_identifier(raw: str) -> str:
    """Return ``latest`` or a ``0x``-prefixed hex block number.

    Decimal numerals are converted to hex; hex numerals are lower-cased
    and forwarded with leading zeros stripped.
    """

    value = raw.strip()
    if value == LATEST_TAG:
        return LATEST_TAG
    try:
        if _HEX_NUMERAL.match(value):
            return hex(int(value, 16))
        if _DECIMAL_NUMERAL.match(value):
            return hex(int(value, 10))
    except ValueError as exc:
        # CPython refuses int() on very long decimal strings.
        raise _invalid(raw) from exc
    raise _invalid(raw)


def _invalid(raw: str) -> GatewayError:
    return validation_error("Invalid block number format").with_context(block_number=raw)
