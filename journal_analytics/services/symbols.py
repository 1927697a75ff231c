"""Broker symbol normalization.

Brokers decorate the same instrument differently ("EURUSD", "EURUSD.a",
"EURUSD+", "EURUSD_m", "XAUUSDmicro"). Two symbols refer to the same
instrument iff their normalized forms are equal.
"""

import re

_TRAILING_PUNCT = re.compile(r"[+.]+$")
_SIZE_SUFFIX = re.compile(r"(?:[_-]m|[_-]?micro|[_-]?mini)$", re.IGNORECASE)
_CLASS_SUFFIX = re.compile(r"\.[abc]$", re.IGNORECASE)

_ROOT_TAIL = re.compile(r"[.#_].*$")
_MICRO_TAIL = re.compile(r"micro$", re.IGNORECASE)


def _strip_once(symbol: str) -> str:
    symbol = _TRAILING_PUNCT.sub("", symbol)
    symbol = _SIZE_SUFFIX.sub("", symbol)
    symbol = _CLASS_SUFFIX.sub("", symbol)
    return symbol


def normalize_symbol(symbol: str | None) -> str:
    """Canonical uppercase form of a broker symbol.

    Rules are applied until the value stops changing, so a stacked suffix
    like "EURUSD.a+" and its partially stripped form normalize identically.
    """
    if not symbol:
        return ""
    current = symbol.strip()
    while True:
        stripped = _strip_once(current)
        if stripped == current:
            break
        current = stripped
    return current.upper()


def same_instrument(a: str | None, b: str | None) -> bool:
    return normalize_symbol(a) == normalize_symbol(b)


def symbol_root(symbol: str | None) -> str:
    """Coarse bucket key used for per-symbol statistics ("EURUSD.pro" -> "EURUSD")."""
    if not symbol:
        return ""
    root = _ROOT_TAIL.sub("", symbol)
    root = _MICRO_TAIL.sub("", root)
    return root.upper()
