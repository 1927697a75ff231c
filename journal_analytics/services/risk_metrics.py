"""Per-trade risk and price-efficiency metrics.

All functions are pure computation — no I/O, no database access. Every
metric is independently nullable: a missing stop, target or exit yields
None, never an exception.

Pip sizes and values are approximations by instrument family, matched by
keyword against the normalized symbol. A deployment with exact broker
contract specs can load its own ``PipTable`` (see ``Settings.pip_table_path``).
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from journal_analytics.services.symbols import normalize_symbol

logger = logging.getLogger(__name__)

METHOD_RISK = "risk"
METHOD_EQUITY_PCT = "equity_pct"

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


# ---------------------------------------------------------------------------
# Pip lookup
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipRule:
    name: str
    keywords: tuple[str, ...]
    pip_size: float
    pip_value_per_lot: float  # approximate USD per pip per standard lot

    def matches(self, key: str) -> bool:
        return any(k in key for k in self.keywords)


FOREX_RULE = PipRule("forex", (), 0.0001, 10.0)

# Order matters: the first matching family wins (e.g. XAUJPY is priced as JPY).
DEFAULT_PIP_RULES: tuple[PipRule, ...] = (
    PipRule("jpy", ("JPY",), 0.01, 7.5),
    PipRule("gold", ("XAU", "GOLD"), 0.1, 10.0),
    PipRule("silver", ("XAG", "SILVER"), 0.01, 50.0),
    PipRule("sp500", ("SP500", "SPX", "US500"), 0.01, 0.50),
    PipRule("nasdaq", ("NAS", "USTEC", "US100"), 0.01, 0.20),
    PipRule("dow", ("US30", "DJ30", "DOW"), 1.0, 0.10),
    PipRule("dax", ("DAX", "DE40", "GER40"), 0.1, 0.10),
    PipRule("ftse", ("FTSE", "UK100"), 0.1, 10.0),
    PipRule("oil", ("OIL", "BRENT", "WTI", "USOIL", "XTIUSD"), 0.01, 10.0),
    PipRule("btc", ("BTC", "BITCOIN"), 1.0, 1.0),
    PipRule("eth", ("ETH",), 0.01, 1.0),
)


@dataclass
class PipTable:
    rules: tuple[PipRule, ...] = DEFAULT_PIP_RULES
    default: PipRule = FOREX_RULE

    def lookup(self, symbol: str | None) -> PipRule:
        key = _NON_ALNUM.sub("", normalize_symbol(symbol))
        for rule in self.rules:
            if rule.matches(key):
                return rule
        return self.default

    @classmethod
    def from_dict(cls, data: dict) -> "PipTable":
        """Build a table from ``{"rules": [...], "default": {...}}``.

        Each rule is ``{"name", "keywords", "pip_size", "pip_value_per_lot"}``.
        """
        rules = tuple(
            PipRule(
                name=r.get("name", "/".join(r["keywords"])),
                keywords=tuple(k.upper() for k in r["keywords"]),
                pip_size=float(r["pip_size"]),
                pip_value_per_lot=float(r["pip_value_per_lot"]),
            )
            for r in data.get("rules", [])
        )
        default = FOREX_RULE
        if data.get("default"):
            d = data["default"]
            default = PipRule(
                "default", (), float(d["pip_size"]), float(d["pip_value_per_lot"])
            )
        return cls(rules=rules, default=default)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "PipTable":
        with open(path, encoding="utf-8") as f:
            table = cls.from_dict(json.load(f))
        logger.info(f"Loaded pip table with {len(table.rules)} rules from {path}")
        return table


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RMultiple:
    value: float
    method: str  # METHOD_RISK or METHOD_EQUITY_PCT


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


@dataclass
class RiskMetricsCalculator:
    pip_table: PipTable = field(default_factory=PipTable)

    def pip_size(self, symbol: str | None) -> float:
        return self.pip_table.lookup(symbol).pip_size

    def pip_value(self, symbol: str | None, lots: float) -> float:
        return self.pip_table.lookup(symbol).pip_value_per_lot * (lots or 0.0)

    def r_multiple(
        self,
        symbol: str | None,
        lots: float,
        entry_price: float | None,
        sl_price: float | None,
        net_pnl: float,
        equity_at_entry: float | None = None,
    ) -> RMultiple | None:
        """P&L as a multiple of the amount risked.

        With a usable stop: ``net / (stop distance in pips * pip value)``.
        Without one, falls back to net P&L as a percentage of equity at
        entry. The fallback is not a true risk multiple; callers can tell
        the two apart by ``method``.
        """
        if sl_price is not None and entry_price is not None and sl_price != entry_price:
            stop_distance_pips = abs(entry_price - sl_price) / self.pip_size(symbol)
            risk_amount = stop_distance_pips * self.pip_value(symbol, lots)
            if risk_amount > 0:
                return RMultiple(round(net_pnl / risk_amount, 2), METHOD_RISK)
            return None

        if equity_at_entry and equity_at_entry > 0:
            return RMultiple(round(net_pnl / equity_at_entry * 100, 2), METHOD_EQUITY_PCT)
        return None

    def range_size_pips(self, symbol: str | None, sl: float | None, tp: float | None) -> float | None:
        if sl is None or tp is None:
            return None
        return abs(tp - sl) / self.pip_size(symbol)


def entry_percentile(entry: float | None, sl: float | None, tp: float | None) -> float | None:
    """Where the entry sits between stop and target, direction-agnostic."""
    if entry is None or sl is None or tp is None:
        return None
    range_size = abs(tp - sl)
    if range_size == 0:
        return 50.0
    return _clamp(abs(entry - sl) / range_size * 100)


def entry_efficiency(
    direction: str, entry: float | None, sl: float | None, tp: float | None
) -> float | None:
    """100 = entered right at the stop, 0 = entered at the target."""
    if entry is None or sl is None or tp is None:
        return None
    range_size = abs(tp - sl)
    if range_size == 0:
        return 50.0
    if direction == "buy":
        distance_from_sl = entry - sl
    else:
        distance_from_sl = sl - entry
    return _clamp(100 - distance_from_sl / range_size * 100)


def exit_efficiency(
    direction: str, exit_price: float | None, sl: float | None, tp: float | None
) -> float | None:
    """100 = exited at the target, 0 = exited at (or beyond) the stop."""
    if exit_price is None or sl is None or tp is None:
        return None
    range_size = abs(tp - sl)
    if range_size == 0:
        return 50.0
    if direction == "buy":
        distance_from_sl = exit_price - sl
    else:
        distance_from_sl = sl - exit_price
    return _clamp(distance_from_sl / range_size * 100)


def stop_location_quality(entry: float | None, sl: float | None, tp: float | None) -> float | None:
    """Planned reward:risk mapped to a score (1:1 -> 50, 2:1 -> 75, 3:1 and up -> 100)."""
    if entry is None or sl is None or tp is None:
        return None
    risk_distance = abs(entry - sl)
    if risk_distance == 0:
        return 0.0
    rr = abs(tp - entry) / risk_distance
    return min(100.0, 25 + rr * 25)


_default_calculator: RiskMetricsCalculator | None = None


def get_calculator() -> RiskMetricsCalculator:
    """Process-wide calculator, built from ``Settings.pip_table_path`` when set."""
    global _default_calculator
    if _default_calculator is None:
        from journal_analytics.config import settings

        if settings.pip_table_path:
            _default_calculator = RiskMetricsCalculator(
                PipTable.from_json_file(settings.pip_table_path)
            )
        else:
            _default_calculator = RiskMetricsCalculator()
    return _default_calculator
