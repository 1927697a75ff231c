"""Per-trade feature extraction.

Features are a pure function of a Trade snapshot, so they are upserted on
``trade_id`` and can be recomputed at any time.
"""

import logging

from sqlmodel import Session, select

from journal_analytics.models.trade import Trade
from journal_analytics.models.trade_features import TradeFeatures
from journal_analytics.services import risk_metrics
from journal_analytics.services.risk_metrics import RiskMetricsCalculator, get_calculator
from journal_analytics.services.sessions import minutes_since_session_open
from journal_analytics.utils.time import to_utc, utcnow

logger = logging.getLogger(__name__)


def _first_set(*values: float | None) -> float | None:
    return next((v for v in values if v is not None), None)


def compute_features(trade: Trade, calculator: RiskMetricsCalculator | None = None) -> dict:
    """Feature values for one trade, keyed by TradeFeatures column name."""
    calculator = calculator or get_calculator()
    entry_time = to_utc(trade.entry_time)
    sl = _first_set(trade.sl_initial, trade.sl_final)
    tp = _first_set(trade.tp_initial, trade.tp_final)

    return {
        "trade_id": trade.id,
        "day_of_week": (entry_time.weekday() + 1) % 7,  # 0 = Sunday
        "time_since_session_open_mins": minutes_since_session_open(trade.session, entry_time),
        "range_size_pips": calculator.range_size_pips(trade.symbol, sl, tp),
        "entry_percentile": risk_metrics.entry_percentile(trade.entry_price, sl, tp),
        "entry_efficiency": risk_metrics.entry_efficiency(trade.direction, trade.entry_price, sl, tp),
        "exit_efficiency": risk_metrics.exit_efficiency(trade.direction, trade.exit_price, sl, tp),
        "stop_location_quality": risk_metrics.stop_location_quality(trade.entry_price, sl, tp),
    }


def upsert_trade_features(
    session: Session,
    trade: Trade,
    calculator: RiskMetricsCalculator | None = None,
) -> TradeFeatures:
    """Compute features for ``trade`` and insert or overwrite its row."""
    values = compute_features(trade, calculator)
    logger.info(f"Computed features for trade {trade.id}: {values}")

    features = session.exec(
        select(TradeFeatures).where(TradeFeatures.trade_id == trade.id)
    ).first()
    if features is None:
        features = TradeFeatures(**values)
    else:
        for key, value in values.items():
            setattr(features, key, value)
    features.computed_at = utcnow()

    session.add(features)
    session.commit()
    session.refresh(features)
    return features
