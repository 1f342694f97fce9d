"""SQLAlchemy ORM models for the remote backend."""

import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    UniqueConstraint,
)

from .database import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RemotePosition(Base):
    """One position row per user and symbol."""

    __tablename__ = "positions"
    __table_args__ = (UniqueConstraint("user_id", "symbol", name="uq_position_user_symbol"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    symbol = Column(String, nullable=False)
    position_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    units = Column(Float, nullable=False)
    avg_cost = Column(Float, nullable=False)
    current_price = Column(Float, default=0.0, nullable=False)
    sector = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<RemotePosition(user_id='{self.user_id}', symbol='{self.symbol}', units={self.units})>"


class RemoteWatchlistEntry(Base):
    """Watched symbol per user; ``id`` order is insertion order."""

    __tablename__ = "watchlist_entries"
    __table_args__ = (UniqueConstraint("user_id", "symbol", name="uq_watchlist_user_symbol"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    symbol = Column(String, nullable=False)
    added_at = Column(DateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<RemoteWatchlistEntry(user_id='{self.user_id}', symbol='{self.symbol}')>"


class RemotePriceAlert(Base):
    """Price alert per user, keyed by the client-generated alert id."""

    __tablename__ = "price_alerts"
    __table_args__ = (UniqueConstraint("user_id", "alert_id", name="uq_alert_user_alert"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    alert_id = Column(String, nullable=False)
    symbol = Column(String, nullable=False, index=True)
    target_price = Column(Float, nullable=False)
    condition = Column(String, nullable=False)  # "above" or "below"
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(BigInteger, nullable=False)  # unix ms

    def __repr__(self):
        return f"<RemotePriceAlert(alert_id='{self.alert_id}', symbol='{self.symbol}', active={self.active})>"
