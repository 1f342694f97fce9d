"""Data models for positions, watchlist entries and price alerts."""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .calculations import calculate_profit_loss


def normalize_symbol(symbol: str) -> str:
    if not symbol or not isinstance(symbol, str) or not symbol.strip():
        raise ValueError("Symbol must be a non-empty string")
    return symbol.strip().upper()


def new_id(symbol: str) -> str:
    return f"{symbol}-{uuid4().hex[:12]}"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Position:
    """
    A held quantity of a symbol with its cost basis.

    Derived fields are computed in ``__post_init__`` and the class is frozen,
    so every change goes through ``replace`` and recomputes all four together.
    """

    id: str
    symbol: str
    units: float
    avg_cost: float
    current_price: float = 0.0
    name: str = ""
    sector: str = ""
    purchase_value: float = field(init=False, default=0.0)
    market_value: float = field(init=False, default=0.0)
    profit_loss: float = field(init=False, default=0.0)
    profit_loss_percent: float = field(init=False, default=0.0)

    def __post_init__(self):
        amount, percent = calculate_profit_loss(
            self.current_price, self.avg_cost, self.units
        )
        object.__setattr__(self, "purchase_value", self.units * self.avg_cost)
        object.__setattr__(self, "market_value", self.units * self.current_price)
        object.__setattr__(self, "profit_loss", amount)
        object.__setattr__(self, "profit_loss_percent", percent)

    def with_changes(self, **changes: Any) -> "Position":
        return replace(self, **changes)

    def with_price(self, price: float) -> "Position":
        return replace(self, current_price=price)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable inputs only; derived fields are recomputed on load."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "units": self.units,
            "avg_cost": self.avg_cost,
            "current_price": self.current_price,
            "name": self.name,
            "sector": self.sector,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(
            id=str(data["id"]),
            symbol=normalize_symbol(data["symbol"]),
            units=float(data["units"]),
            avg_cost=float(data["avg_cost"]),
            current_price=float(data.get("current_price") or 0.0),
            name=data.get("name") or "",
            sector=data.get("sector") or "",
        )


class AlertCondition(Enum):
    ABOVE = "above"
    BELOW = "below"


@dataclass(frozen=True)
class PriceAlert:
    """One-shot price threshold trigger."""

    id: str
    symbol: str
    target_price: float
    condition: AlertCondition
    active: bool = True
    created_at: int = field(default_factory=now_ms)

    def is_triggered_by(self, price: float) -> bool:
        if self.condition is AlertCondition.ABOVE:
            return price >= self.target_price
        return price <= self.target_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "target_price": self.target_price,
            "condition": self.condition.value,
            "active": self.active,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceAlert":
        return cls(
            id=str(data["id"]),
            symbol=normalize_symbol(data["symbol"]),
            target_price=float(data["target_price"]),
            condition=AlertCondition(data["condition"]),
            active=bool(data.get("active", True)),
            created_at=int(data.get("created_at") or now_ms()),
        )


@dataclass
class PortfolioSummary:
    """Totals across all positions."""

    total_value: float
    total_cost: float
    total_profit_loss: float
    total_profit_loss_percent: float
    positions: List[Position]


@dataclass
class AllocationBreach:
    """A position or sector holding more than its allocation limit."""

    kind: str  # "stock" or "sector"
    name: str
    allocation: float
    limit: float
    symbol: Optional[str] = None
