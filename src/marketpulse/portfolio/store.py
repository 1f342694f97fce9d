"""
Local persisted stores for positions, watchlist and price alerts.

Each store is an explicitly constructed container around a key in a
``KeyValueStorage``. It rehydrates on construction and writes its full
contents back after every mutation. Mutations are synchronous; the
``prepare_*`` methods return a ``Mutation`` so callers that talk to the
remote backend can roll the local change back on failure.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from ..config.logging import get_logger
from ..exceptions import InvalidPositionError, NotFoundError
from .calculations import (
    SECTOR_ALLOCATION_LIMIT,
    STOCK_ALLOCATION_LIMIT,
    calculate_allocation,
    check_allocation_limits,
)
from .commands import Mutation
from .models import (
    AlertCondition,
    AllocationBreach,
    PortfolioSummary,
    Position,
    PriceAlert,
    new_id,
    normalize_symbol,
)
from .storage import KeyValueStorage

logger = get_logger(__name__)

PORTFOLIO_KEY = "portfolio-storage"
WATCHLIST_KEY = "stock-watchlist"
ALERTS_KEY = "price-alerts-storage"

T = TypeVar("T")


def _symbol(symbol: str) -> str:
    try:
        return normalize_symbol(symbol)
    except ValueError as e:
        raise InvalidPositionError(str(e), {"symbol": str(e)})


class _PersistedCollection(Generic[T]):
    """Ordered item list mirrored to one storage key."""

    storage_key = ""
    label = "item"

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self.error: Optional[str] = None
        self.logger = logger.bind(store=self.storage_key)
        self._items: List[T] = self._rehydrate()

    def _decode(self, data: Any) -> T:
        raise NotImplementedError

    def _encode(self, item: T) -> Any:
        raise NotImplementedError

    def _rehydrate(self) -> List[T]:
        raw = self.storage.get(self.storage_key, [])
        if not isinstance(raw, list):
            self.logger.warning("Ignoring malformed stored state")
            return []

        items = []
        for entry in raw:
            try:
                items.append(self._decode(entry))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning("Skipping unreadable stored entry", error=str(e))
        self.logger.debug("Store rehydrated", count=len(items))
        return items

    def _persist(self) -> None:
        try:
            self.storage.set(self.storage_key, [self._encode(i) for i in self._items])
        except (OSError, TypeError, ValueError) as e:
            self.error = f"Failed to save {self.label} locally"
            self.logger.error("Local write-through failed", error=str(e), exc_info=True)

    def _set_items(self, items: List[T]) -> None:
        self._items = items
        self._persist()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def clear_error(self) -> None:
        self.error = None

    def replace_all(self, items: Iterable[T]) -> None:
        """Replace the whole collection, e.g. with a pulled remote set."""
        self._set_items(list(items))


class PortfolioStore(_PersistedCollection[Position]):
    """User positions with derived P/L fields."""

    storage_key = PORTFOLIO_KEY
    label = "portfolio"

    def __init__(
        self,
        storage: KeyValueStorage,
        max_stock_allocation: float = STOCK_ALLOCATION_LIMIT,
        max_sector_allocation: float = SECTOR_ALLOCATION_LIMIT,
    ):
        self.limits = {"stock": max_stock_allocation, "sector": max_sector_allocation}
        super().__init__(storage)

    def _decode(self, data: Any) -> Position:
        return Position.from_dict(data)

    def _encode(self, item: Position) -> Any:
        return item.to_dict()

    @property
    def positions(self) -> List[Position]:
        return list(self._items)

    @property
    def symbols(self) -> List[str]:
        return list(dict.fromkeys(p.symbol for p in self._items))

    def get(self, position_id: str) -> Position:
        for position in self._items:
            if position.id == position_id:
                return position
        raise NotFoundError("Position", position_id)

    @staticmethod
    def _validate(units: float, avg_cost: float) -> None:
        errors = {}
        if units is None or units <= 0:
            errors["units"] = "Units must be greater than 0"
        if avg_cost is None or avg_cost <= 0:
            errors["avg_cost"] = "Average cost must be greater than 0"
        if errors:
            raise InvalidPositionError("Invalid position", errors)

    def _index_of(self, position_id: str) -> int:
        for index, position in enumerate(self._items):
            if position.id == position_id:
                return index
        raise NotFoundError("Position", position_id)

    def _swap(self, position_id: str, build: Callable[[Position], Position]) -> Optional[Position]:
        for index, position in enumerate(self._items):
            if position.id == position_id:
                updated = build(position)
                items = list(self._items)
                items[index] = updated
                self._set_items(items)
                return updated
        return None

    def prepare_add(
        self,
        symbol: str,
        units: float,
        avg_cost: float,
        current_price: float = 0.0,
        name: str = "",
        sector: str = "",
    ) -> Mutation[Position]:
        """
        Prepare adding a lot of ``symbol``.

        Remote rows are keyed by user and symbol, so a lot of a symbol that is
        already held is merged into that position: units are summed and the
        average cost becomes the unit-weighted mean of both lots.
        """
        symbol = _symbol(symbol)
        self._validate(units, avg_cost)
        units = float(units)
        avg_cost = float(avg_cost)
        current_price = float(current_price or 0.0)

        existing = next((p for p in self._items if p.symbol == symbol), None)
        if existing is not None:
            return self._prepare_merge(existing, units, avg_cost, current_price, name, sector)

        position = Position(
            id=new_id(symbol),
            symbol=symbol,
            units=units,
            avg_cost=avg_cost,
            current_price=current_price,
            name=name or symbol,
            sector=sector,
        )

        def apply() -> Position:
            self._set_items(self._items + [position])
            return position

        def rollback() -> None:
            self._set_items([p for p in self._items if p.id != position.id])

        return Mutation(f"add position {symbol}", None, apply, rollback)

    def _prepare_merge(
        self,
        existing: Position,
        units: float,
        avg_cost: float,
        current_price: float,
        name: str,
        sector: str,
    ) -> Mutation[Position]:
        total_units = existing.units + units
        changes: Dict[str, Any] = {
            "units": total_units,
            "avg_cost": (existing.units * existing.avg_cost + units * avg_cost) / total_units,
        }
        if current_price > 0:
            changes["current_price"] = current_price
        if name and existing.name == existing.symbol:
            changes["name"] = name
        if sector and not existing.sector:
            changes["sector"] = sector

        def apply() -> Position:
            return self._swap(existing.id, lambda p: p.with_changes(**changes))

        def rollback() -> None:
            self._swap(existing.id, lambda p: existing.with_price(p.current_price))

        return Mutation(f"add to position {existing.symbol}", existing, apply, rollback)

    def prepare_update(self, position_id: str, **changes: Any) -> Mutation[Position]:
        previous = self.get(position_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        unknown = set(changes) - {"units", "avg_cost", "current_price", "name", "sector"}
        if unknown:
            raise InvalidPositionError(
                "Unknown position fields", {k: "Not editable" for k in sorted(unknown)}
            )
        self._validate(
            changes.get("units", previous.units), changes.get("avg_cost", previous.avg_cost)
        )

        def apply() -> Position:
            return self._swap(position_id, lambda p: p.with_changes(**changes))

        def rollback() -> None:
            # Keep any price refresh that landed while the change was in flight
            self._swap(
                position_id,
                lambda p: previous.with_price(p.current_price),
            )

        return Mutation(f"update position {position_id}", previous, apply, rollback)

    def prepare_remove(self, position_id: str) -> Mutation[Position]:
        index = self._index_of(position_id)
        previous = self._items[index]

        def apply() -> Position:
            self._set_items([p for p in self._items if p.id != position_id])
            return previous

        def rollback() -> None:
            items = list(self._items)
            items.insert(min(index, len(items)), previous)
            self._set_items(items)

        return Mutation(f"remove position {position_id}", previous, apply, rollback)

    def add(
        self,
        symbol: str,
        units: float,
        avg_cost: float,
        current_price: float = 0.0,
        name: str = "",
        sector: str = "",
    ) -> Position:
        """
        Add a new position.

        Raises:
            InvalidPositionError: If symbol is empty or units/avg_cost <= 0
        """
        return self.prepare_add(symbol, units, avg_cost, current_price, name, sector).apply()

    def update(self, position_id: str, **changes: Any) -> Position:
        """
        Edit units, avg_cost, current_price, name or sector of a position.

        Raises:
            NotFoundError: If no position has ``position_id``
            InvalidPositionError: If the edit would make units/avg_cost <= 0
        """
        return self.prepare_update(position_id, **changes).apply()

    def remove(self, position_id: str) -> Position:
        return self.prepare_remove(position_id).apply()

    def update_price(self, symbol: str, price: float) -> int:
        """
        Re-price every position holding ``symbol``.

        A non-positive price is the unavailable sentinel and is ignored so
        stale prices are kept instead of zeroing market value.

        Returns:
            Number of positions whose price changed
        """
        if price is None or price <= 0:
            return 0

        symbol = symbol.strip().upper()
        updated = 0
        items = []
        for position in self._items:
            if position.symbol == symbol and position.current_price != price:
                position = position.with_price(price)
                updated += 1
            items.append(position)

        if updated:
            self._set_items(items)
        return updated

    def summary(self) -> PortfolioSummary:
        total_value = sum(p.market_value for p in self._items)
        total_cost = sum(p.purchase_value for p in self._items)
        total_pl = total_value - total_cost
        total_pl_percent = total_pl / total_cost * 100 if total_cost > 0 else 0.0
        return PortfolioSummary(
            total_value=total_value,
            total_cost=total_cost,
            total_profit_loss=total_pl,
            total_profit_loss_percent=total_pl_percent,
            positions=self.positions,
        )

    def allocation_breaches(self) -> List[AllocationBreach]:
        """
        Check every priced position and sector against its allocation limit.

        Positions with no price yet are left out so an unavailable quote
        never shows up as a zero allocation.
        """
        priced = [p for p in self._items if p.current_price > 0]
        total_value = sum(p.market_value for p in priced)
        if total_value <= 0:
            return []

        breaches = []
        by_symbol: Dict[str, float] = defaultdict(float)
        by_sector: Dict[str, float] = defaultdict(float)
        for position in priced:
            by_symbol[position.symbol] += position.market_value
            by_sector[position.sector or "Unknown"] += position.market_value

        for symbol, value in by_symbol.items():
            allocation = calculate_allocation(value, total_value)
            valid, limit = check_allocation_limits(allocation, "stock", self.limits)
            if not valid:
                breaches.append(
                    AllocationBreach("stock", symbol, allocation, limit, symbol=symbol)
                )

        for sector, value in by_sector.items():
            allocation = calculate_allocation(value, total_value)
            valid, limit = check_allocation_limits(allocation, "sector", self.limits)
            if not valid:
                breaches.append(AllocationBreach("sector", sector, allocation, limit))

        return breaches


class WatchlistStore(_PersistedCollection[str]):
    """Unique watched symbols in insertion order."""

    storage_key = WATCHLIST_KEY
    label = "watchlist"

    def _decode(self, data: Any) -> str:
        return normalize_symbol(data)

    def _encode(self, item: str) -> Any:
        return item

    def _rehydrate(self) -> List[str]:
        return list(dict.fromkeys(super()._rehydrate()))

    @property
    def symbols(self) -> List[str]:
        return list(self._items)

    def contains(self, symbol: str) -> bool:
        return symbol.strip().upper() in self._items

    def replace_all(self, items: Iterable[str]) -> None:
        super().replace_all(dict.fromkeys(normalize_symbol(s) for s in items))

    def prepare_add(self, symbol: str) -> Mutation[bool]:
        symbol = _symbol(symbol)

        def apply() -> bool:
            if symbol in self._items:
                return False
            self._set_items(self._items + [symbol])
            return True

        def rollback() -> None:
            if symbol in self._items:
                self._set_items([s for s in self._items if s != symbol])

        return Mutation(f"watch {symbol}", None, apply, rollback)

    def prepare_remove(self, symbol: str) -> Mutation[bool]:
        symbol = _symbol(symbol)
        index = self._items.index(symbol) if symbol in self._items else None

        def apply() -> bool:
            if symbol not in self._items:
                return False
            self._set_items([s for s in self._items if s != symbol])
            return True

        def rollback() -> None:
            if index is not None and symbol not in self._items:
                items = list(self._items)
                items.insert(min(index, len(items)), symbol)
                self._set_items(items)

        return Mutation(f"unwatch {symbol}", index, apply, rollback)

    def add(self, symbol: str) -> bool:
        """Add a symbol; returns False if it was already watched."""
        return self.prepare_add(symbol).apply()

    def remove(self, symbol: str) -> bool:
        return self.prepare_remove(symbol).apply()


class AlertStore(_PersistedCollection[PriceAlert]):
    """Fire-once price alerts."""

    storage_key = ALERTS_KEY
    label = "alerts"

    def _decode(self, data: Any) -> PriceAlert:
        return PriceAlert.from_dict(data)

    def _encode(self, item: PriceAlert) -> Any:
        return item.to_dict()

    @property
    def alerts(self) -> List[PriceAlert]:
        return list(self._items)

    @property
    def symbols(self) -> List[str]:
        return list(dict.fromkeys(a.symbol for a in self._items if a.active))

    def get(self, alert_id: str) -> PriceAlert:
        for alert in self._items:
            if alert.id == alert_id:
                return alert
        raise NotFoundError("PriceAlert", alert_id)

    def active_for(self, symbol: str) -> List[PriceAlert]:
        symbol = symbol.strip().upper()
        return [a for a in self._items if a.active and a.symbol == symbol]

    def _set_active(self, alert_id: str, active: bool) -> PriceAlert:
        items = list(self._items)
        for index, alert in enumerate(items):
            if alert.id == alert_id:
                items[index] = PriceAlert(
                    id=alert.id,
                    symbol=alert.symbol,
                    target_price=alert.target_price,
                    condition=alert.condition,
                    active=active,
                    created_at=alert.created_at,
                )
                self._set_items(items)
                return items[index]
        raise NotFoundError("PriceAlert", alert_id)

    def prepare_add(
        self, symbol: str, target_price: float, condition: AlertCondition
    ) -> Mutation[PriceAlert]:
        symbol = _symbol(symbol)
        if target_price is None or target_price <= 0:
            raise InvalidPositionError(
                "Invalid alert", {"target_price": "Target price must be greater than 0"}
            )
        alert = PriceAlert(
            id=new_id(symbol),
            symbol=symbol,
            target_price=float(target_price),
            condition=AlertCondition(condition),
        )

        def apply() -> PriceAlert:
            self._set_items(self._items + [alert])
            return alert

        def rollback() -> None:
            self._set_items([a for a in self._items if a.id != alert.id])

        return Mutation(f"add alert {symbol}", None, apply, rollback)

    def prepare_remove(self, alert_id: str) -> Mutation[PriceAlert]:
        previous = self.get(alert_id)
        index = self._items.index(previous)

        def apply() -> PriceAlert:
            self._set_items([a for a in self._items if a.id != alert_id])
            return previous

        def rollback() -> None:
            items = list(self._items)
            items.insert(min(index, len(items)), previous)
            self._set_items(items)

        return Mutation(f"remove alert {alert_id}", previous, apply, rollback)

    def add(
        self, symbol: str, target_price: float, condition: AlertCondition
    ) -> PriceAlert:
        return self.prepare_add(symbol, target_price, condition).apply()

    def remove(self, alert_id: str) -> PriceAlert:
        return self.prepare_remove(alert_id).apply()

    def prepare_toggle(self, alert_id: str) -> Mutation[PriceAlert]:
        previous = self.get(alert_id)

        def apply() -> PriceAlert:
            return self._set_active(alert_id, not previous.active)

        def rollback() -> None:
            if any(a.id == alert_id for a in self._items):
                self._set_active(alert_id, previous.active)

        return Mutation(f"toggle alert {alert_id}", previous, apply, rollback)

    def toggle(self, alert_id: str) -> PriceAlert:
        """Flip an alert between active and inactive (manual re-arm)."""
        return self.prepare_toggle(alert_id).apply()

    def deactivate(self, alert_id: str) -> bool:
        """
        Mark an alert as fired.

        Returns:
            True only if the alert was active before this call
        """
        if not self.get(alert_id).active:
            return False
        self._set_active(alert_id, False)
        return True
