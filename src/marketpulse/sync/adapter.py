"""Best-effort synchronization between the local stores and the remote backend."""

from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Optional

from ..config.logging import get_logger
from ..events import EventBus, NotificationCategory, NotificationEvent, SyncCompletedEvent
from ..portfolio.commands import Mutation
from ..portfolio.models import AlertCondition, Position, PriceAlert
from ..portfolio.store import AlertStore, PortfolioStore, WatchlistStore
from .backend import RemoteBackend

logger = get_logger(__name__)

LOCAL_USER_PREFIX = "bypass-"


def is_local_user(user_id: Optional[str]) -> bool:
    """Users with the bypass prefix never touch the remote backend."""
    return not user_id or user_id.startswith(LOCAL_USER_PREFIX)


class RemoteSyncAdapter:
    """
    Push-then-pull sync plus remote-backed mutations for one session.

    ``sync_with_remote`` is guarded so overlapping calls are no-ops, and
    remembers the last synced user so a repeated login does nothing unless
    forced. Mutations are applied locally first and rolled back if the
    backend write fails.
    """

    def __init__(
        self,
        portfolio: PortfolioStore,
        watchlist: WatchlistStore,
        alerts: AlertStore,
        backend: RemoteBackend,
        event_bus: EventBus,
    ):
        self.portfolio = portfolio
        self.watchlist = watchlist
        self.alerts = alerts
        self.backend = backend
        self.event_bus = event_bus
        self.user_id: Optional[str] = None
        self.last_synced_user: Optional[str] = None
        self._syncing = False
        self.logger = logger.bind(component="sync_adapter")

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def is_remote(self) -> bool:
        return not is_local_user(self.user_id)

    async def sync_with_remote(self, user_id: str, force: bool = False) -> bool:
        """
        Synchronize all three stores for ``user_id``.

        Returns:
            True if a sync ran and completed
        """
        if self._syncing:
            self.logger.debug("Sync already in progress, skipping", user_id=user_id)
            return False
        if not force and user_id == self.last_synced_user:
            self.logger.debug("User already synced, skipping", user_id=user_id)
            return False

        self.user_id = user_id
        if is_local_user(user_id):
            self.logger.info("Local-only user, remote sync disabled", user_id=user_id)
            self.last_synced_user = user_id
            return False

        self._syncing = True
        try:
            positions = await self._exchange_positions(user_id)
            watched = await self._exchange_watchlist(user_id)
            alerts = await self._exchange_alerts(user_id)

            # Local stores change only after every remote call has succeeded
            self._apply_positions(positions)
            self._apply_watchlist(watched)
            self._apply_alerts(alerts)

            self.last_synced_user = user_id
            self.logger.info(
                "Remote sync completed",
                user_id=user_id,
                positions=len(positions),
                watchlist=len(watched),
                alerts=len(alerts),
            )
            await self.event_bus.publish(
                SyncCompletedEvent(
                    user_id=user_id,
                    success=True,
                    positions=len(positions),
                    watchlist=len(watched),
                    alerts=len(alerts),
                )
            )
            return True

        except Exception as e:
            self.logger.error(
                "Remote sync failed", user_id=user_id, error=str(e), exc_info=True
            )
            await self.event_bus.publish(
                SyncCompletedEvent(user_id=user_id, success=False, error_message=str(e))
            )
            return False

        finally:
            self._syncing = False

    async def _exchange_positions(self, user_id: str) -> List[Position]:
        remote = await self.backend.fetch_positions(user_id)
        remote_symbols = {p.symbol for p in remote}
        for position in self.portfolio.positions:
            if position.symbol not in remote_symbols:
                await self.backend.insert_position(user_id, position)
                remote_symbols.add(position.symbol)
        return await self.backend.fetch_positions(user_id)

    async def _exchange_watchlist(self, user_id: str) -> List[str]:
        remote = set(await self.backend.fetch_watchlist(user_id))
        for symbol in self.watchlist.symbols:
            if symbol not in remote:
                await self.backend.insert_watch(user_id, symbol)
        return await self.backend.fetch_watchlist(user_id)

    async def _exchange_alerts(self, user_id: str) -> List[PriceAlert]:
        remote_active = {a.id: a.active for a in await self.backend.fetch_alerts(user_id)}
        for alert in self.alerts.alerts:
            if alert.id not in remote_active:
                await self.backend.insert_alert(user_id, alert)
            elif remote_active[alert.id] and not alert.active:
                # Fired locally while the remote write was failing
                await self.backend.set_alert_active(user_id, alert.id, False)
        return await self.backend.fetch_alerts(user_id)

    def _apply_positions(self, pulled: List[Position]) -> None:
        if not pulled:
            return
        # Prices are refreshed locally more often than they are saved remotely
        prices = {p.symbol: p.current_price for p in self.portfolio.positions}
        self.portfolio.replace_all(
            p.with_price(prices[p.symbol]) if prices.get(p.symbol, 0) > 0 else p
            for p in pulled
        )

    def _apply_watchlist(self, pulled: List[str]) -> None:
        if pulled:
            self.watchlist.replace_all(pulled)

    def _apply_alerts(self, pulled: List[PriceAlert]) -> None:
        if not pulled:
            return
        # A fired alert only re-arms through an explicit toggle
        fired = {a.id for a in self.alerts.alerts if not a.active}
        self.alerts.replace_all(
            replace(a, active=False) if a.id in fired else a for a in pulled
        )

    def sign_out(self) -> None:
        self.user_id = None
        self.last_synced_user = None

    async def _commit(
        self,
        mutation: Mutation,
        store: Any,
        remote_call: Callable[[str], Awaitable[Any]],
    ) -> bool:
        """
        Apply ``mutation`` locally, then write it to the backend.

        On a backend failure the local change is rolled back, the store's
        ``error`` is set and one system notification is published.
        """
        mutation.apply()
        if not self.is_remote:
            return True

        try:
            await remote_call(self.user_id)
            return True
        except Exception as e:
            mutation.rollback()
            store.error = f"Failed to {mutation.description}"
            self.logger.error(
                "Remote write failed, local change rolled back",
                mutation=mutation.description,
                error=str(e),
            )
            await self.event_bus.publish(
                NotificationEvent(
                    title="Sync Error",
                    message=f"Could not {mutation.description}. Your change was undone.",
                    category=NotificationCategory.SYSTEM,
                )
            )
            return False

    # Portfolio

    async def add_position(
        self,
        symbol: str,
        units: float,
        avg_cost: float,
        current_price: float = 0.0,
        name: str = "",
        sector: str = "",
    ) -> Optional[Position]:
        mutation = self.portfolio.prepare_add(
            symbol, units, avg_cost, current_price, name, sector
        )
        ok = await self._commit(
            mutation,
            self.portfolio,
            lambda uid: self.backend.save_position(uid, mutation.result),
        )
        return mutation.result if ok else None

    async def update_position(self, position_id: str, **changes: Any) -> Optional[Position]:
        mutation = self.portfolio.prepare_update(position_id, **changes)
        ok = await self._commit(
            mutation,
            self.portfolio,
            lambda uid: self.backend.save_position(uid, mutation.result),
        )
        return mutation.result if ok else None

    async def remove_position(self, position_id: str) -> bool:
        mutation = self.portfolio.prepare_remove(position_id)
        return await self._commit(
            mutation,
            self.portfolio,
            lambda uid: self.backend.delete_position(uid, mutation.previous.symbol),
        )

    # Watchlist

    async def add_watch(self, symbol: str) -> bool:
        mutation = self.watchlist.prepare_add(symbol)
        symbol = symbol.strip().upper()
        return await self._commit(
            mutation, self.watchlist, lambda uid: self.backend.insert_watch(uid, symbol)
        )

    async def remove_watch(self, symbol: str) -> bool:
        mutation = self.watchlist.prepare_remove(symbol)
        symbol = symbol.strip().upper()
        return await self._commit(
            mutation, self.watchlist, lambda uid: self.backend.delete_watch(uid, symbol)
        )

    # Alerts

    async def add_alert(
        self, symbol: str, target_price: float, condition: AlertCondition
    ) -> Optional[PriceAlert]:
        mutation = self.alerts.prepare_add(symbol, target_price, condition)
        ok = await self._commit(
            mutation,
            self.alerts,
            lambda uid: self.backend.insert_alert(uid, mutation.result),
        )
        return mutation.result if ok else None

    async def remove_alert(self, alert_id: str) -> bool:
        mutation = self.alerts.prepare_remove(alert_id)
        return await self._commit(
            mutation, self.alerts, lambda uid: self.backend.delete_alert(uid, alert_id)
        )

    async def record_fired(self, alerts: List[PriceAlert]) -> None:
        """Mirror fired alerts remotely; firing itself is never undone."""
        if not self.is_remote:
            return
        for alert in alerts:
            try:
                await self.backend.set_alert_active(self.user_id, alert.id, False)
            except Exception as e:
                self.logger.warning(
                    "Could not record fired alert remotely",
                    alert_id=alert.id,
                    error=str(e),
                )

    async def toggle_alert(self, alert_id: str) -> Optional[PriceAlert]:
        mutation = self.alerts.prepare_toggle(alert_id)
        ok = await self._commit(
            mutation,
            self.alerts,
            lambda uid: self.backend.set_alert_active(uid, alert_id, mutation.result.active),
        )
        return mutation.result if ok else None
