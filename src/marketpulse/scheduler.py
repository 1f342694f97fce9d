"""Fixed-interval polling built on APScheduler's asyncio scheduler."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional
from uuid import uuid4

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config.logging import get_logger

logger = get_logger(__name__)

PollFunction = Callable[[], Awaitable[Any]]


def create_scheduler() -> AsyncIOScheduler:
    """
    Create and configure an AsyncIOScheduler for polling jobs.

    Returns:
        Configured AsyncIOScheduler instance
    """
    job_defaults = {
        "coalesce": True,  # Collapse missed ticks into one run
        "max_instances": 3,  # Overlapping polls are allowed to finish
        "misfire_grace_time": 30,
    }

    scheduler = AsyncIOScheduler(job_defaults=job_defaults, timezone="UTC")
    scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
    scheduler.add_listener(job_skipped_listener, EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES)
    return scheduler


def job_error_listener(event):
    """Log job execution errors."""
    logger.error("Poll job crashed", job_id=event.job_id, error=str(event.exception))


def job_skipped_listener(event):
    logger.warning("Poll job skipped", job_id=event.job_id)


class Subscription:
    """Handle for one recurring poll; ``unsubscribe`` stops future runs only."""

    def __init__(
        self,
        scheduler: "PollingScheduler",
        name: str,
        job_id: str,
        interval_seconds: float,
        key: Optional[Hashable] = None,
    ):
        self._scheduler = scheduler
        self.name = name
        self.job_id = job_id
        self.interval_seconds = interval_seconds
        self.key = key
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._scheduler._remove(self)

    def __repr__(self) -> str:
        return (
            f"<Subscription(name='{self.name}', key={self.key!r}, "
            f"interval={self.interval_seconds}, active={self.active})>"
        )


class PollingScheduler:
    """
    Owns the recurring poll timers of a session.

    Every subscription runs once immediately and then every
    ``interval_seconds``. A failed run is logged and the next tick is the
    retry; there is no backoff.
    """

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self._scheduler = scheduler or create_scheduler()
        self._subscriptions: Dict[str, Subscription] = {}
        self.logger = logger.bind(component="polling_scheduler")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def subscriptions(self) -> Dict[str, Subscription]:
        return dict(self._subscriptions)

    def start(self) -> None:
        """Start the scheduler; must be called from inside the event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            self.logger.info("Polling scheduler started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            self.logger.info("Polling scheduler shut down")
        for subscription in list(self._subscriptions.values()):
            subscription.active = False
        self._subscriptions.clear()

    def subscribe(
        self,
        name: str,
        func: PollFunction,
        interval_seconds: float,
        key: Optional[Hashable] = None,
    ) -> Subscription:
        """
        Poll ``func`` every ``interval_seconds``, starting now.

        Subscribing an existing name with the same key returns the live
        subscription; with a different key the old timer is replaced.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        existing = self._subscriptions.get(name)
        if existing is not None:
            if existing.active and existing.key == key:
                return existing
            existing.unsubscribe()

        job_id = f"{name}:{uuid4().hex[:8]}"
        subscription = Subscription(self, name, job_id, interval_seconds, key)
        self._scheduler.add_job(
            self._run,
            trigger="interval",
            seconds=interval_seconds,
            args=[name, func],
            id=job_id,
            name=name,
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
        )
        self._subscriptions[name] = subscription

        self.logger.info(
            "Poll subscribed", name=name, key=key, interval_seconds=interval_seconds
        )
        return subscription

    def unsubscribe_all(self) -> None:
        for subscription in list(self._subscriptions.values()):
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._scheduler.remove_job(subscription.job_id)
        except JobLookupError:
            pass  # Already gone
        if self._subscriptions.get(subscription.name) is subscription:
            del self._subscriptions[subscription.name]
        self.logger.info("Poll unsubscribed", name=subscription.name, key=subscription.key)

    async def _run(self, name: str, func: PollFunction) -> None:
        try:
            await func()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning("Poll run failed", name=name, error=str(e), exc_info=True)
