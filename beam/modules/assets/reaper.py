"""Periodic removal of expired assets.

A single background loop scans the store every ``interval`` seconds and
deletes everything older than ``ttl`` seconds. There are no per-asset timers,
so memory stays flat and nothing needs rebuilding after a restart. An asset
can outlive its TTL by at most one interval.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .exceptions import AssetError
from .store import BlobStore

logger = logging.getLogger(__name__)


class ReaperState(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DELETING = "deleting"


@dataclass(slots=True)
class SweepReport:
    scanned: int = 0
    expired: int = 0
    deleted: int = 0
    failed: int = 0
    staging_purged: int = 0
    skipped: bool = False


class ExpiryReaper:
    def __init__(
        self,
        store: BlobStore,
        *,
        ttl: float,
        interval: float,
        sweep_on_startup: bool = False,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self.interval = interval
        self.sweep_on_startup = sweep_on_startup
        self._state = ReaperState.IDLE
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ReaperState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """Run one scan-and-delete cycle.

        A cycle requested while another one is in progress is skipped rather
        than queued.
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Sweep already in progress, skipping this cycle")
            return SweepReport(skipped=True)
        try:
            return self._sweep(now or datetime.now(timezone.utc))
        finally:
            self._state = ReaperState.IDLE
            self._lock.release()

    def _sweep(self, now: datetime) -> SweepReport:
        report = SweepReport()

        self._state = ReaperState.SCANNING
        expired = []
        for asset_id, age in self.store.list_all(now=now):
            report.scanned += 1
            if age > self.ttl:
                expired.append(asset_id)
        report.expired = len(expired)

        self._state = ReaperState.DELETING
        for asset_id in expired:
            try:
                self.store.delete(asset_id)
            except AssetError as exc:
                report.failed += 1
                logger.warning("[Cleanup] Failed to delete %s: %s", asset_id, exc)
                continue
            report.deleted += 1
            logger.info("[Cleanup] Deleted expired file: %s", asset_id)

        # Staging also holds uploads in progress; the threshold is at least one interval.
        for name in self.store.list_stale_staging(max(self.ttl, self.interval), now=now):
            if self.store.discard_staging(name):
                report.staging_purged += 1

        if report.expired or report.staging_purged:
            logger.info(
                "[Cleanup] Sweep finished: scanned=%d deleted=%d failed=%d staging_purged=%d",
                report.scanned,
                report.deleted,
                report.failed,
                report.staging_purged,
            )
        return report

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        if self.ttl <= self.interval:
            logger.warning(
                "Asset TTL (%ss) is not larger than the sweep interval (%ss); "
                "assets may be removed close to their creation",
                self.ttl,
                self.interval,
            )
        self._task = asyncio.create_task(self._run(), name="expiry-reaper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        logger.info("Expiry reaper started (ttl=%ss, interval=%ss)", self.ttl, self.interval)
        if self.sweep_on_startup:
            await self._run_cycle()
        try:
            while True:
                await asyncio.sleep(self.interval)
                await self._run_cycle()
        except asyncio.CancelledError:
            logger.debug("Expiry reaper cancelled")
            raise

    async def _run_cycle(self) -> None:
        try:
            await asyncio.to_thread(self.sweep)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("[Cleanup] Sweep failed: %s", exc)
