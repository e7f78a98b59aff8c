"""
Tests for the expiry reaper.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from beam.modules.assets import (
    BlobStore,
    ExpiryReaper,
    ReaperState,
    StorageFaultError,
    new_id,
)
from beam.modules.assets.store import STAGING_DIR_NAME
from helpers import BytesSource, backdate, published_files

TTL = 3600
INTERVAL = 900


@pytest.fixture
def reaper(store: BlobStore) -> ExpiryReaper:
    return ExpiryReaper(store, ttl=TTL, interval=INTERVAL)


async def _put(store: BlobStore, age: float = 0) -> str:
    asset = await store.put(new_id(), ".mp4", BytesSource(b"frame" * 10))
    if age:
        backdate(store.path_for(asset), age)
    return asset.id


class TestSweep:
    """Tests for a single sweep cycle."""

    @pytest.mark.asyncio
    async def test_deletes_only_expired_assets(self, store: BlobStore, reaper: ExpiryReaper) -> None:
        expired = await _put(store, age=TTL + 60)
        fresh = await _put(store, age=TTL - 60)

        report = reaper.sweep()

        assert report.scanned == 2
        assert report.expired == 1
        assert report.deleted == 1
        assert report.failed == 0
        assert not store.exists(expired)
        assert store.exists(fresh)
        assert reaper.state is ReaperState.IDLE

    @pytest.mark.asyncio
    async def test_present_just_before_ttl_absent_after(self, store: BlobStore, reaper: ExpiryReaper) -> None:
        asset_id = await _put(store)
        created = store.stat(asset_id).created_at

        reaper.sweep(now=created + timedelta(seconds=TTL - 1))
        assert store.exists(asset_id)

        reaper.sweep(now=created + timedelta(seconds=TTL + 1))
        assert not store.exists(asset_id)

    @pytest.mark.asyncio
    async def test_zero_ttl_clears_everything(self, store: BlobStore, upload_dir: Path) -> None:
        for _ in range(3):
            await _put(store)
        reaper = ExpiryReaper(store, ttl=0, interval=INTERVAL)

        report = reaper.sweep(now=datetime.now(timezone.utc) + timedelta(seconds=5))

        assert report.deleted == 3
        assert published_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_failed_delete_does_not_abort_sweep(
        self, store: BlobStore, reaper: ExpiryReaper, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        stuck = await _put(store, age=TTL * 2)
        others = [await _put(store, age=TTL * 2) for _ in range(3)]
        original_delete = store.delete

        def flaky_delete(asset_id: str) -> None:
            if asset_id == stuck:
                raise StorageFaultError()
            original_delete(asset_id)

        monkeypatch.setattr(store, "delete", flaky_delete)

        report = reaper.sweep()

        assert report.failed == 1
        assert report.deleted == 3
        assert store.exists(stuck)
        assert not any(store.exists(asset_id) for asset_id in others)

    def test_empty_store_is_a_noop(self, reaper: ExpiryReaper) -> None:
        report = reaper.sweep()
        assert (report.scanned, report.deleted, report.failed) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_overlapping_sweep_is_skipped(self, store: BlobStore, reaper: ExpiryReaper) -> None:
        asset_id = await _put(store, age=TTL * 2)

        reaper._lock.acquire()
        try:
            report = reaper.sweep()
        finally:
            reaper._lock.release()

        assert report.skipped is True
        assert store.exists(asset_id)

    def test_purges_abandoned_staging_files(self, store: BlobStore, reaper: ExpiryReaper, upload_dir: Path) -> None:
        abandoned = upload_dir / STAGING_DIR_NAME / "crashed.part"
        abandoned.write_bytes(b"partial")
        backdate(abandoned, TTL * 2)

        report = reaper.sweep()

        assert report.staging_purged == 1
        assert not abandoned.exists()

    def test_unremovable_staging_entry_is_not_counted(
        self, store: BlobStore, reaper: ExpiryReaper, upload_dir: Path
    ) -> None:
        stuck = upload_dir / STAGING_DIR_NAME / "stuck.part"
        stuck.mkdir()
        backdate(stuck, TTL * 2)
        abandoned = upload_dir / STAGING_DIR_NAME / "crashed.part"
        abandoned.write_bytes(b"partial")
        backdate(abandoned, TTL * 2)

        report = reaper.sweep()

        assert report.staging_purged == 1
        assert stuck.is_dir()
        assert not abandoned.exists()


class TestBackgroundLoop:
    """Tests for the periodic task."""

    @pytest.mark.asyncio
    async def test_loop_reclaims_expired_assets(self, store: BlobStore) -> None:
        asset_id = await _put(store, age=120)
        reaper = ExpiryReaper(store, ttl=60, interval=0.05)

        reaper.start()
        assert reaper.running
        try:
            for _ in range(100):
                if not store.exists(asset_id):
                    break
                await asyncio.sleep(0.05)
        finally:
            await reaper.stop()

        assert not store.exists(asset_id)
        assert not reaper.running

    @pytest.mark.asyncio
    async def test_startup_sweep_runs_immediately(self, store: BlobStore) -> None:
        asset_id = await _put(store, age=TTL * 2)
        reaper = ExpiryReaper(store, ttl=TTL, interval=3600, sweep_on_startup=True)

        reaper.start()
        try:
            for _ in range(100):
                if not store.exists(asset_id):
                    break
                await asyncio.sleep(0.02)
        finally:
            await reaper.stop()

        assert not store.exists(asset_id)

    @pytest.mark.asyncio
    async def test_cycle_errors_do_not_stop_the_loop(
        self, store: BlobStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        reaper = ExpiryReaper(store, ttl=60, interval=0.02)
        calls = []

        def broken_sweep(now=None):
            calls.append(now)
            raise OSError("disk on fire")

        monkeypatch.setattr(reaper, "sweep", broken_sweep)

        reaper.start()
        try:
            for _ in range(100):
                if len(calls) >= 3:
                    break
                await asyncio.sleep(0.02)
        finally:
            await reaper.stop()

        assert len(calls) >= 3

    @pytest.mark.asyncio
    async def test_stop_without_start_is_safe(self, reaper: ExpiryReaper) -> None:
        await reaper.stop()
        assert not reaper.running
