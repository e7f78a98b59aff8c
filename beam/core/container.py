"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass

from beam.core.config import Settings
from beam.modules.assets import AssetResolver, BlobStore, ExpiryReaper, IngressGate


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    store: BlobStore
    reaper: ExpiryReaper
    gate: IngressGate
    resolver: AssetResolver

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApplicationContainer":
        """Build the service graph. Fails fast if the upload directory is unusable."""
        storage = settings.storage
        store = BlobStore(
            storage.upload_dir,
            max_bytes=storage.max_upload_bytes,
            default_extension=storage.default_extension,
            chunk_size=storage.chunk_size,
        )
        reaper = ExpiryReaper(
            store,
            ttl=settings.expiry.ttl_seconds,
            interval=settings.expiry.sweep_interval_seconds,
            sweep_on_startup=settings.expiry.sweep_on_startup,
        )
        gate = IngressGate(store, allowed_type_prefixes=storage.allowed_type_prefixes)
        return cls(
            settings=settings,
            store=store,
            reaper=reaper,
            gate=gate,
            resolver=AssetResolver(store),
        )


__all__ = ["ApplicationContainer"]
