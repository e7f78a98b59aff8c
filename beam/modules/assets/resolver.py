"""Maps an identifier from a URL to a present or absent asset."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .identity import is_valid_id
from .models import Asset, is_valid_extension
from .store import BlobStore


@dataclass(frozen=True, slots=True)
class Present:
    asset: Asset

    @property
    def size_bytes(self) -> int:
        return self.asset.size_bytes

    @property
    def extension(self) -> str:
        return self.asset.extension


@dataclass(frozen=True, slots=True)
class Absent:
    key: str


Resolution = Union[Present, Absent]


class AssetResolver:
    """Answers "is this asset still here?" straight from the store, uncached.

    ``key`` may be a bare id or the published ``<id><ext>`` file name. An
    unknown id, a malformed key and an expired asset all resolve to the same
    ``Absent`` result.
    """

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    def resolve(self, key: str) -> Resolution:
        asset_id, dot, suffix = key.partition(".")
        extension = f".{suffix}" if dot else None
        if not is_valid_id(asset_id) or (extension is not None and not is_valid_extension(extension)):
            return Absent(key)
        asset = self.store.stat(asset_id)
        if asset is None or (extension is not None and asset.extension != extension):
            return Absent(key)
        return Present(asset)
