"""Ephemeral asset domain exports."""

from .exceptions import (
    AssetError,
    AssetNotFoundError,
    CapacityExceededError,
    InvalidAssetIdError,
    InvalidMediaTypeError,
    InvalidUploadError,
    MissingFileError,
    StorageFaultError,
    StorageInitError,
)
from .identity import is_valid_id, new_id
from .ingress import IngressGate, UploadReceipt
from .models import Asset
from .reaper import ExpiryReaper, ReaperState, SweepReport
from .resolver import Absent, AssetResolver, Present
from .store import BlobStore, OpenBlob

__all__ = [
    "Absent",
    "Asset",
    "AssetError",
    "AssetNotFoundError",
    "AssetResolver",
    "BlobStore",
    "CapacityExceededError",
    "ExpiryReaper",
    "IngressGate",
    "InvalidAssetIdError",
    "InvalidMediaTypeError",
    "InvalidUploadError",
    "MissingFileError",
    "OpenBlob",
    "Present",
    "ReaperState",
    "StorageFaultError",
    "StorageInitError",
    "SweepReport",
    "UploadReceipt",
    "is_valid_id",
    "new_id",
]
