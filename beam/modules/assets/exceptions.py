"""Asset domain specific exceptions.

Each error carries the HTTP status it maps to and a message that is safe to
show to the client. Internal details (paths, errno) go to the log only.
"""


class AssetError(Exception):
    """Base class for asset related domain errors."""

    status_code = 500
    default_message = "An unknown error occurred during upload."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidUploadError(AssetError):
    """Raised when the upload request is malformed."""

    status_code = 400
    default_message = "Malformed upload request."


class MissingFileError(InvalidUploadError):
    """Raised when the upload carries no video file."""

    default_message = "No video file provided"


class InvalidMediaTypeError(InvalidUploadError):
    """Raised when the declared media type is not a video type."""

    default_message = "Only video files can be uploaded."


class InvalidAssetIdError(AssetError):
    """Raised when an identifier fails the allow-list check."""

    status_code = 400
    default_message = "Invalid asset identifier."


class CapacityExceededError(AssetError):
    """Raised when an upload grows past the configured size ceiling."""

    status_code = 413

    def __init__(self, limit_bytes: int, message: str | None = None) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(message or f"File is too large. Maximum size is {_format_size(limit_bytes)}.")


class AssetNotFoundError(AssetError):
    """Raised when an asset is absent or expired."""

    status_code = 404
    default_message = "Video expired or not found."


class StorageFaultError(AssetError):
    """Raised when the backing filesystem fails."""

    status_code = 500
    default_message = "An unknown error occurred during upload."


class StorageInitError(RuntimeError):
    """Raised when the storage root cannot be prepared at startup."""


def _format_size(num_bytes: int) -> str:
    mib = num_bytes / (1024 * 1024)
    if mib >= 1 and mib == int(mib):
        return f"{int(mib)}MB"
    if mib >= 1:
        return f"{mib:.1f}MB"
    return f"{num_bytes} bytes"
