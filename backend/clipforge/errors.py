"""Error taxonomy for clip generation and storage tiering."""
from typing import Optional


class ClipForgeError(Exception):
    """Base class for all clipforge errors."""
    pass


class InsufficientDuration(ClipForgeError):
    """Requested clip length exceeds the source video length."""

    def __init__(self, clip_duration: float, video_duration: float):
        self.clip_duration = clip_duration
        self.video_duration = video_duration
        super().__init__(
            f"Video is shorter than requested clip duration "
            f"({video_duration:.2f}s < {clip_duration:.2f}s)"
        )


class InvalidDuration(ClipForgeError):
    """Edit duration is zero or negative."""
    pass


class MissingParameter(ClipForgeError):
    """A required edit parameter was not supplied."""
    pass


class TranscodeFailure(ClipForgeError):
    """The external transcoder failed on the primary pass."""

    def __init__(self, message: str, diagnostic: Optional[str] = None):
        self.diagnostic = diagnostic
        super().__init__(message if not diagnostic else f"{message}: {diagnostic}")


class CaptionRenderFailure(ClipForgeError):
    """Caption burn-in failed; the clip is delivered without captions."""
    pass


class BatchCancelled(ClipForgeError):
    """The batch cancellation token fired."""
    pass


class ClipNotFound(ClipForgeError):
    """No storage tier holds a clip with the given identity."""
    pass


class StorageError(ClipForgeError):
    """Storage tier failure."""
    pass


class UploadFailure(StorageError):
    """A clip could not be pushed to the remote tier."""
    pass


class DownloadFailure(StorageError):
    """An object could not be fetched to local disk."""
    pass


class PresignFailure(StorageError):
    """The provider refused to sign a download URL."""
    pass


class DeleteFailure(StorageError):
    """An existing object or file could not be removed."""
    pass


class ObjectNotFound(StorageError):
    """Object is absent from the tier being queried."""
    pass
