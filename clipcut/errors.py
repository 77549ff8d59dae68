from __future__ import annotations


class ClipCutError(Exception):
    """Base error. `user_message` is safe to show in the UI."""

    user_message = "Something went wrong."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.user_message)


class UnreadableAsset(ClipCutError):
    user_message = "Cannot read this video. Try another file."


class InvalidRange(ClipCutError, ValueError):
    user_message = "Enter a valid start/end time."


class IndexOutOfRange(ClipCutError, IndexError):
    user_message = "Clip not found."


class EngineNotReady(ClipCutError):
    user_message = "Video engine is still loading."


class AlreadyProcessing(ClipCutError):
    user_message = "A cut is already running."


class ProcessingFailed(ClipCutError):
    user_message = "An error occurred while editing the video."


class SamplingInProgress(ClipCutError):
    user_message = "Thumbnails are still being generated."


class EngineError(RuntimeError):
    """Raised by the transcoding engine. Never shown to the user as-is."""
    pass


class FFmpegNotFound(EngineError):
    """Raised when ffmpeg/ffprobe cannot be located."""
    pass
