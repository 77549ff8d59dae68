"""ClipCut: mark clips on a video and join them losslessly with ffmpeg."""

__version__ = "0.1.0"
