from .capture import Frame, FrameSource

__all__ = ["Frame", "FrameSource"]
