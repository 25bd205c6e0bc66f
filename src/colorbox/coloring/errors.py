from __future__ import annotations


class ColoringError(Exception):
    pass


class DimensionError(ColoringError, ValueError):
    def __init__(self, width: int, height: int) -> None:
        super().__init__(f"invalid buffer size {width}x{height}")
        self.width = width
        self.height = height


class ImageLoadError(ColoringError):
    def __init__(self, source: str, reason: str = "") -> None:
        message = f"could not decode line art from {source}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source = source
