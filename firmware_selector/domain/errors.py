"""
Exceptions raised while decoding package indexes.
"""
from __future__ import annotations

from typing import Optional


class FormatError(ValueError):
    """
    A package index could not be decoded.

    ``reason`` is a short machine-friendly label ("envelope", "magic",
    "schema", "block bounds", "no payload block", "out of bounds",
    "tag type"); ``detail`` carries the human-readable context.
    """

    def __init__(self, reason: str, detail: Optional[str] = None):
        self.reason = reason
        self.detail = detail
        message = f"{reason}: {detail}" if detail else reason
        super().__init__(message)


class UnsupportedCompressionError(FormatError):
    """The ADBc envelope declares a compression algorithm we cannot inflate."""

    def __init__(self, algorithm: int):
        self.algorithm = algorithm
        super().__init__("envelope", f"unsupported compression algorithm {algorithm}")
