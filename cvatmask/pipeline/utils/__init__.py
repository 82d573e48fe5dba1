"""Shared helpers for the mask pipeline.

Modules:
- io: mask file encode/decode and directory creation
- masks: per-instance mask persistence
"""

__all__ = [
    "io",
    "masks",
]
