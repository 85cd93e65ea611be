"""Utility helpers for Family VHS.

Submodules:
- aws: the S3 wrapper shared by catalog, metadata and playback
"""

__all__: list[str] = []
