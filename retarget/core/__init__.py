"""
Core consensus exports.
"""

from . import chain, difficulty, header, retarget

__all__ = [
    "difficulty",
    "header",
    "retarget",
    "chain",
]
