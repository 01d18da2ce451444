"""
Context cache adapters.
"""

from skald.cache.base import ContextCache, NullContextCache
from skald.cache.fingerprint import CacheCreator, FingerprintCache, fingerprint, static_content

__all__ = [
    "CacheCreator",
    "ContextCache",
    "FingerprintCache",
    "NullContextCache",
    "fingerprint",
    "static_content",
]
