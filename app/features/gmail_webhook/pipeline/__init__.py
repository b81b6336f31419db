"""
Pipeline subpackage: history normalization and the per-message pipeline.
"""

from .message_pipeline import MessagePipeline
from .normalizer import normalize_history

__all__ = ["MessagePipeline", "normalize_history"]
