from .base import JobSource
from .mock import MockSource

__all__ = ["JobSource", "MockSource"]
