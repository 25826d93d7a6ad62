"""
Core module for configuration, logging and the adaptive testing engine.
"""
from .config import settings

__all__ = ["settings"]
