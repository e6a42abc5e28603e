"""Storage backends shipped with ``bank_sync``."""

from .base import ProgressCallback, StorageBackend, noop_progress
from .json_file import LocalJsonStorage
from .sql import SqlStorage
from .web_post import WebPostStorage

__all__ = [
    "ProgressCallback",
    "StorageBackend",
    "noop_progress",
    "LocalJsonStorage",
    "SqlStorage",
    "WebPostStorage",
]
