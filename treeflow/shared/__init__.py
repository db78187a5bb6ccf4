"""
Shared defaults for the task graph executor.
"""
from .defaults import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_PARALLEL,
    DEFAULT_VERBOSE,
    DEFAULT_TASK_NAME_PREFIX,
)

__all__ = [
    'DEFAULT_MAX_WORKERS',
    'DEFAULT_PARALLEL',
    'DEFAULT_VERBOSE',
    'DEFAULT_TASK_NAME_PREFIX',
]
