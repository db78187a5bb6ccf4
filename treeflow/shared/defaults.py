"""
Centralized default values for executor and codec parameters.

This is the SINGLE SOURCE OF TRUTH for executor defaults.
All modules should import from here to ensure consistency.
"""

# Worker pool size; None means "use available hardware parallelism"
DEFAULT_MAX_WORKERS = None

# Run waves on the worker pool (False = strict sequential order)
DEFAULT_PARALLEL = True

# Write execution plan and progress lines to the output stream
DEFAULT_VERBOSE = False

# Names given to tasks decoded from a level sequence: task_1, task_2, ...
DEFAULT_TASK_NAME_PREFIX = "task_"
