"""
Minimal build host: a project that runs XML build files through a task
dispatch table, with a handful of built-in tasks and macro support.
"""

from .project import BlockResult, BuildProject, TaskTable

__all__ = ["BlockResult", "BuildProject", "TaskTable"]
