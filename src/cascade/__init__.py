"""
Cascade: a personal task manager with dependency analysis.

Features:
- Dependency graph with cycle prevention, execution planning and critical path
- Priority queue that picks the next task by priority and due date
- Stable sorting for task listings
- SQLite persistence and a `cascade` command line
"""

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    "__version__",
]
