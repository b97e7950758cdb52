"""taskgraph: dependency-aware queries and updates over markdown task checklists."""

__version__ = "1.0.0"
