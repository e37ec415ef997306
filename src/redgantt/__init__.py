"""Redmine WBS scheduling with critical path analysis."""

__version__ = "0.1.0"
