"""API route modules."""

from . import auth, health, tasks

__all__ = ["health", "tasks", "auth"]
