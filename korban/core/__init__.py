"""Core module for the korban application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
