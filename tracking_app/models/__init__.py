"""
Database models for the tracking store.

Links are never physically deleted; visits keep pointing at deactivated
links so historical analytics stay intact.
"""

from .link import Link
from .visit import Visit

__all__ = ["Link", "Visit"]
