"""Storage collaborators for the behavioral authentication engine."""

from .profile_repository import ProfileRepository

__all__ = [
    "ProfileRepository"
]
