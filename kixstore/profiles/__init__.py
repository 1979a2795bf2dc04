"""Profiles: user documents, saved address, admin role."""

from kixstore.profiles._service import Role, Profile, ProfileService

__all__ = ("Role", "Profile", "ProfileService")
