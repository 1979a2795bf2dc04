"""
User profiles in the `users` collection.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from kixstore._logging import get_logger
from kixstore.errors import PermissionDeniedError, TransientIOError
from kixstore.storage import USERS, DocumentStore

log = get_logger("profiles")


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    uid: str
    email: str | None = None
    display_name: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    role: Role = Role.USER
    saved_address: dict[str, Any] | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"uid"})

    @classmethod
    def from_doc(cls, uid: str, data: dict[str, Any]) -> Profile:
        return cls.model_validate({**data, "uid": uid})


class ProfileService:
    """
    Example:
        await profiles.create("u1", "a@b.co", "Alex")
        match await profiles.require_admin("u1"):
            case Ok(profile): ...
            case Error(err): ...   # PermissionDeniedError
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, uid: str) -> Result[Profile | None, TransientIOError]:
        match await self._store.get(USERS, uid):
            case Ok(None):
                return Ok(None)
            case Ok(doc):
                try:
                    return Ok(Profile.from_doc(uid, doc))
                except PydanticValidationError as exc:
                    log.error("profile_corrupt", uid=uid, error=str(exc))
                    return Ok(None)
            case Error(err):
                return Error(TransientIOError("Could not load profile", err.cause))

    async def get_or_default(self, uid: str, email: str | None = None) -> Profile:
        """Stored profile, or a minimal one when missing or unreadable."""
        match await self.get(uid):
            case Ok(profile) if profile is not None:
                return profile
            case Error(err):
                log.warning("profile_read_failed", uid=uid, error=err.message)
            case _:
                pass
        return Profile(uid=uid, email=email)

    async def create(
        self,
        uid: str,
        email: str | None,
        display_name: str | None = None,
    ) -> Result[Profile, TransientIOError]:
        """Sign-up write. An existing profile is left as is and returned."""
        profile = Profile(uid=uid, email=email, display_name=display_name)
        match await self._store.create(USERS, uid, profile.to_doc()):
            case Ok(True):
                log.info("profile_created", uid=uid)
                return Ok(profile)
            case Ok(_):
                match await self.get(uid):
                    case Ok(existing) if existing is not None:
                        return Ok(existing)
                    case _:
                        return Ok(profile)
            case Error(err):
                return Error(TransientIOError("Could not create profile", err.cause))

    async def save_address(self, uid: str, address: dict[str, Any]) -> Result[None, TransientIOError]:
        match await self._store.set(USERS, uid, {"saved_address": address}, merge=True):
            case Ok(_):
                return Ok(None)
            case Error(err):
                return Error(TransientIOError("Could not save address", err.cause))

    async def set_role(self, uid: str, role: Role) -> Result[None, TransientIOError]:
        match await self._store.set(USERS, uid, {"role": role.value}, merge=True):
            case Ok(_):
                log.info("role_changed", uid=uid, role=role.value)
                return Ok(None)
            case Error(err):
                return Error(TransientIOError("Could not change role", err.cause))

    async def require_admin(
        self, uid: str | None
    ) -> Result[Profile, PermissionDeniedError | TransientIOError]:
        if uid is None:
            return Error(PermissionDeniedError("Sign in as an administrator"))
        match await self.get(uid):
            case Ok(profile) if profile is not None and profile.is_admin:
                return Ok(profile)
            case Ok(_):
                log.warning("admin_denied", uid=uid)
                return Error(PermissionDeniedError("Administrator access required"))
            case Error(err):
                return Error(err)


__all__ = ("Role", "Profile", "ProfileService")
