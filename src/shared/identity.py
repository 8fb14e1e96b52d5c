"""The verified identity fact every request carries.

Authentication happens upstream: the gateway verifies the caller's token and
forwards the result as ``X-User-Id`` and ``X-User-Role`` headers.
"""

from enum import Enum

from fastapi import Header, HTTPException
from pydantic import BaseModel, ConfigDict


class Role(Enum):
    USER = "user"
    RESTAURANT_OWNER = "restaurant_owner"
    ADMIN = "admin"


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def current_identity(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=""),
) -> Identity:
    """FastAPI dependency resolving the identity forwarded by the gateway."""
    try:
        return Identity(user_id=int(x_user_id), role=Role(x_user_role))
    except ValueError:
        raise HTTPException(status_code=401, detail="Missing or invalid identity") from None
