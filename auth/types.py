"""Pydantic models for auth domain."""

from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    """What a staff member may do at a terminal."""

    CASHIER = "CASHIER"
    INVENTORY_MANAGER = "INVENTORY_MANAGER"
    ADMIN = "ADMIN"


class User(BaseModel):
    """A staff member who can log in to a terminal."""

    id: int | None = None
    username: str = Field(..., min_length=1, max_length=64)
    role: Role = Role.CASHIER
    email: EmailStr | None = None
    is_active: bool = True

    model_config = {"frozen": True, "from_attributes": True}

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
