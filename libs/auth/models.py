from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

# Roles recognised by the store
CUSTOMER = "customer"
SELLER = "seller"
ADMIN = "admin"


class AuthUser(BaseModel):
    """
    The authenticated principal, built once from a verified token.

    Frozen so that handlers downstream cannot mutate who the caller is.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = CUSTOMER

    @model_validator(mode="before")
    @classmethod
    def resolve_role(cls, data: Any) -> Any:
        # Supabase tokens carry role="authenticated"; the store role lives in
        # app_metadata.role when it is set.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        app_metadata = data.get("app_metadata") or {}
        role = app_metadata.get("role") or data.get("role")
        if not role or role == "authenticated":
            role = CUSTOMER
        data["role"] = role
        return data

    @property
    def is_staff(self) -> bool:
        return self.role in (ADMIN, SELLER)
