import uuid
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["admin", "salesPerson"]


class AuthUser(BaseModel):
    """
    Represents an authenticated user decoded from the session token.

    Token claims use the auth service's camelCase names (``userId``,
    ``shopId``); both those and the snake_case field names are accepted.
    A ``shopId`` that is not a UUID fails validation, so the token is rejected.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(..., alias="userId")
    role: Role
    shop_id: Optional[uuid.UUID] = Field(None, alias="shopId")
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_sales_person(self) -> bool:
        return self.role == "salesPerson"
