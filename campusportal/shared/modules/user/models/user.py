from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.modules.clock import utcnow
from shared.modules.user.enums.user_role_enum import UserRole


class User(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    password: Optional[str] = None  # hash, never the plain value
    email: str
    phone: str
    token: Optional[str] = None
    role: UserRole = UserRole.USER
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    user_id: str = ""
    access_token: str = ""
