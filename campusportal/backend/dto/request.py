from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.modules.user.enums.user_role_enum import UserRole

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CreateStudentRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=32)
    last_name: str = Field(..., min_length=2, max_length=32)
    department: Optional[str] = None
    student_id: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8)


class StudentLoginRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    email: Optional[str] = None


class AdminResetPasswordRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class UpdateStudentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(None, min_length=2, max_length=32)
    last_name: Optional[str] = Field(None, min_length=2, max_length=32)
    department: Optional[str] = None
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    is_active: Optional[bool] = None


class CreateUserRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: str = Field(..., min_length=1)
    role: UserRole = UserRole.USER
    user_id: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    first_name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    phone: Optional[str] = None
    role: Optional[UserRole] = None


class UserLoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ResetUserPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8)
