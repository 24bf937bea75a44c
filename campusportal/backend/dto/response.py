from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from shared.modules.student.models.student import Student
from shared.modules.user.models.user import User


class StudentResponse(BaseModel):
    """Public view of a student. Never carries the password hash."""

    id: Optional[str] = None
    first_name: str
    last_name: str
    role: str
    department: Optional[str] = None
    student_id: str
    email: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_student(cls, student: Student) -> "StudentResponse":
        return cls.model_validate(student.model_dump(exclude={"password_hash"}))


class UserResponse(BaseModel):
    id: Optional[str] = None
    user_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    role: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls.model_validate(user.model_dump(exclude={"password", "token", "access_token"}))
