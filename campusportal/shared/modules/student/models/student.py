from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.modules.clock import utcnow
from shared.modules.student.models.completed_exam import CompletedExam

STUDENT_ROLE = "student"


class Student(BaseModel):
    """
    A student account as stored in the `students` collection.

    `id` is the hex form of the MongoDB ObjectId and `student_id` is the
    institution-issued natural key. The cache holds a full JSON copy of this
    model, password hash included.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    first_name: str = Field(..., min_length=2, max_length=32)
    last_name: str = Field(..., min_length=2, max_length=32)
    role: str = STUDENT_ROLE
    department: Optional[str] = None
    student_id: str
    email: str
    password_hash: str = ""
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    required_exams: List[str] = Field(default_factory=list)
    completed_exams: List[CompletedExam] = Field(default_factory=list)
