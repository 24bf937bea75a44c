from datetime import datetime

from pydantic import BaseModel


class CompletedExam(BaseModel):
    exam_id: str
    score: float
    total_marks: float
    passed: bool
    completed_at: datetime
