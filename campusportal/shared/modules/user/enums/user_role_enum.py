from enum import Enum


class UserRole(str, Enum):
    TEACHER = "TEACHER"
    USER = "USER"
