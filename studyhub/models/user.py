from datetime import datetime

from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field


class User(Document):
    first_name: str
    last_name: str = ""
    email: Indexed(str, unique=True)
    role: str = "student"  # "student" | "instructor" | "admin"
    # Mirrors Course.enrolled_students; both sides only change inside the enrollment transaction
    enrolled_courses: list[PydanticObjectId] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    class Settings:
        name = "users"
