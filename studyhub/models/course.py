from datetime import datetime

from beanie import Document, PydanticObjectId
from pydantic import Field


class Course(Document):
    title: str
    description: str = ""
    instructor: PydanticObjectId
    price: int = Field(ge=0)  # whole rupees
    thumbnail: str = ""
    status: str = "draft"  # draft | pending | approved | rejected
    category: PydanticObjectId | None = None
    enrolled_students: list[PydanticObjectId] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "courses"
        indexes = [[("instructor", 1)]]
