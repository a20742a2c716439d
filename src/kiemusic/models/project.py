"""Project model - a container for generations."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Project(BaseModel):
    """A named group of generations."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = Field(default="New Project")
    created_at: datetime | None = None
    updated_at: datetime | None = None
