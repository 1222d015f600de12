from pydantic import BaseModel, field_validator, ConfigDict
from typing import Optional
from datetime import datetime


class TenantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    state: str
    created_at: datetime
    modified_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class TenantUpdateRequest(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 1 or len(v) > 30:
            raise ValueError("Name must be between 1 and 30 characters.")
        return v
