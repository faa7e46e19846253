# backend/app/schemas/base.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

class TimestampMixin(BaseModel):
    created_at: datetime
    updated_at: Optional[datetime] = None
