"""
Settings schemas.
"""

from typing import Optional
from pydantic import Field

from app.schemas.common import CamelModel


class SettingValue(CamelModel):
    value: Optional[str] = None


class SettingResponse(CamelModel):
    id: int
    key: str
    value: Optional[str] = None


class SemesterUpdate(CamelModel):
    semester: str = Field(min_length=1, max_length=50)


class SemesterResponse(CamelModel):
    semester: Optional[str] = None
