from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class JobOut(BaseModel):
    id: int
    company: str
    title: str
    applied_at: datetime
    cover_letter: bool | None = None
    expectation: float | None = None
    result: str | None = None
    company_rate: float | None = None
    referral: bool | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    remark: str | None = None


class JobDeleteOut(BaseModel):
    success: bool


class ResultTypesOut(BaseModel):
    result_types: list[str] = Field(default_factory=list)
    enforced: bool = False
