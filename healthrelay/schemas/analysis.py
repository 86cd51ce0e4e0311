from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any


class AnalysisRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    findingsText: str = ""
    numericScores: dict[str, int | float] = Field(default_factory=dict)
    preferredLang: str = Field(default="en", min_length=2, max_length=8)

    @field_validator("findingsText", "numericScores", "preferredLang", mode="before")
    @classmethod
    def _null_means_default(cls, v, info):
        # explicit nulls from clients fall back to the field default
        if v is None:
            return {"findingsText": "", "numericScores": {}, "preferredLang": "en"}[info.field_name]
        return v


class AnalysisResponse(BaseModel):
    ok: bool = True
    data: Any = None


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
    status: int | None = None  # upstream HTTP status, only on 502
