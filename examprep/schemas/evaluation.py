# examprep/schemas/evaluation.py
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# sub-fields readers can rely on; filled on read, never written back
ANALYTICS_DEFAULTS: Dict[str, Any] = {
    "questions": [],
    "concept_wise_performance": {},
    "strengths": [],
    "areas_to_focus": [],
}


def with_analytics_defaults(analytics: Any) -> Dict[str, Any]:
    """Stored analytics with absent or null sub-fields filled; other values are left untouched."""
    filled = dict(analytics) if isinstance(analytics, dict) else {}
    for key, default in ANALYTICS_DEFAULTS.items():
        if filled.get(key) is None:
            filled[key] = type(default)()
    return filled


class _LenientModel(BaseModel):
    """LLM payloads: unknown keys kept, ``null`` treated as absent."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class EvaluationRecord(_LenientModel):
    """
    Parsed ``submit_evaluation`` arguments.

    Only the five top-level fields are typed and defaulted. ``detailed_analytics``
    is kept exactly as the model sent it (``{}`` when absent or not an object).
    """

    total_score: float = 0
    max_score: float = 100
    weak_areas: List[str] = Field(default_factory=list)
    improvement_suggestions: str = ""
    detailed_analytics: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("detailed_analytics", mode="before")
    @classmethod
    def _analytics_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    def analytics_as_returned(self) -> Dict[str, Any]:
        return dict(self.detailed_analytics)

    def to_response(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "max_score": self.max_score,
            "weak_areas": self.weak_areas,
            "improvement_suggestions": self.improvement_suggestions,
            "detailed_analytics": self.analytics_as_returned(),
        }


class EvaluateAnswerSheetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    submission_id: str | None = Field(default=None, alias="submissionId")
    answer_sheet_text: str | None = Field(default=None, alias="answerSheetText")
    answer_key_text: str | None = Field(default=None, alias="answerKeyText")
    answer_sheet_images: List[str] | None = Field(default=None, alias="answerSheetImages")
    answer_key_images: List[str] | None = Field(default=None, alias="answerKeyImages")


class EvaluateAnswerSheetResponse(BaseModel):
    success: bool
    evaluation: Dict[str, Any] | None = None
    error: str | None = None


class EvaluationPublic(BaseModel):
    id: str
    submission_id: str
    user_id: str
    total_score: float | None = None
    max_score: float | None = None
    weak_areas: List[str] | None = None
    improvement_suggestions: str | None = None
    detailed_analytics: Dict[str, Any] | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("detailed_analytics", mode="before")
    @classmethod
    def _fill_analytics(cls, value: Any) -> Dict[str, Any]:
        return with_analytics_defaults(value)
