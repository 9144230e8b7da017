"""Validation and persistence of obligations handed over by document extraction."""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.orm import Session

from models import RISK_LEVELS, Obligation
from obligations.repository import ObligationCreateInput, ObligationRepository

logger = logging.getLogger(__name__)


class ExtractedObligation(BaseModel):
    """Candidate obligation produced by the extraction pipeline."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    summary: str = ""
    due_date: date | None = None
    risk_level: str = "medium"
    consequence: str | None = None
    steps: list[str] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("title")
    @classmethod
    def _normalize_title(cls, value: str) -> str:
        """Ensure titles are non-empty once whitespace is trimmed."""
        normalized = value.strip()
        if not normalized:
            raise ValueError("title must be a non-empty string")
        return normalized

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_due_date(cls, value: Any) -> Any:
        """Accept YYYY-MM-DD strings, treating blanks as no date."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            return datetime.strptime(text, "%Y-%m-%d").date()
        return value

    @field_validator("risk_level", mode="before")
    @classmethod
    def _validate_risk_level(cls, value: Any) -> str:
        """Ensure risk levels match the supported tiers."""
        normalized = str(value).strip().lower()
        if normalized not in RISK_LEVELS:
            raise ValueError("risk_level must be one of low, medium, high")
        return normalized

    @field_validator("steps")
    @classmethod
    def _drop_blank_steps(cls, value: list[str]) -> list[str]:
        """Remove empty step strings."""
        return [step.strip() for step in value if step and step.strip()]


def validate_extracted_obligation(payload: ExtractedObligation | dict) -> ExtractedObligation:
    """Normalize and validate an extraction payload."""
    if isinstance(payload, ExtractedObligation):
        return payload
    return ExtractedObligation.model_validate(payload)


class ObligationIntakeService:
    """Persist confirmed extraction results and schedule their reminders."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the intake service with persistence dependencies."""
        self._repository = ObligationRepository(session_factory)
        self._now_provider = now_provider

    def accept(
        self,
        user_id: str,
        payload: ExtractedObligation | dict,
        *,
        source_document: str | None = None,
    ) -> Obligation:
        """Validate a payload and create the obligation it describes."""
        extracted = validate_extracted_obligation(payload)
        now = self._now_provider() if self._now_provider else None
        obligation = self._repository.create(
            ObligationCreateInput(
                user_id=user_id,
                title=extracted.title,
                description=extracted.summary,
                source_document=source_document,
                deadline=extracted.due_date,
                risk_level=extracted.risk_level,
                consequence=extracted.consequence,
                steps=list(extracted.steps),
            ),
            now=now,
        )
        logger.info(
            "Obligation accepted from extraction: obligation_id=%s risk_level=%s confidence=%.2f",
            obligation.obligation_id,
            obligation.risk_level,
            extracted.confidence,
        )
        return obligation


__all__ = [
    "ExtractedObligation",
    "ObligationIntakeService",
    "ValidationError",
    "validate_extracted_obligation",
]
