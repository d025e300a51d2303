"""Catalog match models for CWICR estimation.

A CatalogMatch is the normalized form of one similarity-search hit
against the construction work item catalog.
"""

from enum import Enum
from typing import Any, Dict, Union

from pydantic import BaseModel, Field, field_validator


# Phase assigned to work items stored without one
DEFAULT_PHASE = "Construction"


class SearchLanguage(str, Enum):
    """Catalog languages. Each language has its own catalog collection."""

    EN = "en"
    DE = "de"


class CatalogMatch(BaseModel):
    """Single catalog work item matched by similarity search.

    Immutable once built from a backend hit; similarity is stored as a
    percentage rounded to one decimal place.
    """

    id: Union[int, str] = Field(..., description="Backend-assigned catalog identifier")
    similarity_percent: float = Field(
        ...,
        ge=0,
        le=100,
        alias="similarityPercent",
        description="Similarity score as a percentage (0-100)"
    )
    description: str = Field(default="", description="Work item description")
    category: str = Field(default="", description="Work item category")
    phase: str = Field(default=DEFAULT_PHASE, description="Construction phase")
    labor_hours: float = Field(
        default=0.0,
        ge=0,
        alias="laborHours",
        description="Labor hours per unit"
    )
    estimated_unit_cost: float = Field(
        default=0.0,
        ge=0,
        alias="estimatedUnitCost",
        description="Estimated material cost per unit"
    )
    materials: Dict[str, Any] = Field(
        default_factory=dict,
        description="Material name to quantity/spec"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("phase", mode="before")
    @classmethod
    def default_phase(cls, v: Any) -> Any:
        return v or DEFAULT_PHASE

    @field_validator("description", "category", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("labor_hours", "estimated_unit_cost", mode="before")
    @classmethod
    def default_number(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("materials", mode="before")
    @classmethod
    def default_materials(cls, v: Any) -> Any:
        return v or {}

    @classmethod
    def from_search_hit(cls, hit: Dict[str, Any]) -> "CatalogMatch":
        """Build a CatalogMatch from a raw similarity backend hit.

        Args:
            hit: Dict with "id", "score" (0-1) and a "payload" of stored attributes.

        Returns:
            Normalized CatalogMatch.

        Raises:
            KeyError: If the hit has no id or score.
            TypeError: If the payload is not a mapping.
            pydantic.ValidationError: If payload attributes are unusable.
        """
        payload = hit.get("payload")
        if payload is None:
            payload = {}
        elif not isinstance(payload, dict):
            raise TypeError(f"Hit payload must be an object, got {type(payload).__name__}")
        score = float(hit["score"])
        percent = min(max(round(score * 100, 1), 0.0), 100.0)

        return cls(
            id=hit["id"],
            similarity_percent=percent,
            description=payload.get("description"),
            category=payload.get("category"),
            phase=payload.get("phase"),
            labor_hours=payload.get("labor_hours"),
            estimated_unit_cost=payload.get("estimated_cost"),
            materials=payload.get("materials"),
        )

    @property
    def similarity_label(self) -> str:
        """Similarity formatted for display, e.g. '87.3%'."""
        return f"{self.similarity_percent:.1f}%"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for JSON serialization."""
        data = self.model_dump(by_alias=True)
        data["similarity"] = self.similarity_label
        return data
