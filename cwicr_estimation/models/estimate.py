"""Estimate models for CWICR estimation.

Pydantic models for design elements, priced line items, the project
cost breakdown and the estimate document stored in Firestore.
"""

from typing import Dict, Any, Optional, List, Union
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class DesignElement(BaseModel):
    """Design element extracted from CAD/BIM data.

    The description is used as the catalog query text.
    """

    id: str = Field(..., description="Element ID from the design model")
    name: str = Field(default="", description="Element display name")
    description: str = Field(..., description="Free-text description used for matching")
    quantity: float = Field(default=1.0, description="Element quantity (non-positive treated as 1)")
    unit: Optional[str] = Field(default=None, description="Unit of measurement")

    class Config:
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> Any:
        if v is None or v == "":
            return 1.0
        try:
            value = float(v)
        except (TypeError, ValueError):
            return v
        return value if value > 0 else 1.0


class LineItem(BaseModel):
    """Priced design element, matched against its best catalog work item."""

    element_id: str = Field(..., alias="elementId", description="Design element ID")
    element_name: str = Field(..., alias="elementName", description="Design element name")
    matched_catalog_id: Union[int, str] = Field(
        ...,
        alias="matchedCatalogId",
        description="Catalog ID of the matched work item"
    )
    description: str = Field(..., description="Matched work item description")
    quantity: float = Field(..., gt=0, description="Element quantity")
    unit_cost: float = Field(..., ge=0, alias="unitCost", description="Material cost per unit")
    material_cost: float = Field(..., ge=0, alias="materialCost", description="unit_cost × quantity")
    labor_cost: float = Field(..., ge=0, alias="laborCost", description="labor_hours × quantity × labor rate")
    total_cost: float = Field(..., ge=0, alias="totalCost", description="material_cost + labor_cost")
    labor_hours: float = Field(..., ge=0, alias="laborHours", description="Labor hours per unit")
    phase: str = Field(..., description="Construction phase")
    similarity_percent: float = Field(
        ...,
        ge=0,
        le=100,
        alias="similarityPercent",
        description="Similarity of the match as a percentage"
    )

    class Config:
        populate_by_name = True
        frozen = True


class CostBreakdown(BaseModel):
    """Project-level cost aggregate.

    Equipment has no cost source and stays at zero. ``total`` is set once,
    after all line items have been folded in.
    """

    labor: float = Field(default=0.0, ge=0, description="Total labor cost")
    materials: float = Field(default=0.0, ge=0, description="Total material cost")
    equipment: float = Field(default=0.0, ge=0, description="Total equipment cost")
    total: float = Field(default=0.0, ge=0, description="labor + materials + equipment")
    by_phase: Dict[str, float] = Field(
        default_factory=dict,
        alias="byPhase",
        description="Phase name to cumulative material + labor cost"
    )

    class Config:
        populate_by_name = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for JSON serialization."""
        return self.model_dump(by_alias=True)


class ElementResolutionFailure(BaseModel):
    """Record of a design element skipped during estimate assembly."""

    element_id: str = Field(..., alias="elementId")
    element_name: str = Field(..., alias="elementName")
    code: str = Field(..., description="ErrorCode of the failure (NO_MATCH, EMBEDDING_*, RETRIEVAL_*)")
    reason: str = Field(..., description="Human-readable reason")

    class Config:
        populate_by_name = True
        frozen = True


class Estimate(BaseModel):
    """Assembled project cost estimate.

    Line items follow input element order; skipped elements appear only
    in ``failures``.
    """

    project_id: str = Field(..., alias="projectId")
    items: List[LineItem] = Field(default_factory=list)
    cost_breakdown: CostBreakdown = Field(default_factory=CostBreakdown, alias="costBreakdown")
    language: str = Field(..., description="Catalog language (en or de)")
    region: str = Field(..., description="Region / country code used for filtering")
    created_at: datetime = Field(..., alias="createdAt")
    failures: List[ElementResolutionFailure] = Field(
        default_factory=list,
        description="Elements skipped during assembly (not persisted)"
    )

    class Config:
        populate_by_name = True

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for API responses."""
        data = self.model_dump(by_alias=True, mode="json")
        data["itemCount"] = self.item_count
        return data

    def to_firestore_dict(self) -> Dict[str, Any]:
        """Convert to the document shape written to the estimate store.

        Returns:
            Dict with camelCase keys; skipped-element failures are omitted.
        """
        return {
            "projectId": self.project_id,
            "elements": [item.model_dump(by_alias=True) for item in self.items],
            "costBreakdown": self.cost_breakdown.to_dict(),
            "language": self.language,
            "country": self.region,
            "createdAt": self.created_at,
        }


class SavedEstimate(BaseModel):
    """Identifier assigned by the estimate store on write."""

    id: str
    project_id: str = Field(..., alias="projectId")

    class Config:
        populate_by_name = True


class EstimateSummary(BaseModel):
    """Summary view of a persisted estimate for project history listings."""

    id: str = Field(description="Estimate ID")
    project_id: str = Field(alias="projectId", description="Project ID")
    cost_breakdown: CostBreakdown = Field(
        default_factory=CostBreakdown,
        alias="costBreakdown",
        description="Persisted cost breakdown"
    )
    language: Optional[str] = Field(default=None, description="Catalog language")
    region: Optional[str] = Field(default=None, description="Region / country code")
    created_at: Optional[datetime] = Field(
        default=None,
        alias="createdAt",
        description="Creation timestamp"
    )

    class Config:
        populate_by_name = True

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> "EstimateSummary":
        """Build a summary from a stored estimate document."""
        return cls(
            id=doc_id,
            project_id=data.get("projectId", ""),
            cost_breakdown=data.get("costBreakdown") or {},
            language=data.get("language"),
            region=data.get("country"),
            created_at=data.get("createdAt"),
        )
