"""Cost aggregation for CWICR estimation.

Prices one design element against its best catalog match and folds the
result into the project cost breakdown.

Formulas:
- material_cost = unit_cost × quantity
- labor_cost = labor_hours × quantity × labor_rate
- total_cost = material_cost + labor_cost
"""

from typing import Optional

from cwicr_estimation.config.settings import settings
from cwicr_estimation.models.catalog import CatalogMatch
from cwicr_estimation.models.estimate import CostBreakdown, DesignElement, LineItem


class CostAggregator:
    """Prices line items and accumulates the project breakdown.

    The only side effect is the explicit mutation of the breakdown passed
    to ``apply``. Callers must not run ``apply`` concurrently on one
    breakdown.
    """

    def __init__(self, labor_rate: Optional[float] = None):
        """Initialize CostAggregator.

        Args:
            labor_rate: Labor cost per hour (default from settings).
        """
        self.labor_rate = labor_rate if labor_rate is not None else settings.labor_rate_per_hour
        if self.labor_rate < 0:
            raise ValueError(f"labor_rate must not be negative, got {self.labor_rate}")

    def price(self, element: DesignElement, match: CatalogMatch) -> LineItem:
        """Compute the line item for an element and its best match."""
        quantity = element.quantity
        material_cost = match.estimated_unit_cost * quantity
        labor_cost = match.labor_hours * quantity * self.labor_rate

        return LineItem(
            element_id=element.id,
            element_name=element.name,
            matched_catalog_id=match.id,
            description=match.description,
            quantity=quantity,
            unit_cost=match.estimated_unit_cost,
            material_cost=material_cost,
            labor_cost=labor_cost,
            total_cost=material_cost + labor_cost,
            labor_hours=match.labor_hours,
            phase=match.phase,
            similarity_percent=match.similarity_percent,
        )

    def apply(
        self,
        breakdown: CostBreakdown,
        element: DesignElement,
        match: CatalogMatch
    ) -> LineItem:
        """Price an element and add its costs to the breakdown.

        ``breakdown.total`` is left untouched; call ``finalize`` once all
        elements are applied.

        Returns:
            The priced LineItem.
        """
        item = self.price(element, match)

        breakdown.labor += item.labor_cost
        breakdown.materials += item.material_cost
        breakdown.by_phase[item.phase] = (
            breakdown.by_phase.get(item.phase, 0.0) + item.material_cost + item.labor_cost
        )
        return item

    @staticmethod
    def finalize(breakdown: CostBreakdown) -> CostBreakdown:
        """Set the breakdown total from its category sums."""
        breakdown.total = breakdown.labor + breakdown.materials + breakdown.equipment
        return breakdown
