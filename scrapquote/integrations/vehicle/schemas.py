"""Pydantic schemas for the vehicle data API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class VehicleAttributes(BaseModel):
    """Normalized vehicle attributes — the fields the quote lifecycle consumes."""

    registration: str
    make: str | None = None
    model: str | None = None
    colour: str | None = None
    year_of_manufacture: int | None = None
    fuel_type: str | None = None
    engine_capacity: str | None = None
    wheel_plan: str | None = None
    body_style: str | None = None
    kerb_weight: Decimal | None = None
    revenue_weight: Decimal | None = None
    gross_weight: Decimal | None = None
    raw_response: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @property
    def weight(self) -> Decimal | None:
        """Weight used for pricing: kerb, then revenue, then gross weight."""
        for candidate in (self.kerb_weight, self.revenue_weight, self.gross_weight):
            if candidate is not None and candidate > 0:
                return candidate
        return None

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe dict stored on the quote, including the pricing weight."""
        data = self.model_dump(mode="json")
        weight = self.weight
        data["weight"] = float(weight) if weight is not None else None
        return data
