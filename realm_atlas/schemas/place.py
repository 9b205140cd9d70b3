"""Place schemas."""
from typing import List, Optional
from pydantic import ConfigDict, Field, field_validator

from realm_atlas.models.place import PlaceType, PlaceSize, RouteType, RouteDanger
from realm_atlas.schemas.common import CamelModel, Position, PositionInput


def validate_optional_id(value: Optional[str]) -> Optional[str]:
    """An explicit id must be a non-empty string; its format is up to the caller."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("id must be a non-empty string")
    if len(value) > 64:
        raise ValueError("id must be at most 64 characters")
    return value


class Route(CamelModel):
    """Directed route metadata layered on a place connection."""
    to: str = Field(..., min_length=1)
    type: RouteType
    danger: RouteDanger
    description: Optional[str] = None


class PlaceCreate(CamelModel):
    """Schema for creating a place, standalone or embedded in a region payload."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    type: PlaceType
    position: PositionInput = Field(
        default_factory=PositionInput,
        description="Offset relative to the parent region's position"
    )
    size: PlaceSize = PlaceSize.MEDIUM
    importance: int = Field(default=1, ge=1, le=5)
    description: str = ""
    connections: List[str] = Field(default_factory=list)
    routes: List[Route] = Field(default_factory=list)

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: Optional[str]) -> Optional[str]:
        return validate_optional_id(v)


class Place(CamelModel):
    """Place response schema."""
    id: str
    region_id: str
    name: str
    type: PlaceType
    position: Position
    size: PlaceSize
    importance: int
    description: str = ""
    connections: List[str] = Field(default_factory=list)
    routes: List[Route] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PlaceEnvelope(CamelModel):
    place: Place


class PlaceListResponse(CamelModel):
    places: List[Place]
