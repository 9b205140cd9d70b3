"""Region schemas."""
from datetime import datetime
from typing import Any, List, Optional
from pydantic import ConfigDict, Field, field_validator

from realm_atlas.schemas.common import CamelModel, ItemError, MapPositionInput, Position
from realm_atlas.schemas.place import Place, PlaceCreate, validate_optional_id


class VisibilityFlags(CamelModel):
    """Resolved per-tier visibility. The flags are independent of each other."""
    free_users: bool = True
    signed_in_users: bool = True
    premium_users: bool = True


class VisibilityInput(CamelModel):
    """
    Visibility as supplied by callers.

    A flag left out (or sent as null) is not specified: on create it resolves
    to True, on update the stored value is kept.
    """
    free_users: Optional[bool] = None
    signed_in_users: Optional[bool] = None
    premium_users: Optional[bool] = None


class RegionBase(CamelModel):
    """Fields shared by create and import payloads."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    subtitle: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    position: Optional[MapPositionInput] = None
    color: str = Field(default="", max_length=100)
    key_locations: List[str] = Field(default_factory=list)
    population: str = Field(default="", max_length=200)
    threat: str = Field(default="", max_length=200)
    connections: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    visibility: Optional[VisibilityInput] = None

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: Optional[str]) -> Optional[str]:
        return validate_optional_id(v)


class RegionCreate(RegionBase):
    """
    Schema for creating a region.

    Embedded places stay unvalidated here: each one is checked on its own so
    a bad place is reported without failing the region.
    """
    places: List[Any] = Field(default_factory=list)


class RegionImportItem(RegionBase):
    """
    One item of a bulk import.

    ref is a batch-local handle other items may name in their connections;
    it resolves to this item's final id. Places are validated with the item,
    so a bad place rejects the whole item.
    """
    ref: Optional[str] = Field(default=None, min_length=1)
    places: List[PlaceCreate] = Field(default_factory=list)


class RegionUpdate(CamelModel):
    """
    Schema for partially updating a region.

    Only fields present in the request body are changed; use
    model_dump(exclude_unset=True) to tell them apart.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    subtitle: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    position: Optional[MapPositionInput] = None
    color: Optional[str] = Field(None, max_length=100)
    key_locations: Optional[List[str]] = None
    population: Optional[str] = Field(None, max_length=200)
    threat: Optional[str] = Field(None, max_length=200)
    connections: Optional[List[str]] = None
    image_url: Optional[str] = None
    visibility: Optional[VisibilityInput] = None

    @field_validator('name', 'subtitle', 'description', 'position', 'color',
                     'key_locations', 'population', 'threat', 'connections')
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class Region(CamelModel):
    """Region response schema."""
    id: str
    name: str
    subtitle: str
    description: str = ""
    position: Position
    color: str = ""
    key_locations: List[str] = Field(default_factory=list)
    population: str = ""
    threat: str = ""
    connections: Optional[List[str]] = Field(default_factory=list)
    image_url: Optional[str] = None
    visibility: Optional[VisibilityFlags] = None
    places: List[Place] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RegionEnvelope(CamelModel):
    region: Region


class RegionListResponse(CamelModel):
    regions: List[Region]


class RegionCreateRequest(CamelModel):
    region: RegionCreate


class RegionCreateResponse(CamelModel):
    """Created region plus the embedded places that could not be created."""
    region: Region
    failed_places: List[ItemError] = Field(default_factory=list)


class VisibilityUpdateRequest(CamelModel):
    visibility: VisibilityInput


class BulkImportRequest(CamelModel):
    """Raw items are validated one by one so a bad item cannot fail the batch."""
    regions: List[Any]


class BulkImportResponse(CamelModel):
    regions: List[Region]
    results: List[ItemError]


class ConnectionRequest(CamelModel):
    target: str = Field(..., min_length=1)
    symmetric: bool = False


class RegionLink(CamelModel):
    source: str
    target: str


class RegionLinksResponse(CamelModel):
    links: List[RegionLink]


class RepairResponse(CamelModel):
    repaired: int
    regions: List[Region]


class DeleteResponse(CamelModel):
    success: bool = True
