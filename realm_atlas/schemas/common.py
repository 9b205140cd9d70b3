"""Schema building blocks shared by region and place schemas."""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(CamelModel):
    """Resolved {x, y} pair."""
    x: float
    y: float


class PositionInput(CamelModel):
    """Position as supplied by callers; a missing coordinate means 0."""
    x: float = 0.0
    y: float = 0.0


class MapPositionInput(PositionInput):
    """Region position on the normalized 0-100 map grid."""
    x: float = Field(default=0.0, ge=0, le=100)
    y: float = Field(default=0.0, ge=0, le=100)


class ItemError(CamelModel):
    """Failure of one item in a batch, addressed by its index in the request."""
    index: int
    reason: str
