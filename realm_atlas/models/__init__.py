"""Models package."""
from realm_atlas.models.base import Base
from realm_atlas.models.region import Region
from realm_atlas.models.place import Place, PlaceType, PlaceSize, RouteType, RouteDanger

__all__ = [
    "Base",
    "Region",
    "Place",
    "PlaceType",
    "PlaceSize",
    "RouteType",
    "RouteDanger",
]
