"""Place model: a sub-location owned by exactly one region."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING
from sqlalchemy import String, Text, Integer, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from realm_atlas.models.base import Base
from realm_atlas.core.time import utc_now

if TYPE_CHECKING:
    from realm_atlas.models.region import Region


class PlaceType(str, enum.Enum):
    """Kind of place."""
    CITY = "city"
    TOWN = "town"
    OUTPOST = "outpost"
    LANDMARK = "landmark"
    FACILITY = "facility"
    RUINS = "ruins"


class PlaceSize(str, enum.Enum):
    """Marker size on the map."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class RouteType(str, enum.Enum):
    TRADE = "trade"
    MILITARY = "military"
    SECRET = "secret"
    ABANDONED = "abandoned"


class RouteDanger(str, enum.Enum):
    SAFE = "safe"
    MODERATE = "moderate"
    DANGEROUS = "dangerous"
    LETHAL = "lethal"


class Place(Base):
    """Sub-location positioned relative to its parent region."""
    __tablename__ = "places"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    region_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("regions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    position_x: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
        comment="Offset from the parent region's position"
    )
    position_y: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
        comment="Offset from the parent region's position"
    )
    size: Mapped[str] = mapped_column(String(10), nullable=False, default=PlaceSize.MEDIUM.value)
    importance: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    connections: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list,
        comment="Place ids within the same region"
    )
    routes: Mapped[List[dict]] = mapped_column(
        JSON, nullable=False, default=list,
        comment="Directed route metadata: to, type, danger, description"
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    region: Mapped["Region"] = relationship("Region", back_populates="places")

    @property
    def position(self) -> dict:
        return {"x": self.position_x, "y": self.position_y}
