"""Region model: a top-level node of the world map."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING
from sqlalchemy import String, Text, Float, Boolean, DateTime, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from realm_atlas.models.base import Base
from realm_atlas.core.time import utc_now

if TYPE_CHECKING:
    from realm_atlas.models.place import Place


class Region(Base):
    """Named map area with a position, outgoing connections and visibility flags."""
    __tablename__ = "regions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    subtitle: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position_x: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
        comment="Normalized map coordinate, 0-100"
    )
    position_y: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
        comment="Normalized map coordinate, 0-100"
    )
    color: Mapped[str] = mapped_column(
        String(100), nullable=False, default="",
        comment="Display gradient class name"
    )
    key_locations: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    population: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    threat: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    connections: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list,
        comment="Directed adjacency list of region ids"
    )
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    visibility_free_users: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    visibility_signed_in_users: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    visibility_premium_users: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    sort_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
        comment="Creation sequence; regions imported together keep request order"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    # Places are owned by the region and never outlive it
    places: Mapped[List["Place"]] = relationship(
        "Place", back_populates="region", cascade="all, delete-orphan",
        order_by="Place.sort_order"
    )

    @property
    def position(self) -> dict:
        return {"x": self.position_x, "y": self.position_y}

    @property
    def visibility(self) -> dict:
        return {
            "free_users": self.visibility_free_users,
            "signed_in_users": self.visibility_signed_in_users,
            "premium_users": self.visibility_premium_users,
        }
