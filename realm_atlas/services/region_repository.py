"""Persistence access for regions and places.

RegionRepository is the only object that talks to the SQLAlchemy session.
Every SQLAlchemyError leaving it is rolled back, logged and re-raised as
StorageError.
"""
import logging
from contextlib import contextmanager
from typing import List, Optional, Set
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from realm_atlas.core.errors import StorageError
from realm_atlas.models.place import Place
from realm_atlas.models.region import Region

logger = logging.getLogger(__name__)


class RegionRepository:
    """Region and place storage backed by one database session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(f"Storage failure while trying to {action}")
            raise StorageError(f"Failed to {action}") from exc

    # ------------------------------------------------------------------
    # Regions
    # ------------------------------------------------------------------

    def list_regions(self, for_update: bool = False) -> List[Region]:
        """
        Load every region in creation order.

        With for_update every row is locked in id order until the next commit
        and copies already held by the session are refreshed. Writers that
        rewrite other regions' connections lists use this, so they never
        write back a list a concurrent connection edit has since changed.
        """
        with self._storage("load regions"):
            query = self.db.query(Region)
            if for_update:
                # Lock in id order, like symmetric connection edits
                rows = (
                    query.populate_existing()
                    .order_by(Region.id)
                    .with_for_update()
                    .all()
                )
                return sorted(rows, key=lambda region: (region.sort_order, region.id))
            return (
                query.options(selectinload(Region.places))
                .order_by(Region.sort_order, Region.id)
                .all()
            )

    def get_region(self, region_id: str, for_update: bool = False) -> Optional[Region]:
        """
        Load one region.

        With for_update the row is locked until the next commit and any copy
        already held by the session is refreshed, so read-modify-write of the
        connections list always starts from the stored value.
        """
        with self._storage(f"load region {region_id}"):
            query = self.db.query(Region).filter(Region.id == region_id)
            if for_update:
                query = query.populate_existing().with_for_update()
            return query.first()

    def region_ids(self) -> Set[str]:
        with self._storage("load region ids"):
            return {row[0] for row in self.db.query(Region.id).all()}

    def next_sort_order(self) -> int:
        with self._storage("load region sort order"):
            return (self.db.query(func.max(Region.sort_order)).scalar() or 0) + 1

    def regions_referencing(self, region_id: str, for_update: bool = False) -> List[Region]:
        """
        Regions whose connections list contains region_id.

        JSON containment is not portable across backends, so the filter runs
        in Python; with for_update that means every region row is locked.
        """
        return [
            region for region in self.list_regions(for_update=for_update)
            if region_id in (region.connections or [])
        ]

    def add_region(self, region: Region) -> Region:
        with self._storage(f"stage region {region.id}"):
            self.db.add(region)
            self.db.flush()
        return region

    def delete_region(self, region: Region) -> None:
        """Delete a region; the ORM cascade deletes every place it owns."""
        with self._storage(f"delete region {region.id}"):
            self.db.delete(region)
            self.db.flush()

    # ------------------------------------------------------------------
    # Places
    # ------------------------------------------------------------------

    def list_places(self, region_id: str) -> List[Place]:
        with self._storage(f"load places of region {region_id}"):
            return (
                self.db.query(Place)
                .filter(Place.region_id == region_id)
                .order_by(Place.sort_order, Place.created_at)
                .all()
            )

    def get_place(self, region_id: str, place_id: str) -> Optional[Place]:
        with self._storage(f"load place {place_id}"):
            return (
                self.db.query(Place)
                .filter(Place.region_id == region_id, Place.id == place_id)
                .first()
            )

    def place_ids(self) -> Set[str]:
        with self._storage("load place ids"):
            return {row[0] for row in self.db.query(Place.id).all()}

    def add_places(self, places: List[Place]) -> List[Place]:
        with self._storage("stage places"):
            self.db.add_all(places)
            self.db.flush()
        return places

    def delete_place(self, place: Place) -> None:
        with self._storage(f"delete place {place.id}"):
            self.db.delete(place)
            self.db.flush()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def commit(self) -> None:
        with self._storage("commit changes"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, instance) -> None:
        with self._storage("reload saved data"):
            self.db.refresh(instance)
