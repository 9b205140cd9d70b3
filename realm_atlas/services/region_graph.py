"""Region graph service.

Owns the authoritative set of regions and places: CRUD with cascade and
connection pruning, visibility filtering, connection edits under a row lock,
and best-effort bulk import.

Failure policy:
- Single-entity operations raise on any error and leave nothing half-written.
- Embedded places on region create are best effort: a failed place is logged
  and reported, the region stays created.
- Bulk import validates every item on its own; bad items are reported by index
  and the rest are imported. A store failure still fails the whole batch with
  StorageError.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple
from pydantic import ValidationError as PydanticValidationError

from realm_atlas.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from realm_atlas.core.region_graph import (
    connection_pairs,
    count_repaired_regions,
    find_isolated_regions,
    normalize_connections,
    parse_user_type,
    regions_visible_to,
    repair_dangling_connections,
    resolve_position,
    resolve_visibility,
)
from realm_atlas.core.time import utc_now
from realm_atlas.models.place import Place as PlaceModel
from realm_atlas.models.region import Region as RegionModel
from realm_atlas.schemas.common import ItemError
from realm_atlas.schemas.place import Place, PlaceCreate
from realm_atlas.schemas.region import (
    Region,
    RegionCreate,
    RegionImportItem,
    RegionUpdate,
    VisibilityInput,
)
from realm_atlas.services.region_repository import RegionRepository

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Collision-resistant id for regions and places created without one."""
    return str(uuid.uuid4())


def describe_validation_error(exc) -> str:
    """Flatten a pydantic or request validation error into one readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "item"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


@dataclass
class CreateResult:
    """A created region plus the embedded places that could not be created."""
    region: Region
    failed_places: List[ItemError] = field(default_factory=list)


@dataclass
class ImportOutcome:
    """Result of one bulk import item: either a region or an error."""
    index: int
    region: Optional[Region] = None
    error: Optional[ItemError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ImportReport:
    """Per-item outcomes of a bulk import, in request order."""
    outcomes: List[ImportOutcome] = field(default_factory=list)

    @property
    def imported(self) -> List[Region]:
        return [outcome.region for outcome in self.outcomes if outcome.ok]

    @property
    def errors(self) -> List[ItemError]:
        return [outcome.error for outcome in self.outcomes if not outcome.ok]


@dataclass
class _StagedItem:
    index: int
    item: RegionImportItem
    region_id: str
    place_ids: List[str]


class _ItemRejected(Exception):
    """Internal signal: the current import item fails with this reason."""


class RegionGraphService:
    """Region graph operations over an injected repository."""

    def __init__(self, repository: RegionRepository):
        self.repository = repository

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_regions(self, user_type=None) -> List[Region]:
        """All regions, or only those visible to user_type when one is given."""
        regions = [Region.model_validate(row) for row in self.repository.list_regions()]
        if user_type is None:
            return regions
        return regions_visible_to(regions, parse_user_type(user_type))

    def get_region(self, region_id: str) -> Region:
        return Region.model_validate(self._require_region(region_id))

    def list_places(self, region_id: str) -> List[Place]:
        self._require_region(region_id)
        return [Place.model_validate(row) for row in self.repository.list_places(region_id)]

    def find_isolated_regions(self) -> List[Region]:
        return find_isolated_regions(self.list_regions())

    def links(self, user_type) -> List[Tuple[str, str]]:
        """Undirected links between the regions visible to user_type."""
        return connection_pairs(self.list_regions(user_type))

    # ------------------------------------------------------------------
    # Region CRUD
    # ------------------------------------------------------------------

    def create_region(self, payload: RegionCreate) -> CreateResult:
        """
        Create a region, then its embedded places on a best-effort basis.

        Raises:
            ConflictError: explicit id already taken
            StorageError: the region could not be saved
        """
        region_id = payload.id or new_id()
        existing_ids = self.repository.region_ids()
        if region_id in existing_ids:
            raise ConflictError(f"Region with id '{region_id}' already exists")

        region = self._build_region(payload, region_id, existing_ids)
        region.sort_order = self.repository.next_sort_order()
        self.repository.add_region(region)
        self.repository.commit()
        logger.info(f"Created region {region_id} ({payload.name})")

        failed_places = self._create_embedded_places(region_id, payload.places)
        self.repository.refresh(region)
        return CreateResult(region=Region.model_validate(region), failed_places=failed_places)

    def update_region(self, region_id: str, patch: RegionUpdate) -> Region:
        """
        Apply a partial update. Only fields present in the patch change.

        A supplied connections list keeps only ids of regions that exist now.
        """
        region = self._require_region(region_id, for_update=True)
        changes = patch.model_dump(exclude_unset=True)

        for name in ("name", "subtitle", "description", "color", "key_locations",
                     "population", "threat", "image_url"):
            if name in changes:
                setattr(region, name, changes[name])

        if "position" in changes:
            region.position_x, region.position_y = resolve_position(patch.position)

        if "connections" in changes:
            region.connections = normalize_connections(
                patch.connections, self.repository.region_ids(), self_id=region_id
            )

        if patch.visibility is not None:
            self._apply_visibility(region, patch.visibility)

        region.updated_at = utc_now()
        self.repository.commit()
        self.repository.refresh(region)
        return Region.model_validate(region)

    def update_visibility(self, region_id: str, visibility: VisibilityInput) -> Region:
        """Change only the visibility flags; flags left out keep their value."""
        region = self._require_region(region_id, for_update=True)
        self._apply_visibility(region, visibility)
        region.updated_at = utc_now()
        self.repository.commit()
        self.repository.refresh(region)
        return Region.model_validate(region)

    def delete_region(self, region_id: str) -> None:
        """
        Delete a region, its places, and every connection pointing at it.

        Raises NotFoundError when the region does not exist, so a retry after
        a successful delete reports 404 and changes nothing. Every region row
        is locked before the connections lists are rewritten, so a connection
        added concurrently to a referencing region is not lost.
        """
        self._require_region(region_id)
        referencing = self.repository.regions_referencing(region_id, for_update=True)
        region = self._require_region(region_id, for_update=True)

        pruned = 0
        for other in referencing:
            if other.id == region_id:
                continue
            other.connections = [target for target in other.connections if target != region_id]
            other.updated_at = utc_now()
            pruned += 1

        self.repository.delete_region(region)
        self.repository.commit()
        logger.info(f"Deleted region {region_id}; pruned connections from {pruned} region(s)")

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def add_connection(self, region_id: str, target_id: str, symmetric: bool = False) -> Region:
        """
        Add a directed connection, or both directions when symmetric is set.

        The rows are re-read under a lock before the list is modified, so two
        concurrent additions to the same region do not overwrite each other.
        """
        if region_id == target_id:
            raise ValidationError("A region cannot connect to itself")

        # Lock in id order so two symmetric adds on the same pair cannot deadlock
        ids = sorted({region_id, target_id}) if symmetric else [region_id]
        locked = {rid: self._require_region(rid, for_update=True) for rid in ids}
        if not symmetric and self.repository.get_region(target_id) is None:
            raise NotFoundError(f"Region '{target_id}' not found")

        self._append_connection(locked[region_id], target_id)
        if symmetric:
            self._append_connection(locked[target_id], region_id)

        self.repository.commit()
        region = locked[region_id]
        self.repository.refresh(region)
        return Region.model_validate(region)

    def remove_connection(self, region_id: str, target_id: str, symmetric: bool = False) -> Region:
        """Remove a connection; a connection that is not there is not an error."""
        ids = sorted({region_id, target_id}) if symmetric else [region_id]
        locked = {}
        for rid in ids:
            row = self.repository.get_region(rid, for_update=True)
            if row is None and rid == region_id:
                raise NotFoundError(f"Region '{region_id}' not found")
            if row is not None:
                locked[rid] = row

        self._drop_connection(locked[region_id], target_id)
        if symmetric and target_id in locked:
            self._drop_connection(locked[target_id], region_id)

        self.repository.commit()
        region = locked[region_id]
        self.repository.refresh(region)
        return Region.model_validate(region)

    def repair_connections(self) -> Tuple[int, List[Region]]:
        """
        Drop dangling connection ids across the whole store.

        Returns the number of regions changed and the repaired set. The rows
        are locked while the cleaned lists are written back.
        """
        rows = {row.id: row for row in self.repository.list_regions(for_update=True)}
        before = [Region.model_validate(row) for row in rows.values()]
        after = repair_dangling_connections(before)
        changed = count_repaired_regions(before, after)
        if changed:
            for region in after:
                row = rows[region.id]
                if list(row.connections or []) != region.connections:
                    row.connections = list(region.connections)
                    row.updated_at = utc_now()
            self.repository.commit()
            logger.info(f"Repaired dangling connections on {changed} region(s)")
        return changed, after

    # ------------------------------------------------------------------
    # Places
    # ------------------------------------------------------------------

    def create_place(self, region_id: str, payload: PlaceCreate) -> Place:
        """
        Create one place in a region.

        Raises:
            NotFoundError: region does not exist
            ConflictError: explicit place id already taken
        """
        region = self._require_region(region_id)
        place_id = payload.id or new_id()
        if place_id in self.repository.place_ids():
            raise ConflictError(f"Place with id '{place_id}' already exists")

        siblings = [place.id for place in region.places]
        [place] = self._build_places(
            region_id, [payload], [place_id], siblings, first_sort_order=len(siblings)
        )
        self.repository.add_places([place])
        self.repository.commit()
        self.repository.refresh(place)
        return Place.model_validate(place)

    def delete_place(self, region_id: str, place_id: str) -> None:
        """Delete a place and prune it from its siblings' connections and routes."""
        self._require_region(region_id)
        place = self.repository.get_place(region_id, place_id)
        if place is None:
            raise NotFoundError(f"Place '{place_id}' not found in region '{region_id}'")

        for sibling in self.repository.list_places(region_id):
            if sibling.id == place_id:
                continue
            if place_id in (sibling.connections or []):
                sibling.connections = [c for c in sibling.connections if c != place_id]
            if any(route.get("to") == place_id for route in sibling.routes or []):
                sibling.routes = [r for r in sibling.routes if r.get("to") != place_id]

        self.repository.delete_place(place)
        self.repository.commit()

    # ------------------------------------------------------------------
    # Bulk import
    # ------------------------------------------------------------------

    def import_regions(self, raw_items: Sequence[Any]) -> ImportReport:
        """
        Import a batch of raw region payloads.

        Each item is all-or-nothing; the batch is best effort across items.
        Connections naming another item of the batch, by its ref or explicit
        id, are resolved to that item's final id. Anything else that is not an
        existing region is dropped.
        """
        report = ImportReport()
        if not raw_items:
            return report

        existing_region_ids = self.repository.region_ids()
        taken_region_ids = set(existing_region_ids)
        taken_place_ids = self.repository.place_ids()
        aliases: Dict[str, str] = {}
        staged: List[_StagedItem] = []
        outcomes: Dict[int, ImportOutcome] = {}

        for index, raw in enumerate(raw_items):
            try:
                entry = self._stage_import_item(
                    index, raw, existing_region_ids, taken_region_ids, taken_place_ids, aliases
                )
            except _ItemRejected as exc:
                logger.warning(f"Rejected import item {index}: {exc}")
                outcomes[index] = ImportOutcome(index=index, error=ItemError(index=index, reason=str(exc)))
                continue
            staged.append(entry)

        rows = []
        first_sort_order = self.repository.next_sort_order()
        for offset, entry in enumerate(staged):
            connections = [aliases.get(target, target) for target in entry.item.connections]
            region = self._build_region(
                entry.item, entry.region_id, existing_region_ids | set(aliases.values()),
                connections=connections,
            )
            region.sort_order = first_sort_order + offset
            region.places = self._build_places(entry.region_id, entry.item.places, entry.place_ids)
            rows.append((entry.index, region))

        for _, region in rows:
            self.repository.add_region(region)
        self.repository.commit()

        for index, region in rows:
            self.repository.refresh(region)
            outcomes[index] = ImportOutcome(index=index, region=Region.model_validate(region))

        report.outcomes = [outcomes[index] for index in sorted(outcomes)]
        logger.info(
            f"Imported {len(report.imported)} region(s), rejected {len(report.errors)}"
        )
        return report

    def _stage_import_item(
        self,
        index: int,
        raw: Any,
        existing_region_ids: Set[str],
        taken_region_ids: Set[str],
        taken_place_ids: Set[str],
        aliases: Dict[str, str],
    ) -> _StagedItem:
        """Validate one item and claim its ids; nothing is claimed if it fails."""
        if not isinstance(raw, dict):
            raise _ItemRejected("Item must be an object")
        try:
            item = RegionImportItem.model_validate(raw)
        except PydanticValidationError as exc:
            raise _ItemRejected(describe_validation_error(exc)) from exc

        if item.id is not None:
            if item.id in existing_region_ids:
                raise _ItemRejected(f"Region with id '{item.id}' already exists")
            if item.id in taken_region_ids or item.id in aliases:
                raise _ItemRejected(f"Duplicate region id '{item.id}' in batch")
        if item.ref is not None:
            if item.ref in existing_region_ids:
                raise _ItemRejected(f"Ref '{item.ref}' names an existing region")
            if item.ref in aliases:
                raise _ItemRejected(f"Duplicate ref '{item.ref}' in batch")

        place_ids = []
        for place in item.places:
            place_id = place.id or new_id()
            if place_id in taken_place_ids or place_id in place_ids:
                raise _ItemRejected(f"Place with id '{place_id}' already exists")
            place_ids.append(place_id)

        region_id = item.id or new_id()
        taken_region_ids.add(region_id)
        taken_place_ids.update(place_ids)
        aliases[region_id] = region_id
        if item.ref is not None:
            aliases[item.ref] = region_id
        return _StagedItem(index=index, item=item, region_id=region_id, place_ids=place_ids)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_region(self, region_id: str, for_update: bool = False) -> RegionModel:
        region = self.repository.get_region(region_id, for_update=for_update)
        if region is None:
            raise NotFoundError(f"Region '{region_id}' not found")
        return region

    def _build_region(
        self,
        payload,
        region_id: str,
        known_ids: Set[str],
        connections: Optional[List[str]] = None,
    ) -> RegionModel:
        """Build a region row with every default resolved."""
        x, y = resolve_position(payload.position)
        visibility = resolve_visibility(payload.visibility)
        return RegionModel(
            id=region_id,
            name=payload.name,
            subtitle=payload.subtitle,
            description=payload.description,
            position_x=x,
            position_y=y,
            color=payload.color,
            key_locations=list(payload.key_locations),
            population=payload.population,
            threat=payload.threat,
            connections=normalize_connections(
                payload.connections if connections is None else connections,
                known_ids,
                self_id=region_id,
            ),
            image_url=payload.image_url,
            visibility_free_users=visibility["free_users"],
            visibility_signed_in_users=visibility["signed_in_users"],
            visibility_premium_users=visibility["premium_users"],
        )

    def _build_places(
        self,
        region_id: str,
        payloads: Sequence[PlaceCreate],
        place_ids: Sequence[str],
        existing_sibling_ids: Sequence[str] = (),
        first_sort_order: int = 0,
    ) -> List[PlaceModel]:
        """
        Build place rows for one region.

        Place connections and route targets must name a place of the same
        region; references between places built together resolve because ids
        are assigned first.
        """
        sibling_ids = set(existing_sibling_ids) | set(place_ids)
        places = []
        for offset, (payload, place_id) in enumerate(zip(payloads, place_ids)):
            x, y = resolve_position(payload.position)
            connections = normalize_connections(payload.connections, sibling_ids, self_id=place_id)
            routes = [
                route.model_dump(mode="json")
                for route in payload.routes
                if route.to in connections
            ]
            places.append(PlaceModel(
                id=place_id,
                region_id=region_id,
                name=payload.name,
                type=payload.type.value,
                position_x=x,
                position_y=y,
                size=payload.size.value,
                importance=payload.importance,
                description=payload.description,
                connections=connections,
                routes=routes,
                sort_order=first_sort_order + offset,
            ))
        return places

    def _create_embedded_places(self, region_id: str, raw_places: Sequence[Any]) -> List[ItemError]:
        """Create the places sent with a new region; failures are logged and returned."""
        failed = []
        payloads = []
        place_ids = []
        taken = self.repository.place_ids()
        for index, raw in enumerate(raw_places):
            try:
                payload = PlaceCreate.model_validate(raw)
            except PydanticValidationError as exc:
                failed.append(ItemError(index=index, reason=describe_validation_error(exc)))
                continue
            place_id = payload.id or new_id()
            if place_id in taken:
                failed.append(ItemError(index=index, reason=f"Place with id '{place_id}' already exists"))
                continue
            taken.add(place_id)
            payloads.append((index, payload))
            place_ids.append(place_id)

        if payloads:
            places = self._build_places(region_id, [p for _, p in payloads], place_ids)
            try:
                self.repository.add_places(places)
                self.repository.commit()
            except StorageError as exc:
                failed.extend(ItemError(index=index, reason=exc.message) for index, _ in payloads)
                failed.sort(key=lambda error: error.index)

        for error in failed:
            logger.warning(f"Place {error.index} of region {region_id} not created: {error.reason}")
        return failed

    @staticmethod
    def _apply_visibility(region: RegionModel, visibility: VisibilityInput) -> None:
        resolved = resolve_visibility(visibility, current=region.visibility)
        region.visibility_free_users = resolved["free_users"]
        region.visibility_signed_in_users = resolved["signed_in_users"]
        region.visibility_premium_users = resolved["premium_users"]

    @staticmethod
    def _append_connection(region: RegionModel, target_id: str) -> None:
        if target_id in (region.connections or []):
            return
        # Assign a new list so the JSON column is flagged as changed
        region.connections = list(region.connections or []) + [target_id]
        region.updated_at = utc_now()

    @staticmethod
    def _drop_connection(region: RegionModel, target_id: str) -> None:
        if target_id not in (region.connections or []):
            return
        region.connections = [target for target in region.connections if target != target_id]
        region.updated_at = utc_now()
