"""Region graph rules: visibility tiers, connection hygiene and default resolution.

Everything here is a pure function over region schemas (or plain id lists).
Nothing is persisted and no input is mutated; the service layer decides what
to write back.

Connections are a directed adjacency list per region. Region A listing B does
not oblige B to list A; callers that want a two-way link add both directions.

Missing-field defaults are resolved in exactly one place:
- position: a missing coordinate is 0
- visibility: a region without a visibility object is visible to every tier;
  on create a missing flag is True, on update a missing flag keeps the stored
  value
"""
import enum
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from realm_atlas.core.errors import ValidationError

if TYPE_CHECKING:
    from realm_atlas.schemas.region import Region, VisibilityInput
    from realm_atlas.schemas.common import PositionInput

logger = logging.getLogger(__name__)


class UserType(str, enum.Enum):
    """Reader tier used for visibility filtering."""
    FREE = "free"
    SIGNED_IN = "signed_in"
    PREMIUM = "premium"


# One-way mapping from user type to the visibility flag that governs it
VISIBILITY_FIELD_BY_USER_TYPE = {
    UserType.FREE: "free_users",
    UserType.SIGNED_IN: "signed_in_users",
    UserType.PREMIUM: "premium_users",
}

VISIBILITY_FIELDS = tuple(VISIBILITY_FIELD_BY_USER_TYPE.values())


def parse_user_type(value) -> UserType:
    """
    Resolve a user type tag.

    Raises:
        ValidationError: if the value is not one of free, signed_in, premium.
            Unknown tags are never treated as free.
    """
    if isinstance(value, UserType):
        return value
    try:
        return UserType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in UserType)
        raise ValidationError(f"Unknown user type '{value}'. Expected one of: {allowed}") from None


# ============================================================================
# Default resolution
# ============================================================================

def resolve_position(position: Optional["PositionInput"]) -> Tuple[float, float]:
    """Resolve a caller-supplied position to numeric (x, y); missing means 0."""
    if position is None:
        return 0.0, 0.0
    return float(position.x or 0), float(position.y or 0)


def resolve_visibility(
    visibility: Optional["VisibilityInput"],
    current: Optional[dict] = None,
) -> dict:
    """
    Resolve visibility flags keyed by free_users / signed_in_users / premium_users.

    Args:
        visibility: Flags supplied by the caller, possibly partial or absent
        current: Stored flags when updating; None when creating

    Returns:
        A dict with all three flags set
    """
    resolved = {}
    for field in VISIBILITY_FIELDS:
        supplied = getattr(visibility, field, None) if visibility is not None else None
        if supplied is not None:
            resolved[field] = bool(supplied)
        elif current is not None:
            resolved[field] = bool(current[field])
        else:
            resolved[field] = True
    return resolved


def normalize_connections(
    connections: Optional[Iterable[str]],
    known_ids: Iterable[str],
    self_id: Optional[str] = None,
) -> List[str]:
    """
    Keep only connection ids that resolve to a known region.

    Order of first occurrence is preserved; duplicates and self references
    are dropped.
    """
    known = set(known_ids)
    seen = set()
    kept = []
    for target in connections or []:
        if target in seen or target == self_id:
            continue
        if target not in known:
            logger.debug(f"Dropping dangling connection {self_id} -> {target}")
            continue
        seen.add(target)
        kept.append(target)
    return kept


# ============================================================================
# Graph queries
# ============================================================================

def is_visible_to(region: "Region", user_type: UserType) -> bool:
    """True when the region's flag for user_type is set, or it has no visibility at all."""
    if region.visibility is None:
        return True
    return bool(getattr(region.visibility, VISIBILITY_FIELD_BY_USER_TYPE[user_type]))


def regions_visible_to(regions: Sequence["Region"], user_type) -> List["Region"]:
    """
    Filter regions down to those the given user type may see.

    Input order is preserved. Raises ValidationError for an unknown user type.
    """
    user_type = parse_user_type(user_type)
    return [region for region in regions if is_visible_to(region, user_type)]


def find_isolated_regions(regions: Sequence["Region"]) -> List["Region"]:
    """Regions with no outgoing connections (empty or absent list)."""
    return [region for region in regions if not region.connections]


def repair_dangling_connections(regions: Sequence["Region"]) -> List["Region"]:
    """
    Drop connection ids that do not name a region in the set.

    Returns copies; the input regions are left untouched. Never raises on
    odd data: a region without a connections list comes back with an empty
    one. Running it twice gives the same result as running it once.
    """
    known_ids = {region.id for region in regions}
    repaired = []
    for region in regions:
        cleaned = normalize_connections(region.connections, known_ids, self_id=region.id)
        repaired.append(region.model_copy(update={"connections": cleaned}))
    return repaired


def count_repaired_regions(before: Sequence["Region"], after: Sequence["Region"]) -> int:
    """Number of regions whose connection list changed between two snapshots."""
    after_by_id = {region.id: region for region in after}
    return sum(
        1 for region in before
        if list(region.connections or []) != list(after_by_id[region.id].connections or [])
    )


def connection_pairs(regions: Sequence["Region"]) -> List[Tuple[str, str]]:
    """
    Undirected pairs for drawing links, one per connected pair.

    A pair is emitted once no matter whether one or both regions list the
    other. Connections to regions outside the set are skipped.
    """
    known_ids = {region.id for region in regions}
    seen = set()
    pairs = []
    for region in regions:
        for target in region.connections or []:
            if target not in known_ids or target == region.id:
                continue
            key = tuple(sorted((region.id, target)))
            if key in seen:
                continue
            seen.add(key)
            pairs.append((region.id, target))
    return pairs
