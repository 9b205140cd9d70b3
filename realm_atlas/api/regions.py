"""Region API endpoints."""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from realm_atlas.core.config import settings
from realm_atlas.core.deps import get_region_service
from realm_atlas.schemas.place import PlaceCreate, PlaceEnvelope, PlaceListResponse
from realm_atlas.schemas.region import (
    BulkImportRequest,
    BulkImportResponse,
    ConnectionRequest,
    DeleteResponse,
    RegionCreateRequest,
    RegionCreateResponse,
    RegionEnvelope,
    RegionLink,
    RegionLinksResponse,
    RegionListResponse,
    RegionUpdate,
    RepairResponse,
    VisibilityUpdateRequest,
)
from realm_atlas.services.region_graph import RegionGraphService

router = APIRouter()


@router.get("", response_model=RegionListResponse)
def list_regions(
    user_type: Optional[str] = Query(None, alias="userType"),
    service: RegionGraphService = Depends(get_region_service)
):
    """Get the regions visible to a user type (defaults to free)."""
    if user_type is None:
        user_type = settings.DEFAULT_USER_TYPE
    regions = service.list_regions(user_type)
    return {"regions": regions}


@router.get("/user-type/{user_type}", response_model=RegionListResponse)
def list_regions_for_user_type(
    user_type: str,
    service: RegionGraphService = Depends(get_region_service)
):
    """Get the regions visible to a user type given in the path."""
    return {"regions": service.list_regions(user_type)}


@router.get("/isolated", response_model=RegionListResponse)
def list_isolated_regions(service: RegionGraphService = Depends(get_region_service)):
    """Get regions without outgoing connections."""
    return {"regions": service.find_isolated_regions()}


@router.get("/links", response_model=RegionLinksResponse)
def list_region_links(
    user_type: Optional[str] = Query(None, alias="userType"),
    service: RegionGraphService = Depends(get_region_service)
):
    """Get undirected links between visible regions, one per connected pair."""
    if user_type is None:
        user_type = settings.DEFAULT_USER_TYPE
    pairs = service.links(user_type)
    return {"links": [RegionLink(source=source, target=target) for source, target in pairs]}


@router.post("", response_model=RegionCreateResponse, status_code=status.HTTP_201_CREATED)
def create_region(
    body: RegionCreateRequest,
    service: RegionGraphService = Depends(get_region_service)
):
    """Create a region; embedded places that fail are listed in failedPlaces."""
    result = service.create_region(body.region)
    return {"region": result.region, "failed_places": result.failed_places}


@router.post("/bulk", response_model=BulkImportResponse, status_code=status.HTTP_201_CREATED)
def bulk_import_regions(
    body: BulkImportRequest,
    service: RegionGraphService = Depends(get_region_service)
):
    """Import many regions; rejected items are reported per index in results."""
    report = service.import_regions(body.regions)
    return {"regions": report.imported, "results": report.errors}


@router.post("/repair-connections", response_model=RepairResponse)
def repair_region_connections(service: RegionGraphService = Depends(get_region_service)):
    """Drop connection ids that no longer name an existing region."""
    repaired, regions = service.repair_connections()
    return {"repaired": repaired, "regions": regions}


@router.get("/{region_id}", response_model=RegionEnvelope)
def get_region(
    region_id: str,
    service: RegionGraphService = Depends(get_region_service)
):
    """Get a specific region by ID."""
    return {"region": service.get_region(region_id)}


@router.put("/{region_id}", response_model=RegionEnvelope)
def update_region(
    region_id: str,
    patch: RegionUpdate,
    service: RegionGraphService = Depends(get_region_service)
):
    """Update the fields present in the body; everything else is left alone."""
    return {"region": service.update_region(region_id, patch)}


@router.put("/{region_id}/visibility", response_model=RegionEnvelope)
def update_region_visibility(
    region_id: str,
    body: VisibilityUpdateRequest,
    service: RegionGraphService = Depends(get_region_service)
):
    """Toggle visibility flags only."""
    return {"region": service.update_visibility(region_id, body.visibility)}


@router.delete("/{region_id}", response_model=DeleteResponse)
def delete_region(
    region_id: str,
    service: RegionGraphService = Depends(get_region_service)
):
    """Delete a region, its places and every connection pointing at it."""
    service.delete_region(region_id)
    return {"success": True}


@router.post("/{region_id}/connections", response_model=RegionEnvelope)
def add_region_connection(
    region_id: str,
    body: ConnectionRequest,
    service: RegionGraphService = Depends(get_region_service)
):
    """Connect a region to another; symmetric adds the reverse link too."""
    return {"region": service.add_connection(region_id, body.target, symmetric=body.symmetric)}


@router.delete("/{region_id}/connections/{target_id}", response_model=RegionEnvelope)
def remove_region_connection(
    region_id: str,
    target_id: str,
    symmetric: bool = False,
    service: RegionGraphService = Depends(get_region_service)
):
    """Remove a connection; symmetric removes the reverse link too."""
    return {"region": service.remove_connection(region_id, target_id, symmetric=symmetric)}


@router.get("/{region_id}/places", response_model=PlaceListResponse)
def list_region_places(
    region_id: str,
    service: RegionGraphService = Depends(get_region_service)
):
    """Get the places of a region."""
    return {"places": service.list_places(region_id)}


@router.post("/{region_id}/places", response_model=PlaceEnvelope, status_code=status.HTTP_201_CREATED)
def create_region_place(
    region_id: str,
    place: PlaceCreate,
    service: RegionGraphService = Depends(get_region_service)
):
    """Add a place to a region."""
    return {"place": service.create_place(region_id, place)}


@router.delete("/{region_id}/places/{place_id}", response_model=DeleteResponse)
def delete_region_place(
    region_id: str,
    place_id: str,
    service: RegionGraphService = Depends(get_region_service)
):
    """Delete a place and prune references to it from sibling places."""
    service.delete_place(region_id, place_id)
    return {"success": True}
