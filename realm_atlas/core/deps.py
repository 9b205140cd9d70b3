"""FastAPI dependencies."""
from fastapi import Depends
from sqlalchemy.orm import Session
from realm_atlas.core.database import get_db
from realm_atlas.services.region_graph import RegionGraphService
from realm_atlas.services.region_repository import RegionRepository


def get_region_service(db: Session = Depends(get_db)) -> RegionGraphService:
    """Region graph service bound to the request's database session."""
    return RegionGraphService(RegionRepository(db))
