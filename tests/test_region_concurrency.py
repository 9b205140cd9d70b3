"""Concurrent connection edits on the same region.

Two curators adding a connection to the same region at once must both win:
the second writer re-reads the stored list under a row lock instead of
writing back a stale copy.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from sqlalchemy.orm import sessionmaker

from realm_atlas.models.region import Region
from realm_atlas.schemas.region import RegionUpdate
from realm_atlas.services.region_graph import RegionGraphService
from realm_atlas.services.region_repository import RegionRepository


def _seed(engine):
    Session = sessionmaker(bind=engine)
    with Session() as db:
        db.add_all([
            Region(id=region_id, name=region_id.title(), subtitle="Seed", connections=[])
            for region_id in ("hub", "north", "south", "east")
        ])
        db.commit()
    return Session


def test_add_connection_rereads_stale_copy(file_engine):
    """A session holding an old copy of the region still keeps the other writer's edit."""
    Session = _seed(file_engine)
    first_db = Session()
    second_db = Session()
    try:
        first = RegionGraphService(RegionRepository(first_db))
        second = RegionGraphService(RegionRepository(second_db))

        # Both curators load the region before either writes
        assert first.get_region("hub").connections == []
        assert second.get_region("hub").connections == []

        second.add_connection("hub", "north")
        result = first.add_connection("hub", "south")

        assert result.connections == ["north", "south"]
    finally:
        first_db.close()
        second_db.close()

    with Session() as check_db:
        assert check_db.get(Region, "hub").connections == ["north", "south"]


def test_update_connections_keeps_only_existing_regions_after_delete(file_engine):
    """An update built before a delete cannot resurrect the deleted id."""
    Session = _seed(file_engine)
    editor_db = Session()
    admin_db = Session()
    try:
        editor = RegionGraphService(RegionRepository(editor_db))
        admin = RegionGraphService(RegionRepository(admin_db))

        editor.get_region("hub")
        admin.delete_region("east")

        updated = editor.update_region(
            "hub", RegionUpdate(connections=["north", "east"])
        )
        assert updated.connections == ["north"]
    finally:
        editor_db.close()
        admin_db.close()


def _set_connections(Session, region_id, connections):
    with Session() as db:
        db.get(Region, region_id).connections = connections
        db.commit()


def test_delete_prunes_from_current_lists_not_stale_copies(file_engine):
    """Pruning a deleted id keeps a connection added after the deleter read the map."""
    Session = _seed(file_engine)
    _set_connections(Session, "hub", ["east"])
    editor_db = Session()
    admin_db = Session()
    try:
        editor = RegionGraphService(RegionRepository(editor_db))
        admin = RegionGraphService(RegionRepository(admin_db))

        # The admin session keeps its loaded rows alive in its identity map
        held = admin.repository.list_regions()
        assert [r.connections for r in held if r.id == "hub"] == [["east"]]

        editor.add_connection("hub", "north")
        admin.delete_region("east")
    finally:
        editor_db.close()
        admin_db.close()

    with Session() as check_db:
        assert check_db.get(Region, "hub").connections == ["north"]
        assert check_db.get(Region, "east") is None


def test_repair_keeps_connection_added_after_read(file_engine):
    Session = _seed(file_engine)
    _set_connections(Session, "hub", ["ghost"])
    editor_db = Session()
    admin_db = Session()
    try:
        editor = RegionGraphService(RegionRepository(editor_db))
        admin = RegionGraphService(RegionRepository(admin_db))

        held = admin.repository.list_regions()
        assert [r.connections for r in held if r.id == "hub"] == [["ghost"]]

        editor.add_connection("hub", "north")
        repaired, _ = admin.repair_connections()
        assert repaired == 1
    finally:
        editor_db.close()
        admin_db.close()

    with Session() as check_db:
        assert check_db.get(Region, "hub").connections == ["north"]


@pytest.mark.postgres
def test_parallel_add_connection_postgres(postgres_engine):
    """Parallel adds to one region serialize on the row lock."""
    Session = _seed(postgres_engine)
    targets = ["north", "south", "east"]
    barrier = Barrier(len(targets))

    def add(target):
        db = Session()
        try:
            service = RegionGraphService(RegionRepository(db))
            service.get_region("hub")
            barrier.wait()
            service.add_connection("hub", target)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=len(targets)) as executor:
        list(executor.map(add, targets))

    with Session() as check_db:
        assert sorted(check_db.get(Region, "hub").connections) == sorted(targets)
