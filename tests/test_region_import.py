"""Tests for bulk region import."""
import uuid

import pytest
from fastapi.testclient import TestClient

from realm_atlas.core.errors import StorageError
from realm_atlas.models.place import Place
from realm_atlas.models.region import Region


def _is_uuid(value):
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


# ============================================================================
# Service level
# ============================================================================

def test_empty_batch(service):
    report = service.import_regions([])
    assert report.imported == []
    assert report.errors == []


def test_partial_success_reports_bad_item_by_index(service):
    report = service.import_regions([
        {"name": "Oris", "subtitle": "The Fractured Crown"},
        {"subtitle": "No name here"},
        {"name": "Askar", "subtitle": "The Burning Wastes"},
    ])
    assert len(report.imported) == 2
    assert [e.index for e in report.errors] == [1]
    assert "name" in report.errors[0].reason
    assert [o.ok for o in report.outcomes] == [True, False, True]


def test_missing_subtitle_is_rejected(service):
    report = service.import_regions([{"name": "Oris"}])
    assert report.imported == []
    assert report.errors[0].index == 0
    assert "subtitle" in report.errors[0].reason


def test_non_object_item_is_rejected(service):
    report = service.import_regions(["Oris", {"name": "Askar", "subtitle": "Wastes"}])
    assert [e.index for e in report.errors] == [0]
    assert len(report.imported) == 1


def test_generated_ids_are_uuids(service):
    report = service.import_regions([{"name": "Oris", "subtitle": "Crown"}])
    assert _is_uuid(report.imported[0].id)


def test_explicit_id_format_is_up_to_the_caller(service):
    report = service.import_regions([{"id": "oris", "name": "Oris", "subtitle": "Crown"}])
    assert report.imported[0].id == "oris"


def test_blank_id_is_rejected(service):
    report = service.import_regions([{"id": "  ", "name": "Oris", "subtitle": "Crown"}])
    assert report.imported == []
    assert "id" in report.errors[0].reason


def test_id_collision_with_existing_region(service, make_region):
    make_region("oris", name="Original Oris")
    report = service.import_regions([
        {"id": "oris", "name": "Imposter", "subtitle": "Crown"},
        {"id": "askar", "name": "Askar", "subtitle": "Wastes"},
    ])
    assert [e.index for e in report.errors] == [0]
    assert "already exists" in report.errors[0].reason
    assert [r.id for r in report.imported] == ["askar"]
    assert service.get_region("oris").name == "Original Oris"


def test_duplicate_id_within_batch(service):
    report = service.import_regions([
        {"id": "oris", "name": "Oris", "subtitle": "Crown"},
        {"id": "oris", "name": "Oris Again", "subtitle": "Crown"},
    ])
    assert [r.name for r in report.imported] == ["Oris"]
    assert [e.index for e in report.errors] == [1]


def test_intra_batch_connection_by_ref_gets_final_id(service):
    """A placeholder ref resolves to the generated id of the item that carries it."""
    report = service.import_regions([
        {"name": "A", "subtitle": "First", "connections": ["B-temp-ref"]},
        {"ref": "B-temp-ref", "name": "B", "subtitle": "Second", "connections": ["A-ref"]},
    ])
    a, b = report.imported
    assert _is_uuid(b.id)
    assert a.connections == [b.id]
    # A carries no ref, so B's placeholder for it cannot resolve
    assert b.connections == []


def test_intra_batch_connection_by_explicit_id(service):
    report = service.import_regions([
        {"name": "A", "subtitle": "First", "connections": ["B-temp-ref"]},
        {"id": "B-temp-ref", "name": "B", "subtitle": "Second"},
    ])
    a, b = report.imported
    assert b.id == "B-temp-ref"
    assert a.connections == ["B-temp-ref"]


def test_connections_to_existing_regions_survive(service, make_region):
    make_region("oris")
    report = service.import_regions([
        {"name": "Askar", "subtitle": "Wastes", "connections": ["oris", "ghost"]},
    ])
    assert report.imported[0].connections == ["oris"]


def test_ref_naming_existing_region_is_rejected(service, make_region):
    """A ref may not shadow a stored id, so links to the stored region stay put."""
    make_region("oris")
    report = service.import_regions([
        {"ref": "oris", "name": "Imposter", "subtitle": "Crown"},
        {"name": "Askar", "subtitle": "Wastes", "connections": ["oris"]},
    ])
    assert [e.index for e in report.errors] == [0]
    assert "oris" in report.errors[0].reason
    assert [r.name for r in report.imported] == ["Askar"]
    assert report.imported[0].connections == ["oris"]


def test_overlong_field_rejects_only_that_item(service, db_session):
    report = service.import_regions([
        {"name": "Oris", "subtitle": "Crown"},
        {"name": "Askar", "subtitle": "Wastes", "color": "x" * 101},
        {"name": "Duskar", "subtitle": "Twilight", "population": "x" * 201},
        {"name": "Mistveil", "subtitle": "Shores"},
    ])
    assert [r.name for r in report.imported] == ["Oris", "Mistveil"]
    assert [e.index for e in report.errors] == [1, 2]
    assert "color" in report.errors[0].reason
    assert "population" in report.errors[1].reason
    assert db_session.query(Region).count() == 2


def test_imported_regions_are_listed_in_request_order(service, make_region):
    make_region("zz-existing")
    names = ["Oris", "Askar", "Duskar", "Mistveil", "The Voidlands"]
    service.import_regions([{"name": name, "subtitle": "Seed"} for name in names])
    service.import_regions([{"name": "Aftermath", "subtitle": "Later"}])

    listed = [r.name for r in service.list_regions()]
    assert listed == ["Zz-Existing"] + names + ["Aftermath"]


def test_connection_to_rejected_item_is_dropped(service):
    report = service.import_regions([
        {"name": "A", "subtitle": "First", "connections": ["bad"]},
        {"ref": "bad", "subtitle": "Missing name"},
    ])
    assert report.imported[0].connections == []
    assert [e.index for e in report.errors] == [1]


def test_defaults_match_single_create(service):
    report = service.import_regions([
        {"name": "Oris", "subtitle": "Crown", "visibility": {"premiumUsers": False},
         "position": {"y": 40}},
    ])
    region = report.imported[0]
    assert (region.position.x, region.position.y) == (0.0, 40.0)
    assert region.visibility.free_users is True
    assert region.visibility.signed_in_users is True
    assert region.visibility.premium_users is False


def test_places_are_imported_under_final_region_id(service, db_session):
    report = service.import_regions([{
        "name": "Oris",
        "subtitle": "Crown",
        "places": [
            {"id": "citadel", "name": "Guardian Citadel", "type": "facility",
             "connections": ["plaza"]},
            {"id": "plaza", "name": "Shattered Plaza", "type": "ruins"},
        ],
    }])
    region = report.imported[0]
    assert [p.id for p in region.places] == ["citadel", "plaza"]
    assert all(p.region_id == region.id for p in region.places)
    assert region.places[0].connections == ["plaza"]
    assert db_session.query(Place).filter(Place.region_id == region.id).count() == 2


def test_bad_place_rejects_the_whole_item(service, db_session):
    """Each item is all-or-nothing: no region without its places."""
    report = service.import_regions([
        {"name": "Oris", "subtitle": "Crown", "places": [
            {"name": "Citadel", "type": "city"},
            {"name": "Spire", "type": "volcano"},
        ]},
        {"name": "Askar", "subtitle": "Wastes"},
    ])
    assert [e.index for e in report.errors] == [0]
    assert "places" in report.errors[0].reason
    assert db_session.query(Region).count() == 1
    assert db_session.query(Place).count() == 0


def test_place_id_collision_rejects_item(service, make_region, make_place):
    make_region("oris")
    make_place("oris", "citadel")
    report = service.import_regions([
        {"name": "Askar", "subtitle": "Wastes", "places": [
            {"id": "citadel", "name": "Glass Citadel", "type": "city"},
        ]},
    ])
    assert report.imported == []
    assert "citadel" in report.errors[0].reason


def test_store_failure_fails_whole_batch(service, monkeypatch):
    def broken_commit():
        raise StorageError("Failed to commit changes")

    monkeypatch.setattr(service.repository, "commit", broken_commit)
    with pytest.raises(StorageError):
        service.import_regions([{"name": "Oris", "subtitle": "Crown"}])


# ============================================================================
# API level
# ============================================================================

def test_bulk_endpoint(client: TestClient):
    response = client.post("/regions/bulk", json={"regions": [
        {"ref": "oris", "name": "Oris", "subtitle": "The Fractured Crown",
         "connections": ["askar"]},
        {"name": "Nameless"},
        {"ref": "askar", "name": "Askar", "subtitle": "The Burning Wastes",
         "connections": ["oris"]},
    ]})
    assert response.status_code == 201
    data = response.json()
    assert len(data["regions"]) == 2
    assert [r["index"] for r in data["results"]] == [1]

    oris, askar = data["regions"]
    assert oris["connections"] == [askar["id"]]
    assert askar["connections"] == [oris["id"]]


def test_bulk_endpoint_empty(client: TestClient):
    response = client.post("/regions/bulk", json={"regions": []})
    assert response.status_code == 201
    assert response.json() == {"regions": [], "results": []}


def test_bulk_endpoint_requires_array(client: TestClient):
    response = client.post("/regions/bulk", json={"regions": "not a list"})
    assert response.status_code == 422
    assert "error" in response.json()
