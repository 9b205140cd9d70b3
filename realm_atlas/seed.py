"""Seed the default world map."""
from sqlalchemy.orm import Session
from realm_atlas.core.database import SessionLocal
from realm_atlas.services.region_graph import ImportReport, RegionGraphService
from realm_atlas.services.region_repository import RegionRepository

DEFAULT_REGIONS = [
    {
        "ref": "oris",
        "name": "Oris",
        "subtitle": "The Fractured Crown",
        "position": {"x": 50, "y": 40},
        "color": "from-blue-500 to-blue-600",
        "description": "Central continent and seat of Guardian power, characterized by crystalline formations and floating islands.",
        "keyLocations": ["Guardian Citadel", "Shattered Plaza", "Crystal Gardens"],
        "population": "~2.3 million",
        "threat": "High Guardian Presence",
        "connections": ["askar", "duskar", "mistveil", "voidlands"],
    },
    {
        "ref": "askar",
        "name": "Askar",
        "subtitle": "The Burning Wastes",
        "position": {"x": 25, "y": 60},
        "color": "from-red-500 to-red-600",
        "description": "Desert continent where nightmare energy has crystallized into dangerous formations that amplify psychic abilities.",
        "keyLocations": ["The Glass Citadel", "Crimson Dunes", "The Howling Spires"],
        "population": "~800,000",
        "threat": "Extreme Nightmare Activity",
        "connections": ["oris", "voidlands"],
    },
    {
        "ref": "duskar",
        "name": "Duskar",
        "subtitle": "The Twilight Realm",
        "position": {"x": 75, "y": 30},
        "color": "from-purple-500 to-purple-600",
        "description": "Perpetually shrouded in twilight, this continent exists partially in the dream realm.",
        "keyLocations": ["The Umbral Gate", "Whisper Valley", "The Dreaming Spires"],
        "population": "~1.1 million",
        "threat": "Reality Distortion",
        "connections": ["oris"],
        "visibility": {"freeUsers": False, "signedInUsers": True, "premiumUsers": True},
    },
    {
        "ref": "mistveil",
        "name": "Mistveil",
        "subtitle": "The Hidden Shores",
        "position": {"x": 30, "y": 25},
        "color": "from-teal-500 to-teal-600",
        "description": "Mysterious island continent cloaked in perpetual mist, rumored to hide pre-Convergence technology.",
        "keyLocations": ["The Ancient Archive", "Fog Harbor", "The Sunken City"],
        "population": "~500,000",
        "threat": "Unknown Entities",
        "connections": ["oris"],
    },
    {
        "ref": "voidlands",
        "name": "The Voidlands",
        "subtitle": "The Shattered Expanse",
        "position": {"x": 60, "y": 70},
        "color": "from-gray-600 to-gray-700",
        "description": "A devastated region where reality itself has been torn apart by void energy, creating floating landmasses.",
        "keyLocations": ["The Null Zone", "Floating Ruins", "The Event Horizon"],
        "population": "~50,000 (estimated)",
        "threat": "Reality Breakdown",
        "connections": ["oris", "askar"],
        "visibility": {"freeUsers": False, "signedInUsers": False, "premiumUsers": True},
    },
]


def seed_regions(db: Session) -> ImportReport:
    """Import the default regions unless the map already has some."""
    service = RegionGraphService(RegionRepository(db))
    existing = service.list_regions()
    if existing:
        print(f"✓ Found {len(existing)} existing regions, skipping region seed")
        return ImportReport()

    report = service.import_regions(DEFAULT_REGIONS)
    for region in report.imported:
        print(f"✓ Added {region.name}: {region.subtitle} ({region.id})")
    for error in report.errors:
        print(f"✗ Region {error.index} rejected: {error.reason}")
    return report


def seed_database():
    db = SessionLocal()
    try:
        seed_regions(db)
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
