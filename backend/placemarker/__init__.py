"""
PlaceMarker Core: Package Initializer
=====================================

What: The geofence and persistence synchronization engine behind the
      PlaceMarker app (marked places, live radius filtering, private notes).
Who:  Imported by uvicorn (placemarker.main:app), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   SpatialStore (state + reducer)    │  ← single owner of in-memory state
    ├─────────────────────────────────────┤
    │  Services: geofence, gateway,       │  ← pure math and store adapters
    │  notes sync, location, discovery    │
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

    Adapters below the store return an Outcome instead of raising, so the
    store and the routes decide how a failure surfaces.
"""

__version__ = "1.0.0"
