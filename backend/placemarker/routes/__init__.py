"""
PlaceMarker API: Routes
=======================

    places.py:     /api/state, /api/places*, /api/search-radius, /api/region
    location.py:   /api/location/refresh, /api/device*
    notes.py:      /api/notes/{place_id}
    discovery.py:  /api/discovery/*
    health.py:     /health

Handlers stay thin: they translate HTTP to store/service calls and back.
"""
