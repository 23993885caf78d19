"""
PlaceMarker Core: Services
==========================

Adapters and pure logic used by SpatialStore and the routes:

    geofence              haversine distance, visible-set filter
    persistence_gateway   local durable store of marked places
    location              device permission and position fixes
    retry                 tenacity policy for remote calls
    identity              anonymous identity (Firebase Auth REST)
    note_store            remote note records (Firebase RTDB REST / memory)
    notes_sync            per-user notes on top of the two above
    discovery             Google Places search and details
"""
