"""
PlaceMarker API: Request/Response Schemas
=========================================

What:  Pydantic models defining the HTTP contract with the map client.
How:   Domain value objects (Place, Region) are reused directly where the wire
       shape equals the domain shape; everything else is declared here.
"""
