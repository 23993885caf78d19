"""
PlaceMarker API: Middleware
===========================

Request → [Request ID] → [Access Log] → [GZip] → [CORS] → route

The request id is set first so the access log line and any error body
carry it.
"""
