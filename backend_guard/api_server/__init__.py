"""
API server package: HTTP interface for the UI layer.

Exposes the audit pipeline, transaction preparation and the explorer
read-through. Typed errors are mapped to HTTP status codes here and nowhere else.
"""
