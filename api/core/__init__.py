"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks used by more than one feature (settings,
DB wiring, object storage, error types). Artwork-specific SQL and business
logic live in `artworks/`.
"""
