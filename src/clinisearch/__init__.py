"""
CliniSearch - Patient lookup engine for prefix-only document stores

This package contains:
- search: Query strategies, result merging, pagination cursors, entity cache
  and the search session controller
- patients: Patient entity schemas and the record service (cache-invalidating CRUD)
- storage: Document store contract and adapters (in-memory, Postgres)
- api: FastAPI REST endpoints
- platform: Cross-cutting concerns (configuration, logging)
"""

__version__ = "0.1.0"
