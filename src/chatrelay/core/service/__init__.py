"""Chat orchestration services.

Submodules are imported directly (``chatrelay.core.service.orchestrator``
etc.); nothing is re-exported here so that the db layer can import
``chatrelay.core.service.models`` without pulling in the services.
"""
