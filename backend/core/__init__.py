"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg (prospect counts)
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from backend.core import get_settings, init_db, close_db

Dependency aliases (SettingsDep, PipelineOrchestratorDep) live in
backend.core.dependencies and are imported from there directly, since they
depend on the services layer.
"""

# =============================================================================
# Re-exports from backend.core.config
# =============================================================================
from backend.core.config import Settings, get_settings

# =============================================================================
# Re-exports from backend.core.database
# =============================================================================
from backend.core.database import init_db, close_db, get_db_pool, execute_query_one

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    'execute_query_one',
]
