"""
Prospect Pipeline Analytics Backend Package.

FastAPI service layer that turns prospect pipeline counts and email-campaign
statistics into a five-stage conversion funnel with per-stage insights.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Business logic services
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
