'''
Pipeline Analytics Backend Test Suite

Test Modules:
-------------
- test_field_resolution.py: Upstream payload normalization
  - Ordered field-name resolution
  - Counter/rate coercion and clamping
  - Account/campaign/legacy settings parsing

- test_configuration.py: Active account/campaign resolution
  - Default flag vs first-in-list tie-break
  - Legacy single-key mode

- test_availability.py: live / rate_limited / not_configured classification

- test_funnel.py: Funnel aggregation
  - Derived rates, zero guards, half-up rounding
  - Stage value/percentage sources, status gating

- test_stage_insights.py: Golden insight text and template switches

- test_data_sources.py: LiveSource (httpx.MockTransport, mocked asyncpg) and FixtureSource

- test_orchestrator.py: Recompute, last-write-wins, freshness, background refresh

- test_api.py: REST router and application lifespan

Running Tests:
--------------
    pip install -e ".[test]"
    pytest backend/tests -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

# All tests live in individual modules
# This file enables pytest discovery of the tests directory

__all__ = []
