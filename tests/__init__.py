# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Agora API:
# - fakes.py: In-memory Supabase and Redis doubles
# - test_models.py, test_security.py, test_pagination.py,
#   test_rate_limiter.py: Unit tests for schemas and lib/ helpers
# - test_auth.py ... test_users.py: API tests through the FastAPI TestClient
# - test_workers.py: Celery tasks run eagerly
#
# Run tests with: pytest
# =============================================================================
