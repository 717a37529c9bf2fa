# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the business logic:
# - models/: Pydantic schemas for data validation
# - services/: One service class per domain, holding every business rule
#
# Code in this package should NOT import from FastAPI or Celery at module
# level. Background tasks are imported lazily inside the functions that
# enqueue them. This keeps the logic testable and reusable.
# =============================================================================
