# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the business logic behind the HTTP layer:
# - models/: Pydantic schemas for data validation
# - services/: Task, upload, storage and payment services
#
# Services receive their clients through the constructor and never read
# request state, so they can be tested without FastAPI.
# =============================================================================
