# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the SmartPhoto API:
# - test_models.py: Pydantic schema validation
# - test_wanx_client.py: DashScope client against httpx.MockTransport
# - test_task_store.py / test_task_service.py: persistence and reconciliation
# - test_upload_service.py / test_payment_service.py: uploads and Stripe
# - test_api.py: HTTP endpoints through TestClient
#
# Run tests with: pytest
# =============================================================================
