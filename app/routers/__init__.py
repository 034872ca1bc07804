# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - tasks.py: Image edit task create/list/status/delete
# - results.py: Save an edit result into the user's storage
# - uploads.py: Direct media uploads
# - payments.py: Stripe checkout and payment intents
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import tasks
from . import results
from . import uploads
from . import payments

__all__ = [
    "health",
    "tasks",
    "results",
    "uploads",
    "payments",
]
