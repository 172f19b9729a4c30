"""API routers."""

from intake_api.routers.intake import router as intake_router
from intake_api.routers.admin_intake import router as admin_intake_router
