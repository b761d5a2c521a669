from keygate.presentation.api.routers.admin import router as admin_router
from keygate.presentation.api.routers.auth import router as auth_router
from keygate.presentation.api.routers.hwid import router as hwid_router

__all__ = [
    "admin_router",
    "auth_router",
    "hwid_router",
]
