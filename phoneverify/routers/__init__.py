# Routers package
from . import verification_router
from . import phone_router
from . import tfa_router
from . import admin_router
from . import health_router

__all__ = [
    "verification_router",
    "phone_router",
    "tfa_router",
    "admin_router",
    "health_router"
]
