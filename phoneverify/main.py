# phoneverify/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from phoneverify.core.config import settings
from phoneverify.db.session import init_db
from phoneverify.routers import admin_router, health_router, phone_router, tfa_router, verification_router
from phoneverify.services.validation.exceptions import PhoneNumberException

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Phone Verify API",
    description="Phone number validation, storage and SMS verification",
    version="1.0.0",
)

# Verification state (tokens, verified numbers) lives in a signed cookie session
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY, same_site="lax")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PhoneNumberException)
async def phone_number_exception_handler(request: Request, exc: PhoneNumberException):
    logger.info(f"Rejected phone number on {request.url.path}: {exc.error_name} {exc.message}")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {"code": exc.error_name, "message": exc.message},
        },
    )


app.include_router(health_router.router, prefix="/health", tags=["Health"])
app.include_router(verification_router.router, prefix="/phonenumber-verification", tags=["Verification"])
app.include_router(phone_router.router, prefix="/phonenumber", tags=["Phone numbers"])
app.include_router(tfa_router.router, prefix="/tfa", tags=["Two factor authentication"])
app.include_router(admin_router.router, prefix="/admin", tags=["Admin"])


@app.on_event("startup")
async def startup():
    if settings.AUTO_CREATE_TABLES:
        init_db()
    logger.info("Phone Verify API started")
