# phoneverify/routers/health_router.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlmodel import Session

from phoneverify.core.deps import get_flood_service, get_sms_service
from phoneverify.db.session import get_session
from phoneverify.services.rate_limit.flood_service import FloodService
from phoneverify.services.sms.sms_service import SmsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def health_check(
    session: Session = Depends(get_session),
    flood: FloodService = Depends(get_flood_service),
    sms: SmsService = Depends(get_sms_service),
):
    """Health check; includes DB connectivity."""
    try:
        session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")

    return {
        "status": "ok",
        "database": "connected",
        "flood_backend": "redis" if flood.redis_client is not None else "memory",
        "sms_provider": sms.provider if sms.is_enabled() else "disabled",
    }
