import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from sqlmodel import Session

from app.config import settings
from app.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"

    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {e}")
        db_status = "failed"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database": db_status,
        "payment_gateway": "configured" if settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET else "missing_keys",
        "environment": settings.ENV,
        "timestamp": datetime.utcnow().isoformat()
    }
