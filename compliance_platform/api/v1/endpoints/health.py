"""
Health check endpoint for monitoring and diagnostics.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.config import settings
from compliance_platform.models.nist_csf import CsfControl
from compliance_platform.schemas.common import envelope

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint that verifies:
    - API is running
    - Database connection works (SELECT 1)
    - NIST CSF catalog is loaded

    Returns:
        {"success": true, "data": {"ok": true, "db": true, "catalog_controls": N, "environment": ...}}
    """
    try:
        db.execute(text("SELECT 1")).fetchone()
        catalog_controls = db.query(func.count(CsfControl.id)).scalar() or 0
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed"
        )

    return envelope({
        "ok": True,
        "db": True,
        "catalog_controls": catalog_controls,
        "environment": settings.APP_ENV,
    })
