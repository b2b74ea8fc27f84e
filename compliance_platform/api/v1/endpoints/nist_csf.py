"""
NIST CSF catalog endpoints (read-only reference data).
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.models.nist_csf import CsfFunction, CsfCategory, CsfControl
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.nist_csf import CsfFunctionResponse, CsfControlResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/functions")
async def list_functions(
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """Full catalog tree: functions -> categories -> controls."""
    functions = db.query(CsfFunction).order_by(CsfFunction.display_order).all()
    return envelope(
        [CsfFunctionResponse.model_validate(function) for function in functions],
        count=len(functions),
    )


@router.get("/controls")
async def list_controls(
    function_code: Optional[str] = Query(None, description="e.g. PR"),
    category_code: Optional[str] = Query(None, description="e.g. PR.AC"),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    query = (
        db.query(CsfControl)
        .join(CsfCategory, CsfControl.category_id == CsfCategory.id)
        .join(CsfFunction, CsfCategory.function_id == CsfFunction.id)
    )
    if function_code:
        query = query.filter(CsfFunction.function_code == function_code.strip().upper())
    if category_code:
        query = query.filter(CsfCategory.category_code == category_code.strip().upper())

    controls = query.order_by(
        CsfFunction.display_order, CsfCategory.display_order, CsfControl.display_order
    ).all()
    return envelope(
        [CsfControlResponse.model_validate(control) for control in controls],
        count=len(controls),
    )


@router.get("/controls/{control_code}")
async def get_control(
    control_code: str,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    control = db.query(CsfControl).filter(CsfControl.control_code == control_code.strip().upper()).first()
    if not control:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Control {control_code} not found"
        )
    return envelope(CsfControlResponse.model_validate(control))
