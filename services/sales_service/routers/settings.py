"""Delivery settings router: global per-bag surcharge rates."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.sales_service.schemas import (
    DeliverySettingsEnvelope,
    DeliverySettingsUpdate,
)
from services.sales_service.services import settings_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=DeliverySettingsEnvelope)
async def get_settings(db: AsyncSession = Depends(get_async_db)):
    """Current rates. Public; created with zero rates on first read."""
    settings = await settings_ops.get_or_create_delivery_settings(db)
    return {"success": True, "settings": settings}


@router.put("", response_model=DeliverySettingsEnvelope)
async def update_settings(
    request: DeliverySettingsUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    settings = await settings_ops.update_delivery_settings(
        db, data=request, performed_by=current_user.user_id
    )
    return {
        "success": True,
        "message": "Settings updated successfully",
        "settings": settings,
    }
