"""Delivery settings singleton access."""

from typing import Optional

from libs.common.currency import to_money
from libs.common.logging import get_logger
from services.sales_service.models import AuditEntityType, DeliverySettings
from services.sales_service.schemas import DeliverySettingsUpdate
from services.sales_service.services.audit import log_audit
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

RATE_FIELDS = ("onloading_cost", "delivery_cost", "offloading_cost")


async def get_delivery_settings(db: AsyncSession) -> Optional[DeliverySettings]:
    result = await db.execute(
        select(DeliverySettings).where(DeliverySettings.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_or_create_delivery_settings(db: AsyncSession) -> DeliverySettings:
    """Return the settings row, creating it with zero rates on first read."""
    settings = await get_delivery_settings(db)
    if settings:
        return settings

    settings = DeliverySettings(
        onloading_cost=to_money(0),
        delivery_cost=to_money(0),
        offloading_cost=to_money(0),
        is_active=True,
    )
    db.add(settings)
    await db.commit()
    await db.refresh(settings)
    logger.info("Created default delivery settings %s", settings.id)
    return settings


async def update_delivery_settings(
    db: AsyncSession, *, data: DeliverySettingsUpdate, performed_by: str
) -> DeliverySettings:
    settings = await get_or_create_delivery_settings(db)

    changes = data.model_dump(exclude_none=True)
    old_value = {field: str(getattr(settings, field)) for field in changes}
    for field, value in changes.items():
        setattr(settings, field, to_money(value))
    settings.updated_by = performed_by

    await log_audit(
        db,
        AuditEntityType.SETTINGS,
        settings.id,
        "rates_updated",
        performed_by,
        old_value=old_value,
        new_value={field: str(to_money(value)) for field, value in changes.items()},
    )
    await db.commit()
    await db.refresh(settings)

    logger.info(
        "Delivery rates updated by %s: %s",
        performed_by,
        ", ".join(f"{field}={getattr(settings, field)}" for field in RATE_FIELDS),
    )
    return settings
