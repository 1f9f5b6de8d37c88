"""
CiviSure - SOS Alert Logic
"""

import logging
from typing import Optional, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.auth import AuthContext, get_user_by_id
from civisure.errors import InvalidInput, NotFound
from civisure.models.sos_alert import SOSAlert, SOSStatus, DEFAULT_SOS_MESSAGE
from civisure.models.user import User
from civisure.realtime import AlertBroadcaster, NEW_SOS_EVENT, SOS_UPDATED_EVENT
from civisure.timestamps import now_utc, isoformat_utc

logger = logging.getLogger(__name__)

USER_HISTORY_LIMIT = 20


def alert_fields(alert: SOSAlert) -> dict:
    return {
        "id": alert.id,
        "user_id": alert.user_id,
        "location_lat": alert.location_lat,
        "location_lng": alert.location_lng,
        "location_address": alert.location_address,
        "status": alert.status,
        "message": alert.message,
        "created_at": alert.created_at,
        "resolved_at": alert.resolved_at,
    }


def serialize_alert(alert: SOSAlert, alerter: Optional[User] = None) -> dict:
    """Alert joined with the alerter's identity. SOS alerts are never anonymous."""
    data = alert_fields(alert)
    data["email"] = alerter.email if alerter else None
    data["full_name"] = alerter.full_name if alerter else None
    data["phone"] = alerter.phone if alerter else None
    return data


def new_alert_event(alert: SOSAlert, alerter: User) -> dict:
    """Payload of the new-sos broadcast."""
    return {
        "id": alert.id,
        "user": {
            "id": alerter.id,
            "name": alerter.full_name,
            "email": alerter.email,
            "phone": alerter.phone,
        },
        "location": {
            "lat": alert.location_lat,
            "lng": alert.location_lng,
            "address": alert.location_address,
        },
        "message": alert.message,
        "timestamp": isoformat_utc(alert.created_at),
    }


async def raise_alert(
    db: AsyncSession,
    auth: AuthContext,
    publisher: AlertBroadcaster,
    location_lat: Optional[float],
    location_lng: Optional[float],
    location_address: Optional[str] = None,
    message: Optional[str] = None,
) -> SOSAlert:
    """
    Persist an active SOS alert and notify connected admins.

    The alert is committed before the broadcast; a broadcast that reaches
    nobody does not affect the stored alert.
    """
    if location_lat is None or location_lng is None:
        raise InvalidInput("Location is required")

    alerter = await get_user_by_id(db, auth.user_id)
    if alerter is None:
        raise NotFound("User not found")

    alert = SOSAlert(
        user_id=alerter.id,
        location_lat=location_lat,
        location_lng=location_lng,
        location_address=location_address.strip() if location_address else None,
        message=message.strip() if message and message.strip() else DEFAULT_SOS_MESSAGE,
        status=SOSStatus.ACTIVE,
        created_at=now_utc(),
    )
    db.add(alert)
    await db.commit()
    await db.refresh(alert)

    logger.info(f"SOS alert {alert.id} raised by user {alerter.id}")
    publisher.publish(NEW_SOS_EVENT, new_alert_event(alert, alerter))
    return alert


def _alerts_query():
    return select(SOSAlert, User).outerjoin(User, SOSAlert.user_id == User.id)


async def list_alerts(
    db: AsyncSession,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[dict]:
    query = _alerts_query()
    if status:
        query = query.where(SOSAlert.status == status)
    query = query.order_by(SOSAlert.created_at.desc(), SOSAlert.id.desc()).limit(limit).offset(offset)

    result = await db.execute(query)
    return [serialize_alert(alert, alerter) for alert, alerter in result.all()]


async def list_active_alerts(db: AsyncSession) -> List[dict]:
    result = await db.execute(
        _alerts_query()
        .where(SOSAlert.status == SOSStatus.ACTIVE)
        .order_by(SOSAlert.created_at.desc(), SOSAlert.id.desc())
    )
    return [serialize_alert(alert, alerter) for alert, alerter in result.all()]


async def get_alert(db: AsyncSession, alert_id: int) -> dict:
    result = await db.execute(_alerts_query().where(SOSAlert.id == alert_id))
    row = result.first()
    if row is None:
        raise NotFound("SOS alert not found")
    alert, alerter = row
    return serialize_alert(alert, alerter)


async def update_alert_status(
    db: AsyncSession,
    publisher: AlertBroadcaster,
    alert_id: int,
    status: Optional[str],
) -> dict:
    """
    Set an alert's status and broadcast the updated alert.

    resolved_at is stamped when the alert is resolved or marked a false
    alarm, and cleared for any other status. Transitions are not checked
    against the current status.
    """
    if status not in SOSStatus.ALL:
        raise InvalidInput("Invalid status")

    resolved_at = now_utc() if status in SOSStatus.CLOSED else None
    result = await db.execute(
        update(SOSAlert)
        .where(SOSAlert.id == alert_id)
        .values(status=status, resolved_at=resolved_at)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("SOS alert not found")
    await db.commit()

    logger.info(f"SOS alert {alert_id} status set to {status}")
    alert = await get_alert(db, alert_id)
    publisher.publish(SOS_UPDATED_EVENT, alert)
    return alert


async def get_user_alert_history(db: AsyncSession, auth: AuthContext) -> List[dict]:
    """The caller's most recent alerts."""
    result = await db.execute(
        select(SOSAlert)
        .where(SOSAlert.user_id == auth.user_id)
        .order_by(SOSAlert.created_at.desc(), SOSAlert.id.desc())
        .limit(USER_HISTORY_LIMIT)
    )
    return [alert_fields(alert) for alert in result.scalars().all()]
