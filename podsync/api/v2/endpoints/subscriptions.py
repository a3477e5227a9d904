"""Subscription sync endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from podsync.api import deps
from podsync.schemas import SubscriptionChangeRequest, SubscriptionChanges, SubscriptionUploadResult
from podsync.services.sync import ScopedHandle

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/{username}/{device_format}", response_model=SubscriptionChanges)
def get_subscription_changes(
    device_format: str,
    since: int = Query(0, ge=0),
    handle: ScopedHandle = Depends(deps.get_scoped_handle),
) -> SubscriptionChanges:
    """Return subscriptions added and removed on a device since ``since``."""

    return handle.subscriptions(deps.parse_device_id(device_format), since)


@router.post("/{username}/{device_format}", response_model=SubscriptionUploadResult)
def upload_subscription_changes(
    device_format: str,
    payload: SubscriptionChangeRequest,
    handle: ScopedHandle = Depends(deps.get_scoped_handle),
) -> SubscriptionUploadResult:
    """Apply subscription changes from a device."""

    return handle.update_subscriptions(deps.parse_device_id(device_format), payload)
