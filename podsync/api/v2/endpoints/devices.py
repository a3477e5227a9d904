"""Device endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from podsync.api import deps
from podsync.schemas import DeviceRead, DeviceUpdate
from podsync.services.sync import ScopedHandle

router = APIRouter(prefix="/devices", tags=["devices"])


@router.get("/{username_format}", response_model=list[DeviceRead])
def list_devices(handle: ScopedHandle = Depends(deps.get_scoped_handle_json)) -> list[DeviceRead]:
    """Return the account's devices."""

    return handle.devices()


@router.post("/{username}/{device_format}")
def update_device(
    device_format: str,
    payload: DeviceUpdate,
    handle: ScopedHandle = Depends(deps.get_scoped_handle),
) -> Response:
    """Create a device or update its caption and type."""

    handle.update_device(deps.parse_device_id(device_format), payload)
    return Response()
