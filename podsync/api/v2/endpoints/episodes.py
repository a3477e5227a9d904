"""Episode action sync endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from podsync.api import deps
from podsync.schemas import EpisodeActionPayload, EpisodeChanges, EpisodeUploadResult
from podsync.services.sync import ScopedHandle

router = APIRouter(prefix="/episodes", tags=["episodes"])


@router.get(
    "/{username_format}",
    response_model=EpisodeChanges,
    response_model_exclude_none=True,
)
def get_episode_actions(
    since: int = Query(0, ge=0),
    podcast: Optional[str] = Query(None),
    device: Optional[str] = Query(None),
    aggregated: bool = Query(False, description="Accepted for compatibility; always aggregated"),
    handle: ScopedHandle = Depends(deps.get_scoped_handle_json),
) -> EpisodeChanges:
    """Return episode actions changed since ``since``."""

    return handle.episodes(since, podcast=podcast, device=device)


@router.post("/{username_format}", response_model=EpisodeUploadResult)
def upload_episode_actions(
    actions: list[EpisodeActionPayload] = Body(...),
    handle: ScopedHandle = Depends(deps.get_scoped_handle_json),
) -> EpisodeUploadResult:
    """Merge uploaded episode actions into the account timeline."""

    return handle.update_episodes(actions)
