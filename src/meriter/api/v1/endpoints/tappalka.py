"""Tappalka (post comparison) endpoints."""

from fastapi import APIRouter, Response, status

from meriter.core.errors import MeriterError
from meriter.schemas.tappalka import (
    TappalkaChoice,
    TappalkaChoiceResult,
    TappalkaPair,
    TappalkaProgressResponse,
)
from meriter.services.tappalka import TappalkaService

from ..dependencies import CurrentUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/tappalka", tags=["tappalka"])


@router.get("/{community_id}/pair", response_model=TappalkaPair | None)
async def get_pair(
    community_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> TappalkaPair | None:
    """Return two posts to compare, or null when the community has run out."""
    try:
        return TappalkaService(db).get_pair(current_user, community_id)
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.post("/{community_id}/choice", response_model=TappalkaChoiceResult)
async def submit_choice(
    community_id: str,
    choice: TappalkaChoice,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> TappalkaChoiceResult:
    try:
        return TappalkaService(db).submit_choice(current_user, community_id, choice)
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.get("/{community_id}/progress", response_model=TappalkaProgressResponse)
async def get_progress(
    community_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> TappalkaProgressResponse:
    try:
        return TappalkaService(db).get_progress(current_user, community_id)
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.post("/{community_id}/onboarding-seen", status_code=status.HTTP_204_NO_CONTENT)
async def mark_onboarding_seen(
    community_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    try:
        TappalkaService(db).mark_onboarding_seen(current_user, community_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)
