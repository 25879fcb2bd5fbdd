"""Poll endpoints."""

from fastapi import APIRouter, status

from meriter.core.errors import MeriterError, ValidationError
from meriter.models.publication import KIND_POLL
from meriter.schemas.publication import (
    PollCastCreate,
    PollCreate,
    PollResultsResponse,
    PublicationResponse,
)
from meriter.services.polls import PollService, poll_option_totals
from meriter.services.publications import get_publication

from ..dependencies import CurrentUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/polls", tags=["polls"])


@router.post("", response_model=PublicationResponse, status_code=status.HTTP_201_CREATED)
async def create_poll(
    poll_data: PollCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PublicationResponse:
    """Create a poll and pay its creation cost."""
    try:
        poll = PollService(db).create_poll(current_user, poll_data)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return PublicationResponse.model_validate(poll)


@router.post(
    "/{poll_id}/cast",
    response_model=PollResultsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def cast_poll(
    poll_id: str,
    cast_data: PollCastCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PollResultsResponse:
    """Spend merits on a poll option and return the updated totals."""
    try:
        PollService(db).cast(current_user, poll_id, cast_data)
        poll = get_publication(db, poll_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return PollResultsResponse(poll_id=poll.id, results=poll_option_totals(db, poll))


@router.get("/{poll_id}/results", response_model=PollResultsResponse)
async def poll_results(poll_id: str, db: SessionDep) -> PollResultsResponse:
    try:
        poll = get_publication(db, poll_id)
        if poll.kind != KIND_POLL:
            raise ValidationError("Publication is not a poll")
    except MeriterError as err:
        raise to_http_exception(err) from err
    return PollResultsResponse(poll_id=poll.id, results=poll_option_totals(db, poll))
