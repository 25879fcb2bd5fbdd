"""Vote-related endpoints for the Meriter API."""

from fastapi import APIRouter, status

from meriter.core.errors import MeriterError
from meriter.models.vote import TARGET_PUBLICATION
from meriter.schemas.vote import CanVoteResponse, VoteCreate, VoteResponse
from meriter.services.votes import VoteService, load_target

from ..dependencies import CurrentUserDep, OptionalUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> VoteResponse:
    """Cast a merit vote on a publication or comment."""
    try:
        vote = VoteService(db).cast_vote(current_user, vote_data)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return VoteResponse.model_validate(vote)


@router.get("/can-vote/{publication_id}", response_model=CanVoteResponse)
async def can_vote(
    publication_id: str,
    current_user: OptionalUserDep,
    db: SessionDep,
) -> CanVoteResponse:
    """Report whether the caller may vote on a publication and why not."""
    try:
        target = load_target(db, TARGET_PUBLICATION, publication_id)
        decision = VoteService(db).check_can_vote(current_user, target)
    except MeriterError as err:
        raise to_http_exception(err) from err
    if decision.allowed:
        return CanVoteResponse(allowed=True)
    return CanVoteResponse(allowed=False, reason=str(decision.reason))
