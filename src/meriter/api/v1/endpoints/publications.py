"""Publication endpoints: posts, comments, withdrawal and closing."""

from fastapi import APIRouter, HTTPException, Response, status

from meriter.core.errors import MeriterError
from meriter.schemas.investment import CloseResult
from meriter.schemas.publication import (
    CommentCreate,
    CommentResponse,
    PublicationCreate,
    PublicationResponse,
    PublicationUpdate,
    WithdrawRequest,
    WithdrawResponse,
)
from meriter.services.publications import PublicationService, get_comment, get_publication

from ..dependencies import CurrentUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/publications", tags=["publications"])


@router.post("", response_model=PublicationResponse, status_code=status.HTTP_201_CREATED)
async def create_publication(
    post_data: PublicationCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PublicationResponse:
    """Create a post and pay its creation cost."""
    try:
        publication = PublicationService(db).create_publication(current_user, post_data)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return PublicationResponse.model_validate(publication)


@router.get("/{publication_id}", response_model=PublicationResponse)
async def read_publication(publication_id: str, db: SessionDep) -> PublicationResponse:
    try:
        publication = get_publication(db, publication_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return PublicationResponse.model_validate(publication)


@router.patch("/{publication_id}", response_model=PublicationResponse)
async def update_publication(
    publication_id: str,
    post_data: PublicationUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PublicationResponse:
    """Edit a publication; authors lose this right once it has votes or comments."""
    try:
        publication = PublicationService(db).update_publication(
            current_user,
            publication_id,
            post_data,
        )
    except MeriterError as err:
        raise to_http_exception(err) from err
    return PublicationResponse.model_validate(publication)


@router.delete("/{publication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_publication(
    publication_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    try:
        PublicationService(db).delete_publication(current_user, publication_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{publication_id}/withdraw", response_model=WithdrawResponse)
async def withdraw(
    publication_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    request: WithdrawRequest | None = None,
) -> WithdrawResponse:
    """Withdraw merits from a publication's score to the beneficiary."""
    amount = request.amount if request is not None else None
    try:
        return PublicationService(db).withdraw(current_user, publication_id, amount)
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.post("/{publication_id}/close", response_model=CloseResult)
async def close_publication(
    publication_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CloseResult:
    """Close a publication, returning its pool and paying out its score."""
    try:
        return PublicationService(db).close(current_user, publication_id)
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.post(
    "/{publication_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    publication_id: str,
    comment_data: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentResponse:
    try:
        comment = PublicationService(db).add_comment(current_user, publication_id, comment_data)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return CommentResponse.model_validate(comment)


@router.patch("/{publication_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    publication_id: str,
    comment_id: str,
    comment_data: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentResponse:
    service = PublicationService(db)
    try:
        _check_comment_parent(service, publication_id, comment_id)
        comment = service.update_comment(current_user, comment_id, comment_data)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return CommentResponse.model_validate(comment)


@router.delete(
    "/{publication_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_comment(
    publication_id: str,
    comment_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    service = PublicationService(db)
    try:
        _check_comment_parent(service, publication_id, comment_id)
        service.delete_comment(current_user, comment_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _check_comment_parent(
    service: PublicationService,
    publication_id: str,
    comment_id: str,
) -> None:
    if get_comment(service.db, comment_id).publication_id != publication_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
