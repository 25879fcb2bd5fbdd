"""Investment endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from meriter.core.errors import MeriterError
from meriter.schemas.investment import (
    InvestmentCreate,
    InvestmentResult,
    InvestmentShare,
    PortfolioEntry,
)
from meriter.services.investments import InvestmentService
from meriter.services.publications import get_publication

from ..dependencies import CurrentUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/investments", tags=["investments"])


@router.post("", response_model=InvestmentResult, status_code=status.HTTP_201_CREATED)
async def invest(
    investment: InvestmentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> InvestmentResult:
    """Put wallet merits into a publication's investment pool."""
    try:
        return InvestmentService(db).invest(
            current_user,
            investment.publication_id,
            investment.amount,
        )
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.get("/post/{publication_id}", response_model=list[InvestmentShare])
async def list_post_investments(publication_id: str, db: SessionDep) -> list[InvestmentShare]:
    """List investors of a publication with their current share."""
    try:
        publication = get_publication(db, publication_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    return InvestmentService(db).shares(publication)


@router.get("/post/{publication_id}/preview")
async def preview_investment(
    publication_id: str,
    amount: Annotated[float, Query(gt=0)],
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict[str, float]:
    """Share the caller would hold after investing ``amount`` more."""
    try:
        get_publication(db, publication_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    share = InvestmentService(db).preview_share(publication_id, current_user.id, amount)
    return {"share_percent": share}


@router.get("/me", response_model=list[PortfolioEntry])
async def my_portfolio(current_user: CurrentUserDep, db: SessionDep) -> list[PortfolioEntry]:
    return InvestmentService(db).portfolio(current_user)
