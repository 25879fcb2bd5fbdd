"""Investment-related Pydantic schemas."""

from pydantic import BaseModel, Field


class InvestmentCreate(BaseModel):
    """Schema for investing wallet merits into a post."""

    publication_id: str
    amount: float = Field(..., gt=0)


class InvestmentShare(BaseModel):
    """An investor's contribution and current share of the pool."""

    investor_id: str
    amount: float
    share_percent: float


class InvestmentResult(BaseModel):
    """Pool state after an investment."""

    publication_id: str
    investor_id: str
    amount: float
    investment_pool: float
    investment_pool_total: float
    investments: list[InvestmentShare]


class PortfolioEntry(BaseModel):
    """One row of a user's investment portfolio."""

    publication_id: str
    amount: float
    share_percent: float
    investment_pool: float
    investment_pool_total: float


class CloseResult(BaseModel):
    """Settlement produced by closing a post."""

    publication_id: str
    pool_returned: list[dict[str, object]]
    withdrawn: float
