"""Wallet endpoints."""

from fastapi import APIRouter

from meriter.core.errors import MeriterError
from meriter.schemas.wallet import WalletResponse
from meriter.services import roles
from meriter.services.quota import QuotaLedger
from meriter.services.rule_store import CommunityRuleStore
from meriter.services.wallet import WalletService

from ..dependencies import CurrentUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/wallets", tags=["wallets"])


@router.get("/{community_id}", response_model=WalletResponse)
async def read_wallet(
    community_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> WalletResponse:
    """Return the caller's wallet balance and remaining quota in a community."""
    store = CommunityRuleStore(db)
    try:
        community = store.get_community(community_id)
    except MeriterError as err:
        raise to_http_exception(err) from err
    rules = store.get_effective_rules(community_id)
    role = roles.build_actor(db, current_user, community_id).role
    return WalletResponse(
        user_id=current_user.id,
        community_id=community_id,
        balance=WalletService(db).balance(current_user.id, community_id),
        quota_remaining=QuotaLedger(db).get_remaining_quota(
            current_user.id,
            community,
            rules,
            role,
        ),
    )
