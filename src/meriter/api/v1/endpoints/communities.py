"""Community endpoints: rules, settings, membership and quota."""

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy.orm import Session

from meriter.core.errors import MeriterError
from meriter.models import Community, CommunityRole, User
from meriter.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    CommunityRulesUpdate,
    EffectiveRules,
    MembershipCreate,
    MembershipResponse,
    QuotaStatus,
)
from meriter.services import roles
from meriter.services.community_defaults import normalize_type_tag
from meriter.services.quota import QuotaLedger
from meriter.services.rule_store import CommunityRuleStore, resolve_effective_rules

from ..dependencies import CurrentUserDep, SessionDep, to_http_exception

router = APIRouter(prefix="/communities", tags=["communities"])


def _get_community_or_404(db: Session, community_id: str) -> Community:
    community = db.get(Community, community_id)
    if community is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Community not found")
    return community


def _require_admin(db: Session, user: User, community_id: str) -> None:
    """Only leads of the community and superadmins manage its settings."""
    actor = roles.build_actor(db, user, community_id)
    if actor.role not in (CommunityRole.LEAD, CommunityRole.SUPERADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only community leads can change community settings",
        )


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunityResponse:
    """Create a community; only superadmins may do this."""
    if not current_user.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only superadmins can create communities",
        )
    community = Community(
        name=community_data.name,
        type_tag=normalize_type_tag(community_data.type_tag).value,
        needs_setup=True,
    )
    db.add(community)
    db.commit()
    db.refresh(community)
    return CommunityResponse.model_validate(community)


@router.get("/{community_id}", response_model=CommunityResponse)
async def read_community(community_id: str, db: SessionDep) -> CommunityResponse:
    return CommunityResponse.model_validate(_get_community_or_404(db, community_id))


@router.get("/{community_id}/rules", response_model=EffectiveRules)
async def read_rules(community_id: str, db: SessionDep) -> EffectiveRules:
    """Return the stored overrides merged over the type-tag defaults."""
    return resolve_effective_rules(_get_community_or_404(db, community_id))


@router.patch("/{community_id}", response_model=EffectiveRules)
async def update_community(
    community_id: str,
    update: CommunityRulesUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EffectiveRules:
    """Update rule sections; every section is merged over the current rules."""
    community = _get_community_or_404(db, community_id)
    _require_admin(db, current_user, community_id)
    try:
        return CommunityRuleStore(db).update_rules(community, update)
    except MeriterError as err:
        raise to_http_exception(err) from err


@router.post(
    "/{community_id}/members",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    community_id: str,
    membership: MembershipCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MembershipResponse:
    """Grant a role in the community, or change an existing one."""
    _get_community_or_404(db, community_id)
    _require_admin(db, current_user, community_id)
    if db.get(User, membership.user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    record = roles.set_role(db, membership.user_id, community_id, membership.role)
    db.commit()
    return MembershipResponse.model_validate(record)


@router.delete("/{community_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    community_id: str,
    user_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Response:
    _get_community_or_404(db, community_id)
    _require_admin(db, current_user, community_id)
    if not roles.remove_role(db, user_id, community_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{community_id}/quota", response_model=QuotaStatus)
async def read_quota(
    community_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> QuotaStatus:
    """Return the caller's quota for the current window."""
    community = _get_community_or_404(db, community_id)
    rules = resolve_effective_rules(community)
    ledger = QuotaLedger(db)
    window_start = ledger.window_start(community)
    role = roles.build_actor(db, current_user, community_id).role
    return QuotaStatus(
        community_id=community.id,
        daily_quota=rules.merit_settings.daily_quota,
        used=ledger.get_quota_used(current_user.id, community.id, window_start),
        remaining=ledger.get_remaining_quota(current_user.id, community, rules, role),
        window_start=window_start,
    )


@router.post("/{community_id}/quota/reset", response_model=CommunityResponse)
async def reset_quota(
    community_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommunityResponse:
    """Start a fresh quota window for everyone in the community."""
    community = _get_community_or_404(db, community_id)
    _require_admin(db, current_user, community_id)
    community = CommunityRuleStore(db).reset_quota(community)
    return CommunityResponse.model_validate(community)
