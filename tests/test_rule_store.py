# mypy: ignore-errors
# tests/test_rule_store.py
"""Tests for type-tag defaults, rule merging and the default-stripping migration."""

import pytest

from meriter.core.errors import NotFoundError, ValidationError
from meriter.models import Community
from meriter.schemas.community import ActionType, CommunityRulesUpdate
from meriter.scripts.migrate_rules_to_defaults import inspect_community, migrate
from meriter.services import community_defaults as defaults
from meriter.services.rule_store import CommunityRuleStore, resolve_effective_rules


class TestDefaults:
    def test_unknown_tag_falls_back_to_default(self) -> None:
        assert defaults.normalize_type_tag("mystery") == "default"
        assert defaults.normalize_type_tag(None) == "default"

    def test_marathon_forbids_participants_voting_for_lead(self) -> None:
        assert defaults.default_voting_rules("marathon-of-good").participants_cannot_vote_for_lead

    def test_future_vision_allows_own_posts(self) -> None:
        assert defaults.default_voting_rules("future-vision").can_vote_for_own_posts

    @pytest.mark.parametrize("tag", ["support", "team"])
    def test_viewers_cannot_vote_in_closed_communities(self, tag) -> None:
        assert "viewer" not in defaults.default_voting_rules(tag).allowed_roles

    def test_team_posting_requires_membership(self) -> None:
        posting = defaults.default_posting_rules("team")
        assert posting.requires_team_membership
        assert "viewer" not in posting.allowed_roles

    def test_default_merit_settings(self) -> None:
        merit = defaults.default_merit_settings("default")
        assert merit.daily_quota == 100
        assert {str(role) for role in merit.quota_recipients} == {"superadmin", "lead", "participant", "viewer"}
        assert "viewer" not in defaults.default_merit_settings("future-vision").quota_recipients

    def test_tappalka_defaults(self) -> None:
        tappalka = defaults.default_tappalka_settings("default")
        assert not tappalka.enabled
        assert tappalka.categories == []
        assert (tappalka.win_reward, tappalka.user_reward) == (1, 1)
        assert tappalka.comparisons_required == 10
        assert tappalka.show_cost == pytest.approx(0.1)
        assert tappalka.min_rating == 1

    def test_permission_table_covers_every_role_and_action(self) -> None:
        rules = defaults.default_permission_rules("default")
        assert len(rules) == 4 * len(ActionType)
        assert len({(rule.role, rule.action) for rule in rules}) == len(rules)


class TestStructuralEquality:
    def test_lists_are_order_insensitive(self) -> None:
        assert defaults.structurally_equal(["lead", "viewer"], ["viewer", "lead"])

    def test_multiset_counts_matter(self) -> None:
        assert not defaults.structurally_equal(["lead", "lead"], ["lead", "viewer"])

    def test_nested_mappings(self) -> None:
        left = {"a": [{"x": 1}, {"y": 2}], "b": True}
        right = {"b": True, "a": [{"y": 2}, {"x": 1}]}
        assert defaults.structurally_equal(left, right)

    def test_bool_is_not_int(self) -> None:
        assert not defaults.structurally_equal({"flag": True}, {"flag": 1})

    def test_missing_keys_differ(self) -> None:
        assert not defaults.structurally_equal({"a": 1}, {"a": 1, "b": 2})


class TestEffectiveRules:
    def test_partial_override_fills_gaps_from_defaults(self) -> None:
        community = Community(id="c1", name="c", type_tag="team", voting_rules={"spends_merits": False})
        rules = resolve_effective_rules(community)
        assert rules.voting_rules.spends_merits is False
        assert "viewer" not in rules.voting_rules.allowed_roles

    def test_stored_permission_rules_come_first(self) -> None:
        community = Community(
            id="c1",
            name="c",
            type_tag="default",
            permission_rules=[{"role": "lead", "action": "vote", "allowed": False}],
        )
        rules = resolve_effective_rules(community)
        first = rules.permission_rules[0]
        assert (first.role, first.action, first.allowed) == ("lead", "vote", False)
        lead_vote = [r for r in rules.permission_rules if r.role == "lead" and r.action == "vote"]
        assert len(lead_vote) == 1

    def test_default_permissions_follow_voting_override(self) -> None:
        community = Community(id="c1", name="c", type_tag="default", voting_rules={"allowed_roles": ["lead"]})
        rules = resolve_effective_rules(community)
        participant_vote = next(
            r for r in rules.permission_rules if r.role == "participant" and r.action == "vote"
        )
        assert participant_vote.allowed is False


class TestCommunityRuleStore:
    def test_missing_community_raises(self, db_session) -> None:
        with pytest.raises(NotFoundError):
            CommunityRuleStore(db_session).get_effective_rules("nope")

    def test_update_merges_and_stores_whole_section(self, db_session, make_community) -> None:
        community = make_community("marathon-of-good", needs_setup=True)
        store = CommunityRuleStore(db_session)
        rules = store.update_rules(
            community,
            CommunityRulesUpdate(name="Renamed", merit_settings={"daily_quota": 7}),
        )
        assert rules.merit_settings.daily_quota == 7
        assert community.name == "Renamed"
        assert community.needs_setup is False
        assert community.merit_settings["can_earn"] is True
        assert community.voting_rules is None

    def test_invalid_section_is_rejected(self, db_session, make_community) -> None:
        community = make_community("default")
        with pytest.raises(ValidationError):
            CommunityRuleStore(db_session).update_rules(
                community,
                CommunityRulesUpdate(tappalka_settings={"comparisons_required": 0}),
            )

    def test_reset_quota_stamps_time(self, db_session, make_community) -> None:
        community = make_community("default")
        CommunityRuleStore(db_session).reset_quota(community)
        assert community.last_quota_reset_at is not None


class TestMigration:
    def test_matching_sections_are_reported(self, make_community) -> None:
        community = make_community(
            "team",
            voting_rules=defaults.default_section("voting_rules", "team"),
            merit_settings={"daily_quota": 5},
        )
        report = inspect_community(community)
        assert report.removable == ["voting_rules"]
        assert report.kept == ["merit_settings"]

    def test_reordered_roles_still_match(self, make_community) -> None:
        voting = defaults.default_section("voting_rules", "default")
        voting["allowed_roles"] = list(reversed(voting["allowed_roles"]))
        community = make_community("default", voting_rules=voting)
        assert inspect_community(community).removable == ["voting_rules"]

    def test_default_permission_table_is_removable(self, make_community) -> None:
        table = [rule.model_dump(mode="json") for rule in defaults.default_permission_rules("support")]
        community = make_community("support", permission_rules=list(reversed(table)))
        assert inspect_community(community).removable == ["permission_rules"]

    def test_dry_run_changes_nothing(self, db_session, make_community) -> None:
        community = make_community(
            "default",
            posting_rules=defaults.default_section("posting_rules", "default"),
        )
        summary = migrate(db_session, dry_run=True)
        assert summary.updated == 1
        assert db_session.get(Community, community.id).posting_rules is not None

    def test_live_run_clears_matching_sections(self, db_session, make_community) -> None:
        matching = make_community(
            "future-vision",
            name="fv",
            posting_rules=defaults.default_section("posting_rules", "future-vision"),
            merit_settings={"daily_quota": 1},
        )
        untouched = make_community("default", name="plain")
        summary = migrate(db_session, dry_run=False)

        assert summary.updated == 1
        assert summary.skipped == 1
        db_session.refresh(matching)
        assert matching.posting_rules is None
        assert matching.merit_settings == {"daily_quota": 1}
        assert untouched.voting_rules is None
