"""Strip stored community rule sections that equal the type-tag defaults.

Usage:
    python -m meriter.scripts.migrate_rules_to_defaults [--dry-run]

A stored section matches when every stored key deep-equals the default
value (lists compare without regard to order). Matching columns are set to
NULL so that future changes to the defaults reach these communities.
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from meriter.core.logging import configure_logging
from meriter.db.session import SessionLocal
from meriter.models import Community
from meriter.services import community_defaults as defaults
from meriter.services.rule_store import merge_section

logger = logging.getLogger(__name__)

SECTIONS = (
    "voting_rules",
    "posting_rules",
    "merit_settings",
    "tappalka_settings",
    "investing_settings",
)


@dataclass
class CommunityReport:
    """Which sections of one community match the defaults."""

    community_id: str
    name: str
    removable: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)


@dataclass
class MigrationSummary:
    reports: list[CommunityReport] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return sum(1 for report in self.reports if report.removable)

    @property
    def skipped(self) -> int:
        return len(self.reports) - self.updated


def section_matches_default(section: str, type_tag: str, stored: dict[str, Any]) -> bool:
    """Return True when every stored key equals the default for ``section``."""
    default = defaults.default_section(section, type_tag)
    return defaults.structurally_equal({**default, **stored}, default)


def permission_rules_match_default(community: Community) -> bool:
    tag = defaults.normalize_type_tag(community.type_tag).value
    derived = defaults.derive_permission_rules(
        merge_section("voting_rules", tag, community.voting_rules),
        merge_section("posting_rules", tag, community.posting_rules),
    )
    return defaults.structurally_equal(
        community.permission_rules,
        [rule.model_dump(mode="json") for rule in derived],
    )


def inspect_community(community: Community) -> CommunityReport:
    """Classify every stored section of ``community`` without changing it."""
    tag = defaults.normalize_type_tag(community.type_tag).value
    report = CommunityReport(community_id=community.id, name=community.name)
    for section in SECTIONS:
        stored = getattr(community, section)
        if stored is None:
            continue
        if section_matches_default(section, tag, stored):
            report.removable.append(section)
        else:
            report.kept.append(section)
    if community.permission_rules is not None:
        if permission_rules_match_default(community):
            report.removable.append("permission_rules")
        else:
            report.kept.append("permission_rules")
    return report


def migrate(db: Session, dry_run: bool = False) -> MigrationSummary:
    """Inspect every community and, unless ``dry_run``, clear matching sections."""
    summary = MigrationSummary()
    communities = db.query(Community).order_by(Community.created_at).all()
    logger.info("Found %d communities to process", len(communities))
    for community in communities:
        report = inspect_community(community)
        summary.reports.append(report)
        label = community.name or community.id
        for section in report.removable:
            logger.info("  ✓ %s: %s matches defaults (will be removed)", label, section)
        for section in report.kept:
            logger.info("  ⚠ %s: %s has custom overrides (will be kept)", label, section)
        if not dry_run:
            for section in report.removable:
                setattr(community, section, None)

    logger.info("Summary: %d to update, %d to skip", summary.updated, summary.skipped)
    if dry_run:
        logger.info("Dry run completed. No changes were made.")
    elif summary.updated:
        db.commit()
        logger.info("Migration completed successfully")
    else:
        logger.info("No changes needed.")
    return summary


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Remove stored community rules that equal the type-tag defaults",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be changed without making changes.",
    )
    args = parser.parse_args(argv)

    configure_logging()
    mode = "DRY RUN (no changes will be made)" if args.dry_run else "LIVE"
    logger.info("Community rules migration, mode: %s", mode)
    db = SessionLocal()
    try:
        migrate(db, dry_run=args.dry_run)
    except Exception:
        logger.exception("Migration failed")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
