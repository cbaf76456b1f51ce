"""
Text Production Workflow — TextProductionRun, TextItem, TextVersion.

One run per project tracks the text production ("Texterstellung") for every
content unit of the project's website:

    TextProductionRun  1 ── n  TextItem  1 ── n  TextVersion

Business rules (enforced in services/text_production_service.py):
    - A project owns at most one run (unique project_id).
    - Run.status is derived from item statuses by the rollup and is never
      written from anywhere else.
    - Item PENDING  ⇒ zero versions.  Item APPROVED ⇒ at least one version.
    - version_number is gapless per item, starting at 1, never reassigned.
    - A version with a customer_decision is locked; the latest version
      without one is an open draft and is overwritten in place.
"""

import uuid
from datetime import datetime, timezone

from agency_ops.models import db


__all__ = [
    "RUN_STATUSES",
    "ITEM_STATUSES",
    "ITEM_TRANSITIONS",
    "CUSTOMER_DECISIONS",
    "TextProductionRun",
    "TextItem",
    "TextVersion",
]


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ── Constants ────────────────────────────────────────────────────────────────

RUN_PENDING = "PENDING"
RUN_IN_PROGRESS = "IN_PROGRESS"
RUN_COMPLETED = "COMPLETED"

RUN_STATUSES = frozenset({RUN_PENDING, RUN_IN_PROGRESS, RUN_COMPLETED})

ITEM_PENDING = "PENDING"
ITEM_DRAFT = "DRAFT"
ITEM_SUBMITTED = "SUBMITTED"                  # reserved: client-review flow
ITEM_REVISION_REQUESTED = "REVISION_REQUESTED"  # reserved: client-review flow
ITEM_APPROVED = "APPROVED"

ITEM_STATUSES = frozenset({
    ITEM_PENDING,
    ITEM_DRAFT,
    ITEM_SUBMITTED,
    ITEM_REVISION_REQUESTED,
    ITEM_APPROVED,
})

# action → allowed source statuses / target status.
# PENDING has no incoming edge: an item never goes back to PENDING.
ITEM_TRANSITIONS = {
    "save_draft":      {"from": {ITEM_PENDING, ITEM_DRAFT, ITEM_APPROVED}, "to": ITEM_DRAFT},
    "mark_complete":   {"from": {ITEM_DRAFT, ITEM_APPROVED}, "to": ITEM_APPROVED},
    "mark_incomplete": {"from": {ITEM_PENDING, ITEM_DRAFT, ITEM_APPROVED}, "to": ITEM_DRAFT},
}

DECISION_APPROVED = "APPROVED"
DECISION_CHANGES_REQUESTED = "CHANGES_REQUESTED"

CUSTOMER_DECISIONS = frozenset({DECISION_APPROVED, DECISION_CHANGES_REQUESTED})


# ═════════════════════════════════════════════════════════════════════════════
# TextProductionRun
# ═════════════════════════════════════════════════════════════════════════════

class TextProductionRun(db.Model):
    """Project-level text production run (aggregate root)."""

    __tablename__ = "text_production_runs"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    status = db.Column(
        db.String(20),
        nullable=False,
        default=RUN_PENDING,
        comment="PENDING | IN_PROGRESS | COMPLETED — derived, written only by the rollup",
    )

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    started_by_id = db.Column(db.String(64), nullable=True)
    started_by_name = db.Column(
        db.String(255),
        nullable=True,
        comment="Actor display name captured at start",
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('PENDING','IN_PROGRESS','COMPLETED')",
            name="ck_text_production_run_status",
        ),
    )

    project = db.relationship("Project", back_populates="text_production")
    items = db.relationship(
        "TextItem",
        back_populates="run",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [TextItem.content_unit_name, TextItem.created_at],
    )

    def to_dict(self, include_items=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "status": self.status,
            "started_at": _iso(self.started_at),
            "started_by_id": self.started_by_id,
            "started_by_name": self.started_by_name,
            "completed_at": _iso(self.completed_at) if self.status == RUN_COMPLETED else None,
            "item_count": len(self.items),
        }
        if include_items:
            result["items"] = [i.to_dict(include_versions=True) for i in self.items]
        return result

    def __repr__(self):
        return f"<TextProductionRun {self.id} project={self.project_id} {self.status}>"


# ═════════════════════════════════════════════════════════════════════════════
# TextItem
# ═════════════════════════════════════════════════════════════════════════════

class TextItem(db.Model):
    """Tracking record for one content unit's text."""

    __tablename__ = "text_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    run_id = db.Column(
        db.String(36),
        db.ForeignKey("text_production_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    content_unit_id = db.Column(db.String(64), nullable=False)
    content_unit_name = db.Column(db.String(255), nullable=False)

    # Source content, copied once at start and never edited afterwards
    bullet_points = db.Column(db.Text, nullable=True)
    bullet_points_captured_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    status = db.Column(
        db.String(30),
        nullable=False,
        default=ITEM_PENDING,
        comment="PENDING | DRAFT | SUBMITTED | REVISION_REQUESTED | APPROVED",
    )
    internal_note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('PENDING','DRAFT','SUBMITTED','REVISION_REQUESTED','APPROVED')",
            name="ck_text_item_status",
        ),
        db.Index("ix_text_item_run_status", "run_id", "status"),
    )

    run = db.relationship("TextProductionRun", back_populates="items")
    versions = db.relationship(
        "TextVersion",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TextVersion.version_number.desc()",
    )

    @property
    def latest_version(self):
        return self.versions[0] if self.versions else None

    def to_dict(self, include_versions=False):
        latest = self.latest_version
        result = {
            "id": self.id,
            "run_id": self.run_id,
            "content_unit_id": self.content_unit_id,
            "content_unit_name": self.content_unit_name,
            "bullet_points": self.bullet_points,
            "bullet_points_captured_at": _iso(self.bullet_points_captured_at),
            "status": self.status,
            "internal_note": self.internal_note,
            "version_count": len(self.versions),
            "latest_version_number": latest.version_number if latest else None,
            "updated_at": _iso(self.updated_at),
        }
        if include_versions:
            result["versions"] = [v.to_dict() for v in self.versions]
        return result

    def __repr__(self):
        return f"<TextItem {self.id} {self.content_unit_name!r} {self.status}>"


# ═════════════════════════════════════════════════════════════════════════════
# TextVersion
# ═════════════════════════════════════════════════════════════════════════════

class TextVersion(db.Model):
    """
    Full-text snapshot of an item's draft.

    customer_decision is set by the client-review subsystem. NULL means the
    version is still an open draft.
    """

    __tablename__ = "text_versions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    item_id = db.Column(
        db.String(36),
        db.ForeignKey("text_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False, default="")

    customer_decision = db.Column(
        db.String(30),
        nullable=True,
        comment="APPROVED | CHANGES_REQUESTED — NULL while the draft is open",
    )
    customer_comment = db.Column(db.Text, nullable=True)
    customer_decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    author_id = db.Column(db.String(64), nullable=True)
    author_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("item_id", "version_number", name="uq_text_version_item_number"),
        db.CheckConstraint("version_number >= 1", name="ck_text_version_number_positive"),
    )

    item = db.relationship("TextItem", back_populates="versions")

    @property
    def is_locked(self) -> bool:
        return self.customer_decision is not None

    def to_dict(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "version_number": self.version_number,
            "content": self.content,
            "customer_decision": self.customer_decision,
            "customer_comment": self.customer_comment,
            "customer_decided_at": _iso(self.customer_decided_at),
            "is_locked": self.is_locked,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<TextVersion item={self.item_id} v{self.version_number}>"
