"""Project model — the agency project that owns a text-production run.

Only the fields the text-production workflow touches live here: the
project identity, the client it belongs to and the ``textit`` content flag
that the workflow flips to ``JA_JA`` on completion.
"""

from datetime import datetime, timezone

from agency_ops.models import db

# ── Textit content flag ───────────────────────────────────────────────────────
#   NEIN       no text production in scope
#   NEIN_NEIN  in scope, nothing delivered yet
#   JA_NEIN    bullet points delivered, texts outstanding
#   JA_JA      bullet points and texts both done

TEXTIT_NONE = "NEIN"
TEXTIT_BOTH_DONE = "JA_JA"

VALID_TEXTIT_FLAGS = frozenset({"NEIN", "NEIN_NEIN", "JA_NEIN", "JA_JA"})


class Project(db.Model):
    """Agency project (website build for a client)."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    client_name = db.Column(db.String(200), nullable=True)
    textit = db.Column(
        db.String(20),
        nullable=False,
        default=TEXTIT_NONE,
        comment="NEIN | NEIN_NEIN | JA_NEIN | JA_JA",
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    text_production = db.relationship(
        "TextProductionRun",
        back_populates="project",
        uselist=False,
        passive_deletes=True,
    )

    @property
    def text_production_available(self) -> bool:
        return bool(self.textit) and self.textit != TEXTIT_NONE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "client_name": self.client_name,
            "textit": self.textit,
            "text_production_available": self.text_production_available,
            "text_production_id": self.text_production.id if self.text_production else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project #{self.id} {self.name!r} textit={self.textit}>"
