"""
Text Production Workflow Service ("Texterstellung").

Manages the per-project text production run:

    initialize_run         seed a run + PENDING items from bullet points
    save_draft             write text; collapses into the open draft version
    mark_complete          DRAFT → APPROVED (needs at least one version)
    mark_incomplete        any → DRAFT
    mark_all_complete      bulk DRAFT → APPROVED, one rollup
    set_note               internal note, no state change
    record_customer_decision  lock a version (client-review hook)
    reset_run              hard delete of run, items and versions (admin)
    recompute_run_status   derive run status from item statuses

Design decisions:
    - The service owns every write and every commit. Blueprints never touch
      db.session.
    - Run.status is a cache of the item statuses. It is only ever written by
      _recompute(), which reads persisted item state, so re-running it after
      a crash always converges.
    - The project textit flag is written once, on the transition INTO
      COMPLETED. Repeated rollups that stay COMPLETED do not touch it.
    - No optimistic locking: concurrent save_draft calls on one item are
      last-write-wins.
    - Any exception inside an operation rolls the session back, so an
      operation either fully applies or not at all.

Usage:
    from agency_ops.services import text_production_service as tps

    run = tps.initialize_run(project_id, units, general_unit=None, actor=actor)
    tps.save_draft(item_id, "Willkommen ...", actor)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from agency_ops.core.exceptions import (
    AlreadyInitializedError,
    ConflictError,
    EmptyInputError,
    NoContentError,
    NotFoundError,
    NothingToCompleteError,
    ValidationError,
)
from agency_ops.models import db
from agency_ops.models.project import TEXTIT_BOTH_DONE
from agency_ops.models.text_production import (
    CUSTOMER_DECISIONS,
    ITEM_APPROVED,
    ITEM_DRAFT,
    ITEM_PENDING,
    ITEM_STATUSES,
    ITEM_TRANSITIONS,
    RUN_COMPLETED,
    RUN_IN_PROGRESS,
    RUN_PENDING,
    TextItem,
    TextProductionRun,
    TextVersion,
)
from agency_ops.services.permission import Actor, check_permission
from agency_ops.services.project_service import get_project, set_project_content_flag

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _unit_of_work():
    """Commit on success, roll back and re-raise on any failure."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _get_run(run_id: str) -> TextProductionRun:
    run = db.session.get(TextProductionRun, run_id)
    if run is None:
        raise NotFoundError(resource="TextProductionRun", resource_id=run_id)
    return run


def _get_item(item_id: str) -> TextItem:
    item = db.session.get(TextItem, item_id)
    if item is None:
        raise NotFoundError(resource="TextItem", resource_id=item_id)
    return item


def _transition(item: TextItem, action: str) -> str:
    """Apply ``action`` to the item's status and return the previous status."""
    rule = ITEM_TRANSITIONS[action]
    previous = item.status
    if previous not in rule["from"]:
        # Reserved review statuses never appear in this workflow's items.
        raise ValidationError(
            f"Cannot '{action}' from status '{previous}'",
            details={"item_id": item.id, "status": previous},
        )
    item.status = rule["to"]
    return previous


def _normalise_unit(unit: dict, position: str) -> dict:
    """Validate one content unit ``{"id", "name", "content"}``."""
    unit_id = str(unit.get("id") or "").strip()
    name = (unit.get("name") or "").strip()
    if not unit_id or not name:
        raise ValidationError(
            "Content unit requires 'id' and 'name'",
            details={"unit": position},
        )
    return {"id": unit_id, "name": name, "content": unit.get("content") or ""}


def derive_run_status(item_statuses: Iterable[str]) -> str:
    """Roll item statuses up into a run status.

    Precedence: all APPROVED (and at least one item) → COMPLETED,
    then any DRAFT → IN_PROGRESS, otherwise PENDING. An empty item set is
    never COMPLETED.
    """
    statuses = list(item_statuses)
    if statuses and all(s == ITEM_APPROVED for s in statuses):
        return RUN_COMPLETED
    if any(s == ITEM_DRAFT for s in statuses):
        return RUN_IN_PROGRESS
    return RUN_PENDING


def _recompute(run: TextProductionRun) -> str:
    """Rewrite run.status from persisted item state; fire the flag on completion.

    Does not commit. Returns the new status.
    """
    statuses = db.session.execute(
        select(TextItem.status).where(TextItem.run_id == run.id)
    ).scalars().all()

    previous = run.status
    status = derive_run_status(statuses)
    run.status = status

    if status == RUN_COMPLETED:
        if previous != RUN_COMPLETED or run.completed_at is None:
            run.completed_at = _utcnow()
    else:
        run.completed_at = None

    if status == RUN_COMPLETED and previous != RUN_COMPLETED:
        set_project_content_flag(run.project_id, TEXTIT_BOTH_DONE)

    if status != previous:
        logger.info(
            "Text production run %s: %s → %s",
            run.id,
            previous,
            status,
            extra={"run_id": run.id, "project_id": run.project_id},
        )
    return status


# ── Rollup ─────────────────────────────────────────────────────────────────────


def recompute_run_status(run_id: str) -> str:
    """Recompute and persist the aggregate status of a run.

    Idempotent: two calls without an intervening item mutation yield the
    same status, and the project flag fires only on the first transition
    into COMPLETED.
    """
    with _unit_of_work():
        run = _get_run(run_id)
        status = _recompute(run)
    return status


# ── Initializer ────────────────────────────────────────────────────────────────


def initialize_run(
    project_id: int,
    content_units: list[dict] | None,
    general_unit: dict | None = None,
    *,
    actor: Actor | None,
) -> TextProductionRun:
    """Start text production for a project.

    Args:
        project_id:    Owning project.
        content_units: ``[{"id", "name", "content"}, ...]`` — bullet points per
                       content unit, already filtered for eligibility upstream.
        general_unit:  Optional ``{"id", "name", "content"}`` for miscellaneous
                       texts; appended after the content units.
        actor:         Must be admin or editor.

    Returns:
        The new run (status PENDING after the initial rollup).

    Raises:
        PermissionDeniedError, NotFoundError, AlreadyInitializedError,
        EmptyInputError, ValidationError
    """
    actor = check_permission(actor, "text_start")

    with _unit_of_work():
        project = get_project(project_id)

        existing = db.session.execute(
            select(TextProductionRun).where(TextProductionRun.project_id == project.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise AlreadyInitializedError(project_id=project.id, run_id=existing.id)

        units = [_normalise_unit(u, str(i)) for i, u in enumerate(content_units or [])]
        if general_unit:
            units.append(_normalise_unit(general_unit, "general"))
        if not units:
            raise EmptyInputError(project_id=project.id)

        now = _utcnow()
        run = TextProductionRun(
            project_id=project.id,
            status=RUN_IN_PROGRESS,
            started_at=now,
            started_by_id=actor.id,
            started_by_name=actor.display_name,
        )
        db.session.add(run)
        for unit in units:
            run.items.append(TextItem(
                content_unit_id=unit["id"],
                content_unit_name=unit["name"],
                bullet_points=unit["content"],
                bullet_points_captured_at=now,
                status=ITEM_PENDING,
            ))
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Concurrent start for the same project lost the race on uq(project_id)
            raise AlreadyInitializedError(project_id=project.id) from exc
        _recompute(run)

    logger.info(
        "Text production started with %d item(s)",
        len(units),
        extra={"project_id": project_id, "run_id": run.id, "actor_id": actor.id},
    )
    return run


# ── Item state machine & version store ─────────────────────────────────────────


def save_draft(item_id: str, content: str, actor: Actor | None) -> TextVersion:
    """Save text for an item.

    The latest version is overwritten in place while it has no customer
    decision; otherwise a new version (max + 1) is appended. The item is
    set to DRAFT unconditionally — editing approved text demotes it.

    Returns:
        The version that now holds ``content``.
    """
    actor = check_permission(actor, "text_save_draft")

    with _unit_of_work():
        item = _get_item(item_id)
        latest = item.latest_version

        if latest is not None and not latest.is_locked:
            latest.content = content
            latest.author_id = actor.id
            latest.author_name = actor.display_name
            version = latest
            created = False
        else:
            version = TextVersion(
                version_number=(latest.version_number if latest else 0) + 1,
                content=content,
                author_id=actor.id,
                author_name=actor.display_name,
            )
            item.versions.insert(0, version)
            created = True

        previous = _transition(item, "save_draft")
        db.session.flush()
        _recompute(item.run)

    logger.info(
        "Draft saved for item %s (v%d, %s, %s → DRAFT)",
        item.id,
        version.version_number,
        "new version" if created else "updated in place",
        previous,
        extra={"item_id": item.id, "run_id": item.run_id, "actor_id": actor.id},
    )
    return version


def mark_complete(item_id: str, actor: Actor | None) -> TextItem:
    """Approve a single item. Fails with NoContentError when it has no version."""
    actor = check_permission(actor, "text_mark_complete")

    with _unit_of_work():
        item = _get_item(item_id)
        if not item.versions:
            raise NoContentError(item_id=item.id)
        previous = _transition(item, "mark_complete")
        db.session.flush()
        _recompute(item.run)

    logger.info(
        "Item %s marked complete (%s → APPROVED)",
        item.id,
        previous,
        extra={"item_id": item.id, "run_id": item.run_id, "actor_id": actor.id},
    )
    return item


def mark_incomplete(item_id: str, actor: Actor | None) -> TextItem:
    """Move an item back to DRAFT, whatever its current status."""
    actor = check_permission(actor, "text_mark_incomplete")

    with _unit_of_work():
        item = _get_item(item_id)
        previous = _transition(item, "mark_incomplete")
        db.session.flush()
        _recompute(item.run)

    logger.info(
        "Item %s marked incomplete (%s → DRAFT)",
        item.id,
        previous,
        extra={"item_id": item.id, "run_id": item.run_id, "actor_id": actor.id},
    )
    return item


def mark_all_complete(run_id: str, actor: Actor | None) -> int:
    """Approve every DRAFT item of the run that has text.

    The selected items are updated with a single UPDATE statement in the
    same transaction as the rollup, so either all of them are approved and
    the run status reflects that, or nothing changes.

    Returns:
        Number of items approved.

    Raises:
        NothingToCompleteError: no DRAFT item with a non-empty latest version.
    """
    actor = check_permission(actor, "text_mark_all_complete")

    with _unit_of_work():
        run = _get_run(run_id)
        drafts = db.session.execute(
            select(TextItem).where(
                TextItem.run_id == run.id,
                TextItem.status == ITEM_DRAFT,
            )
        ).scalars().all()

        eligible_ids = [
            item.id for item in drafts
            if item.latest_version is not None and item.latest_version.content
        ]
        if not eligible_ids:
            raise NothingToCompleteError(run_id=run.id)

        db.session.execute(
            update(TextItem)
            .where(TextItem.id.in_(eligible_ids))
            .values(status=ITEM_APPROVED, updated_at=_utcnow())
        )
        _recompute(run)

    logger.info(
        "Marked %d item(s) complete",
        len(eligible_ids),
        extra={"run_id": run_id, "actor_id": actor.id},
    )
    return len(eligible_ids)


# ── Annotation ─────────────────────────────────────────────────────────────────


def set_note(item_id: str, note: str | None, actor: Actor | None) -> TextItem:
    """Set or clear the item's internal note. An empty string clears it."""
    actor = check_permission(actor, "text_set_note")

    with _unit_of_work():
        item = _get_item(item_id)
        item.internal_note = note or None

    logger.info(
        "Internal note %s on item %s",
        "set" if item.internal_note is not None else "cleared",
        item.id,
        extra={"item_id": item.id, "run_id": item.run_id, "actor_id": actor.id},
    )
    return item


# ── Client-review hook ─────────────────────────────────────────────────────────


def record_customer_decision(
    version_id: str,
    decision: str,
    actor: Actor | None,
    comment: str | None = None,
) -> TextVersion:
    """Record the client's decision on a version, locking it.

    Subsequent save_draft calls on the item create a new version instead of
    overwriting this one. Item status is not changed here.

    Raises:
        ValidationError: unknown decision.
        ConflictError: the version already carries a decision.
    """
    check_permission(actor, "text_record_decision")

    if decision not in CUSTOMER_DECISIONS:
        raise ValidationError(
            f"Invalid customer decision '{decision}'",
            details={"decision": sorted(CUSTOMER_DECISIONS)},
        )

    with _unit_of_work():
        version = db.session.get(TextVersion, version_id)
        if version is None:
            raise NotFoundError(resource="TextVersion", resource_id=version_id)
        if version.is_locked:
            raise ConflictError("TextVersion", "customer_decision", version.customer_decision)
        version.customer_decision = decision
        version.customer_comment = (comment or "").strip() or None
        version.customer_decided_at = _utcnow()

    logger.info(
        "Customer decision %s recorded on version %s",
        decision,
        version.id,
        extra={"item_id": version.item_id},
    )
    return version


# ── Reset ──────────────────────────────────────────────────────────────────────


def reset_run(run_id: str, actor: Actor | None) -> None:
    """Hard-delete a run: versions, then items, then the run itself.

    Admin only. The project's textit flag is left untouched.
    """
    actor = check_permission(actor, "text_reset")

    with _unit_of_work():
        run = _get_run(run_id)
        project_id = run.project_id
        item_ids = select(TextItem.id).where(TextItem.run_id == run.id)

        versions_deleted = db.session.execute(
            delete(TextVersion).where(TextVersion.item_id.in_(item_ids))
        ).rowcount
        items_deleted = db.session.execute(
            delete(TextItem).where(TextItem.run_id == run.id)
        ).rowcount
        db.session.execute(delete(TextProductionRun).where(TextProductionRun.id == run.id))

    logger.warning(
        "Text production run %s reset (%d item(s), %d version(s) deleted)",
        run_id,
        items_deleted,
        versions_deleted,
        extra={"run_id": run_id, "project_id": project_id, "actor_id": actor.id},
    )


# ── Queries ────────────────────────────────────────────────────────────────────


def get_run_for_project(project_id: int, actor: Actor | None) -> TextProductionRun:
    """Return the project's run (items by content-unit name, versions newest first)."""
    check_permission(actor, "text_view")
    project = get_project(project_id)
    run = db.session.execute(
        select(TextProductionRun).where(TextProductionRun.project_id == project.id)
    ).scalar_one_or_none()
    if run is None:
        raise NotFoundError(resource="TextProductionRun", resource_id=f"project={project_id}")
    return run


def get_run_summary(run: TextProductionRun) -> dict:
    """Per-status item counts and completion percentage for dashboards."""
    counts = {status.lower(): 0 for status in ITEM_STATUSES}
    for item in run.items:
        counts[item.status.lower()] += 1

    total = len(run.items)
    counts["total"] = total
    counts["completion_pct"] = round(counts["approved"] / total * 100, 1) if total else 0.0
    return counts
