from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence, Union

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import DEFAULT_PAGE_SIZE, OBJECTION_SUGGESTION_LIMIT
from ..core.enums import ObjectionCategory, ObjectionStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..daily_works.repository import DailyWorkRepository
from ..users.model import SessionUser
from .model import ObjectionStatusLog, RfiObjection, build_chainage_entries
from .repository import ObjectionRepository

logger = get_logger(__name__)

# action -> (allowed source statuses, target status, error message)
TRANSITIONS: dict[str, tuple[frozenset, ObjectionStatus, str]] = {
    "submit": (
        frozenset({ObjectionStatus.DRAFT}),
        ObjectionStatus.SUBMITTED,
        "Only draft objections can be submitted.",
    ),
    "start_review": (
        frozenset({ObjectionStatus.SUBMITTED}),
        ObjectionStatus.UNDER_REVIEW,
        "Only submitted objections can be put under review.",
    ),
    "resolve": (
        frozenset({ObjectionStatus.SUBMITTED, ObjectionStatus.UNDER_REVIEW}),
        ObjectionStatus.RESOLVED,
        "Only submitted or under review objections can be resolved.",
    ),
    "reject": (
        frozenset({ObjectionStatus.SUBMITTED, ObjectionStatus.UNDER_REVIEW}),
        ObjectionStatus.REJECTED,
        "Only submitted or under review objections can be rejected.",
    ),
}

EDITABLE_STATUSES = frozenset({ObjectionStatus.DRAFT, ObjectionStatus.SUBMITTED})


def _split_chainages(value: Union[None, str, Iterable[str]]) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if v and str(v).strip()]


class ObjectionService:
    """RFI objections: lifecycle, chainages and links to daily works."""

    def __init__(
        self,
        objections: ObjectionRepository,
        works: DailyWorkRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._objections = objections
        self._works = works
        self._clock = clock

    def get(self, objection_id: int) -> RfiObjection:
        objection = self._objections.get(objection_id)
        if not objection:
            raise NotFoundError("Objection not found.")
        return objection

    def _clean_fields(self, data: dict, *, partial: bool = False) -> dict:
        """Validated columns from ``data``. With ``partial`` only the keys present are returned."""
        fields: dict = {}
        if not partial or "title" in data:
            fields["title"] = require_max_length(require_non_empty(data.get("title"), "title"), "title", 255)
        for key in ("description", "reason"):
            if not partial or key in data:
                fields[key] = require_non_empty(data.get(key), key)
        if not partial or "category" in data:
            fields["category"] = None
            if data.get("category"):
                try:
                    fields["category"] = ObjectionCategory(data["category"])
                except ValueError:
                    raise ValidationError("The selected category is invalid.")
        for key in ("chainage_from", "chainage_to"):
            if not partial or key in data:
                fields[key] = (data.get(key) or "").strip() or None
        return fields

    def _existing_rfi_ids(self, rfi_ids: Sequence[int]) -> list[int]:
        ids = sorted({int(i) for i in rfi_ids})
        if not ids:
            raise ValidationError("Select at least one RFI.")
        found = {w.id for w in self._works.get_many(ids)}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ValidationError("Some selected RFIs do not exist: " + ", ".join(map(str, missing)))
        return ids

    def paginate(
        self,
        *,
        filters: dict,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        filters = dict(filters)
        search = (filters.pop("search", None) or "").strip()
        if search:
            filters["search_words"] = search.split()
        page = max(1, int(page))
        rows, total = self._objections.search(filters=filters, limit=per_page, offset=(page - 1) * per_page)
        return {
            "data": [o.to_dict() for o in rows],
            "total": total,
            "active_count": self._objections.count_active(),
            "page": page,
            "last_page": max(1, math.ceil(total / per_page)),
        }

    def create(self, *, data: dict, current_user: SessionUser) -> RfiObjection:
        fields = self._clean_fields(data)
        submit = (data.get("status") or ObjectionStatus.DRAFT.value) == ObjectionStatus.SUBMITTED.value
        raw_rfi_ids = data.get("daily_work_ids") or []
        rfi_ids = self._existing_rfi_ids(raw_rfi_ids) if raw_rfi_ids else []

        objection_id = self._objections.create(
            title=fields["title"],
            category=fields["category"],
            description=fields["description"],
            reason=fields["reason"],
            status=ObjectionStatus.DRAFT,
            chainage_from=fields["chainage_from"],
            chainage_to=fields["chainage_to"],
            created_by=current_user.user_id,
        )
        try:
            self._objections.add_status_log(
                ObjectionStatusLog(
                    objection_id=objection_id,
                    from_status=None,
                    to_status=ObjectionStatus.DRAFT,
                    changed_by=current_user.user_id,
                    changed_at=self._clock(),
                    notes="Objection created",
                )
            )
            self.sync_chainages(
                objection_id,
                specific=_split_chainages(data.get("specific_chainages")),
                range_from=fields["chainage_from"],
                range_to=fields["chainage_to"],
            )
            if rfi_ids:
                self.attach_to_rfis(objection_id, rfi_ids=rfi_ids, current_user=current_user)
        except Exception:
            logger.warning("Objection %s discarded after a failed create", objection_id)
            self._objections.soft_delete(objection_id)
            raise
        if submit:
            return self.submit(objection_id, current_user=current_user)
        logger.info("Objection %s created by %s", objection_id, current_user.user_id)
        return self.get(objection_id)

    def _require_owner_or_admin(self, objection: RfiObjection, user: SessionUser) -> None:
        if not (user.is_admin or objection.created_by == user.user_id):
            raise AuthorizationError("You do not have permission to modify this objection.")

    def update(self, objection_id: int, *, data: dict, current_user: SessionUser) -> RfiObjection:
        objection = self.get(objection_id)
        self._require_owner_or_admin(objection, current_user)
        if objection.status not in EDITABLE_STATUSES:
            raise ValidationError("Only draft or submitted objections can be edited.")

        fields = self._clean_fields(data, partial=True)
        if fields:
            self._objections.update_fields(objection_id=objection_id, fields=fields, updated_by=current_user.user_id)
        if "specific_chainages" in data or "chainage_from" in data or "chainage_to" in data:
            if "specific_chainages" in data:
                specific = _split_chainages(data["specific_chainages"])
            else:
                specific = [c.chainage for c in objection.chainages if c.is_specific]
            self.sync_chainages(
                objection_id,
                specific=specific,
                range_from=fields.get("chainage_from", objection.chainage_from),
                range_to=fields.get("chainage_to", objection.chainage_to),
            )
        return self.get(objection_id)

    def delete(self, objection_id: int, *, current_user: SessionUser) -> str:
        objection = self.get(objection_id)
        self._require_owner_or_admin(objection, current_user)
        if objection.status != ObjectionStatus.DRAFT:
            raise ValidationError("Only draft objections can be deleted.")
        self._objections.soft_delete(objection_id)
        logger.info("Objection %s deleted by %s", objection_id, current_user.user_id)
        return "Objection deleted successfully."

    def _transition(
        self,
        objection_id: int,
        action: str,
        *,
        current_user: SessionUser,
        notes: Optional[str] = None,
    ) -> RfiObjection:
        objection = self.get(objection_id)
        sources, target, message = TRANSITIONS[action]
        if objection.status not in sources:
            raise ValidationError(message)

        now = self._clock()
        kwargs: dict = {}
        if target in (ObjectionStatus.RESOLVED, ObjectionStatus.REJECTED):
            notes = (notes or "").strip()
            if not notes:
                raise ValidationError("The resolution notes field is required.")
            kwargs = {"resolved_by": current_user.user_id, "resolved_at": now, "resolution_notes": notes}

        self._objections.set_status(
            objection_id=objection_id, status=target, updated_by=current_user.user_id, **kwargs
        )
        self._objections.add_status_log(
            ObjectionStatusLog(
                objection_id=objection_id,
                from_status=objection.status,
                to_status=target,
                changed_by=current_user.user_id,
                changed_at=now,
                notes=(notes or "").strip() or None,
            )
        )
        logger.info(
            "Objection %s: %s -> %s by %s", objection_id, objection.status.value, target.value, current_user.user_id
        )
        return self.get(objection_id)

    def submit(self, objection_id: int, *, current_user: SessionUser, notes: Optional[str] = None) -> RfiObjection:
        self._require_owner_or_admin(self.get(objection_id), current_user)
        return self._transition(objection_id, "submit", current_user=current_user, notes=notes)

    def _require_reviewer(self, user: SessionUser) -> None:
        if not user.is_admin:
            raise AuthorizationError("You do not have permission to review objections.")

    def start_review(self, objection_id: int, *, current_user: SessionUser, notes: Optional[str] = None) -> RfiObjection:
        self._require_reviewer(current_user)
        return self._transition(objection_id, "start_review", current_user=current_user, notes=notes)

    def resolve(self, objection_id: int, *, current_user: SessionUser, notes: Optional[str]) -> RfiObjection:
        self._require_reviewer(current_user)
        return self._transition(objection_id, "resolve", current_user=current_user, notes=notes)

    def reject(self, objection_id: int, *, current_user: SessionUser, notes: Optional[str]) -> RfiObjection:
        self._require_reviewer(current_user)
        return self._transition(objection_id, "reject", current_user=current_user, notes=notes)

    def sync_chainages(
        self,
        objection_id: int,
        *,
        specific: Sequence[str],
        range_from: Optional[str],
        range_to: Optional[str],
    ) -> int:
        entries = build_chainage_entries(list(specific), range_from, range_to)
        self._objections.replace_chainages(objection_id=objection_id, entries=entries)
        return len(entries)

    def attach_to_rfis(
        self,
        objection_id: int,
        *,
        rfi_ids: Sequence[int],
        current_user: SessionUser,
        notes: Optional[str] = None,
    ) -> int:
        self.get(objection_id)
        ids = self._existing_rfi_ids(rfi_ids)
        return self._objections.attach_daily_works(
            objection_id=objection_id,
            daily_work_ids=ids,
            attached_by=current_user.user_id,
            attached_at=self._clock(),
            notes=(notes or "").strip() or None,
        )

    def detach_from_rfis(self, objection_id: int, *, rfi_ids: Sequence[int]) -> int:
        self.get(objection_id)
        return self._objections.detach_daily_works(objection_id=objection_id, daily_work_ids=[int(i) for i in rfi_ids])

    def suggest_affected_rfis(self, objection_id: int, *, limit: int = OBJECTION_SUGGESTION_LIMIT) -> list[dict]:
        """RFIs whose location falls on the objection's chainages and are not attached yet."""
        objection = self.get(objection_id)
        start, end = objection.effective_range()
        if not objection.specific_meters and (start is None or end is None):
            return []

        attached = set(self._objections.list_attached_daily_work_ids(objection_id))
        out = []
        for work in self._works.list_with_location():
            if work.id in attached or not objection.matches_rfi_location(work.location):
                continue
            out.append(
                {
                    "id": work.id,
                    "number": work.number,
                    "date": work.date.isoformat(),
                    "location": work.location,
                    "type": work.type.value,
                    "status": work.status.value,
                }
            )
            if len(out) >= limit:
                break
        return out

    def active_count_for_rfi(self, rfi_id: int) -> int:
        return self._objections.active_counts_for_daily_works([rfi_id]).get(int(rfi_id), 0)

    def objections_for_rfi(self, rfi_id: int) -> Sequence[RfiObjection]:
        return self._objections.list_for_daily_work(rfi_id)

    def status_logs(self, objection_id: int) -> Sequence[ObjectionStatusLog]:
        self.get(objection_id)
        return self._objections.list_status_logs(objection_id)
