from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..core.enums import AttendanceTypeSlug
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import SessionUser
from .factory import AttendanceValidatorFactory
from .model import AttendanceRecord, AttendanceType
from .repository import AttendanceRepository
from .validators.base import PunchContext, ValidationOutcome

logger = get_logger(__name__)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        validator_factory: Optional[AttendanceValidatorFactory] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._factory = validator_factory or AttendanceValidatorFactory(attendance)
        self._clock = clock

    def list_types(self) -> list[AttendanceType]:
        return list(self._attendance.list_types(active_only=True))

    def get_type(self, type_id: int) -> AttendanceType:
        attendance_type = self._attendance.get_type(int(type_id))
        if not attendance_type or not attendance_type.is_active:
            raise NotFoundError("Attendance type not found.")
        return attendance_type

    def _validate(self, attendance_type: AttendanceType, ctx: PunchContext) -> ValidationOutcome:
        return self._factory.for_slug(attendance_type.slug).validate(attendance_type, ctx)

    def check(self, type_id: int, ctx: PunchContext) -> ValidationOutcome:
        return self._validate(self.get_type(type_id), ctx)

    def punch(
        self,
        user: SessionUser,
        type_id: int,
        payload: dict,
        now: Optional[datetime] = None,
        *,
        ip: Optional[str] = None,
    ) -> dict:
        """Validate the punch, then punch in (no open record today) or punch out."""
        now = now or self._clock()
        ctx = PunchContext.from_payload(payload or {}, now=now, ip=ip)
        attendance_type = self.get_type(type_id)
        outcome = self._validate(attendance_type, ctx)
        if not outcome.ok:
            logger.info("Punch refused for user %s: %s", user.user_id, outcome.message)
            if outcome.status_code == 403:
                raise AuthorizationError(outcome.message)
            raise ValidationError(outcome.message)
        if attendance_type.slug == AttendanceTypeSlug.QR_CODE.value and (attendance_type.config or {}).get("one_time_use"):
            self._attendance.mark_qr_code_used(attendance_type.id, ctx.code, now)

        location = {"lat": ctx.lat, "lng": ctx.lng, "ip": ctx.ip} if ctx.has_location or ctx.ip else None
        today = now.date()
        current = self._attendance.get_for_user_and_date(user.user_id, today)
        if current and current.is_open:
            if now < current.punchin:
                raise ValidationError("Punch out time cannot be before punch in time.")
            self._attendance.update_punchout(attendance_id=current.id, punchout=now, location=location)
            record = AttendanceRecord(
                id=current.id,
                user_id=current.user_id,
                date=current.date,
                punchin=current.punchin,
                punchout=now,
                attendance_type_id=current.attendance_type_id,
                punchin_location=current.punchin_location,
                punchout_location=location,
            )
            action = "punch_out"
            message = "Punched out successfully."
        else:
            record_id = self._attendance.create_punchin(
                user_id=user.user_id,
                work_date=today,
                punchin=now,
                attendance_type_id=int(type_id),
                location=location,
            )
            record = AttendanceRecord(
                id=record_id,
                user_id=user.user_id,
                date=today,
                punchin=now,
                attendance_type_id=int(type_id),
                punchin_location=location,
            )
            action = "punch_in"
            message = "Punched in successfully."

        logger.info("User %s %s at %s", user.user_id, action, now.isoformat())
        return {"action": action, "message": message, "validation": outcome.message, "record": record.to_dict()}

    def today(self, user_id: int) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_user_and_date(user_id, self._clock().date())

    def history(self, user_id: int, *, limit: int = 15) -> list[AttendanceRecord]:
        return list(self._attendance.recent_for_user(user_id, limit))
