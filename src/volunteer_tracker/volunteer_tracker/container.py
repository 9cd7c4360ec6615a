from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .attendance.repository import AttendanceRepository
from .corrections.forced_checkout import ForcedCheckoutService
from .corrections.service import CorrectionService
from .database.connection import DBConfig, DatabaseConnection
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .participants.mysql_participant_repository import MySQLParticipantRepository
from .participants.repository import ParticipantRepository
from .qr.codec import QRTokenCodec
from .review.service import DailyReviewService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    participants_repo: ParticipantRepository
    events_repo: EventRepository
    attendance_repo: AttendanceRepository

    auth_service: AuthService
    attendance_service: AttendanceService
    correction_service: CorrectionService
    forced_checkout_service: ForcedCheckoutService
    daily_review_service: DailyReviewService


def build_services(
    *,
    users_repo: UserRepository,
    participants_repo: ParticipantRepository,
    events_repo: EventRepository,
    attendance_repo: AttendanceRepository,
    qr_secret: str,
) -> Container:
    """Wire services on top of any repository implementations (MySQL or in-memory)."""

    codec = QRTokenCodec(qr_secret)
    return Container(
        users_repo=users_repo,
        participants_repo=participants_repo,
        events_repo=events_repo,
        attendance_repo=attendance_repo,
        auth_service=AuthService(users_repo),
        attendance_service=AttendanceService(attendance_repo, participants_repo, events_repo, codec=codec),
        correction_service=CorrectionService(attendance_repo, participants_repo),
        forced_checkout_service=ForcedCheckoutService(attendance_repo, participants_repo, events_repo),
        daily_review_service=DailyReviewService(attendance_repo, participants_repo, events_repo),
    )


def build_container(*, db_config: dict, qr_secret: str) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return build_services(
        users_repo=MySQLUserRepository(conn),
        participants_repo=MySQLParticipantRepository(conn),
        events_repo=MySQLEventRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        qr_secret=qr_secret,
    )
