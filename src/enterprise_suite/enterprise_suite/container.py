from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .attendance.factory import AttendanceValidatorFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_TRIAL_DAYS, NAVIGATION_CACHE_SECONDS, TENANT_DB_PREFIX
from .daily_works.import_service import DailyWorkImportService
from .daily_works.jurisdiction import JurisdictionMatcher
from .daily_works.mysql_daily_work_repository import (
    MySQLDailyWorkRepository,
    MySQLDailyWorkSummaryRepository,
    MySQLJurisdictionRepository,
)
from .daily_works.service import DailyWorkService
from .daily_works.summary_service import DailyWorkSummaryService
from .database.bootstrap import drop_database, provision_tenant_database
from .database.connection import DatabaseConnection, DBConfig, TenantDatabaseRouter
from .events.mysql_event_repository import MySQLEventRepository
from .events.service import EventService
from .leaves.bulk_validation import BulkLeaveValidator
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.query_service import LeaveQueryService
from .leaves.service import LeaveService
from .modules.definitions import all_permission_names
from .modules.mysql_module_repository import MySQLModuleRepository
from .modules.seeder import ensure_permissions
from .modules.service import ModulePermissionService
from .objections.mysql_objection_repository import MySQLObjectionRepository
from .objections.service import ObjectionService
from .subscriptions.mysql_subscription_repository import MySQLSubscriptionRepository
from .subscriptions.service import SubscriptionAdminService
from .tenancy.mysql_tenant_repository import MySQLTenantRepository
from .tenancy.registration_service import TenantRegistrationService
from .tenancy.resolver import TenantResolver
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    """Central-database repos plus tenant repos that follow the bound tenant database."""

    conn: DatabaseConnection
    tenant_router: TenantDatabaseRouter
    clock: Callable[[], datetime]

    # central database
    tenants_repo: MySQLTenantRepository
    subscriptions_repo: MySQLSubscriptionRepository
    modules_repo: MySQLModuleRepository
    central_users_repo: MySQLUserRepository

    # tenant databases
    users_repo: MySQLUserRepository
    daily_works_repo: MySQLDailyWorkRepository
    daily_work_summaries_repo: MySQLDailyWorkSummaryRepository
    jurisdictions_repo: MySQLJurisdictionRepository
    objections_repo: MySQLObjectionRepository
    leaves_repo: MySQLLeaveRepository
    events_repo: MySQLEventRepository
    attendance_repo: MySQLAttendanceRepository

    tenant_resolver: TenantResolver
    module_permission_service: ModulePermissionService
    subscription_service: SubscriptionAdminService
    registration_service: TenantRegistrationService
    central_auth_service: AuthService
    auth_service: AuthService
    user_service: UserService
    daily_work_service: DailyWorkService
    daily_work_summary_service: DailyWorkSummaryService
    daily_work_import_service: DailyWorkImportService
    objection_service: ObjectionService
    leave_query_service: LeaveQueryService
    leave_service: LeaveService
    bulk_leave_validator: BulkLeaveValidator
    event_service: EventService
    attendance_service: AttendanceService


def build_container(
    *,
    db_config: dict,
    central_domains=("localhost",),
    base_domain: str = "localhost",
    tenant_db_prefix: str = TENANT_DB_PREFIX,
    navigation_cache_seconds: int = NAVIGATION_CACHE_SECONDS,
    trial_days: int = DEFAULT_TRIAL_DAYS,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    config = DBConfig.from_dict(db_config)
    conn = DatabaseConnection.get_instance(config)
    router = TenantDatabaseRouter(config)

    tenants_repo = MySQLTenantRepository(conn)
    subscriptions_repo = MySQLSubscriptionRepository(conn)
    modules_repo = MySQLModuleRepository(conn)
    central_users_repo = MySQLUserRepository(conn)

    users_repo = MySQLUserRepository(router)
    daily_works_repo = MySQLDailyWorkRepository(router)
    daily_work_summaries_repo = MySQLDailyWorkSummaryRepository(router)
    jurisdictions_repo = MySQLJurisdictionRepository(router)
    objections_repo = MySQLObjectionRepository(router)
    leaves_repo = MySQLLeaveRepository(router)
    events_repo = MySQLEventRepository(router)
    attendance_repo = MySQLAttendanceRepository(router)

    def provision(database: str, admin_name: str, admin_email: str, admin_password: str) -> int:
        user_id = provision_tenant_database(
            db_config,
            database=database,
            admin_name=admin_name,
            admin_email=admin_email,
            admin_password=admin_password,
        )
        with router.use(database):
            ensure_permissions(users_repo, all_permission_names())
        return user_id

    jurisdictions = JurisdictionMatcher(jurisdictions_repo.list_all, scope=lambda: router.database)
    daily_work_summary_service = DailyWorkSummaryService(daily_works_repo, daily_work_summaries_repo)
    leave_query_service = LeaveQueryService(leaves_repo, users_repo, clock=clock)
    leave_service = LeaveService(leaves_repo, users_repo, leave_query_service, clock=clock)

    return Container(
        conn=conn,
        tenant_router=router,
        clock=clock,
        tenants_repo=tenants_repo,
        subscriptions_repo=subscriptions_repo,
        modules_repo=modules_repo,
        central_users_repo=central_users_repo,
        users_repo=users_repo,
        daily_works_repo=daily_works_repo,
        daily_work_summaries_repo=daily_work_summaries_repo,
        jurisdictions_repo=jurisdictions_repo,
        objections_repo=objections_repo,
        leaves_repo=leaves_repo,
        events_repo=events_repo,
        attendance_repo=attendance_repo,
        tenant_resolver=TenantResolver(tenants_repo, central_domains),
        module_permission_service=ModulePermissionService(modules_repo, ttl_seconds=navigation_cache_seconds),
        subscription_service=SubscriptionAdminService(subscriptions_repo, clock=clock),
        registration_service=TenantRegistrationService(
            tenants_repo,
            subscriptions_repo,
            provision_database=provision,
            drop_database=lambda database: drop_database(db_config, database),
            base_domain=base_domain,
            db_prefix=tenant_db_prefix,
            trial_days=trial_days,
            clock=clock,
        ),
        central_auth_service=AuthService(central_users_repo),
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        daily_work_service=DailyWorkService(daily_works_repo, objections_repo, jurisdictions, clock=clock),
        daily_work_summary_service=daily_work_summary_service,
        daily_work_import_service=DailyWorkImportService(
            daily_works_repo, jurisdictions, daily_work_summary_service, clock=clock
        ),
        objection_service=ObjectionService(objections_repo, daily_works_repo, clock=clock),
        leave_query_service=leave_query_service,
        leave_service=leave_service,
        bulk_leave_validator=BulkLeaveValidator(leaves_repo, leave_query_service, clock=clock),
        event_service=EventService(events_repo, clock=clock),
        attendance_service=AttendanceService(
            attendance_repo, validator_factory=AttendanceValidatorFactory(attendance_repo), clock=clock
        ),
    )
