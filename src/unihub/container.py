from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_ding_repository import MySQLDingRepository
from .attendance.service import AttendanceOrchestrator
from .core.constants import DEFAULT_APP_RATE_LIMIT, DEFAULT_RATE_IDLE_TTL_SECONDS, DEFAULT_RATE_WINDOW_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.policy import ReturnCheckInPolicy
from .leaves.service import LeaveWorkflow
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.service import NotificationCenter
from .notifications.sink import LoggingSink
from .openapi.mysql_open_repository import MySQLOpenRepository
from .openapi.rate_limit import AdmissionControl
from .openapi.service import OpenPlatform
from .org.mysql_org_repository import MySQLOrgRepository
from .org.service import OrgMembershipService
from .rbac.mysql_role_repository import MySQLRoleRepository
from .rbac.service import PermissionResolver
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.service import TaskWorkflow
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, StudentDirectory


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    roles_repo: MySQLRoleRepository
    users_repo: MySQLUserRepository
    org_repo: MySQLOrgRepository
    dings_repo: MySQLDingRepository
    leaves_repo: MySQLLeaveRepository
    tasks_repo: MySQLTaskRepository
    notifications_repo: MySQLNotificationRepository
    open_repo: MySQLOpenRepository

    permission_resolver: PermissionResolver
    auth_service: AuthService
    student_directory: StudentDirectory
    org_service: OrgMembershipService
    notification_center: NotificationCenter
    attendance_service: AttendanceOrchestrator
    leave_service: LeaveWorkflow
    task_service: TaskWorkflow
    admission_control: AdmissionControl
    open_platform: OpenPlatform


def build_container(*, settings) -> Container:
    db_config = getattr(settings, "DB_CONFIG")
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    roles_repo = MySQLRoleRepository(conn)
    users_repo = MySQLUserRepository(conn)
    org_repo = MySQLOrgRepository(conn)
    dings_repo = MySQLDingRepository(conn)
    leaves_repo = MySQLLeaveRepository(conn)
    tasks_repo = MySQLTaskRepository(conn)
    notifications_repo = MySQLNotificationRepository(conn)
    open_repo = MySQLOpenRepository(conn)

    permission_resolver = PermissionResolver(roles_repo)
    auth_service = AuthService(users_repo)
    student_directory = StudentDirectory(users_repo, permission_resolver)
    org_service = OrgMembershipService(org_repo, users_repo, permission_resolver, transaction=conn.transaction)
    notification_center = NotificationCenter(notifications_repo, org_service, LoggingSink())
    attendance_service = AttendanceOrchestrator(
        dings_repo,
        org_service,
        notification_center,
        permission_resolver,
        transaction=conn.transaction,
    )
    leave_service = LeaveWorkflow(
        leaves_repo,
        org_repo,
        attendance_service,
        permission_resolver,
        ReturnCheckInPolicy.from_settings(settings),
        transaction=conn.transaction,
    )
    task_service = TaskWorkflow(tasks_repo, org_service)
    admission_control = AdmissionControl(
        window_seconds=int(getattr(settings, "OPEN_API_WINDOW_SECONDS", DEFAULT_RATE_WINDOW_SECONDS)),
        idle_ttl_seconds=int(getattr(settings, "OPEN_API_IDLE_TTL_SECONDS", DEFAULT_RATE_IDLE_TTL_SECONDS)),
    )
    open_platform = OpenPlatform(
        open_repo,
        users_repo,
        admission_control,
        default_rate_limit=int(getattr(settings, "OPEN_API_DEFAULT_RATE_LIMIT", DEFAULT_APP_RATE_LIMIT)),
    )

    return Container(
        conn=conn,
        roles_repo=roles_repo,
        users_repo=users_repo,
        org_repo=org_repo,
        dings_repo=dings_repo,
        leaves_repo=leaves_repo,
        tasks_repo=tasks_repo,
        notifications_repo=notifications_repo,
        open_repo=open_repo,
        permission_resolver=permission_resolver,
        auth_service=auth_service,
        student_directory=student_directory,
        org_service=org_service,
        notification_center=notification_center,
        attendance_service=attendance_service,
        leave_service=leave_service,
        task_service=task_service,
        admission_control=admission_control,
        open_platform=open_platform,
    )
