from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .auth.service import AuthService
from .auth.tokens import TokenService
from .complaints.mysql_complaint_repository import MySQLComplaintFieldRepository, MySQLComplaintRepository
from .complaints.service import ComplaintService
from .configurations.mysql_configuration_repository import MySQLConfigurationRepository
from .configurations.service import ConfigurationService
from .core.constants import DEFAULT_MAX_UPLOAD_BYTES, DEFAULT_TOKEN_MAX_AGE, DEFAULT_TOKEN_REFRESH_GRACE
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .deletion_requests.mysql_deletion_request_repository import MySQLDeletionRequestRepository
from .deletion_requests.service import DeletionRequestService
from .edit_requests.mysql_edit_request_repository import MySQLEditRequestRepository
from .edit_requests.service import EditRequestService
from .feedback.mysql_feedback_repository import MySQLFeedbackRepository
from .feedback.service import FeedbackService
from .health.service import HealthService
from .lost_items.mysql_lost_item_repository import MySQLLostItemRepository
from .lost_items.service import LostItemService
from .reports.service import ReportService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import UserService
from .visitors.mysql_visitor_repository import MySQLVisitorRepository
from .visitors.service import VisitorService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    upload_root: Path

    users_repo: MySQLUserRepository
    visitors_repo: MySQLVisitorRepository
    deletion_requests_repo: MySQLDeletionRequestRepository
    edit_requests_repo: MySQLEditRequestRepository
    configurations_repo: MySQLConfigurationRepository
    complaints_repo: MySQLComplaintRepository
    complaint_fields_repo: MySQLComplaintFieldRepository
    feedback_repo: MySQLFeedbackRepository
    lost_items_repo: MySQLLostItemRepository

    auth_service: AuthService
    user_service: UserService
    visitor_service: VisitorService
    deletion_request_service: DeletionRequestService
    edit_request_service: EditRequestService
    configuration_service: ConfigurationService
    complaint_service: ComplaintService
    feedback_service: FeedbackService
    lost_item_service: LostItemService
    dashboard_service: DashboardService
    report_service: ReportService
    health_service: HealthService


def build_container(
    *,
    db_config: dict,
    secret_key: str,
    token_max_age: int = DEFAULT_TOKEN_MAX_AGE,
    refresh_grace: int = DEFAULT_TOKEN_REFRESH_GRACE,
    upload_root: str | Path = "uploads",
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    upload_root = Path(upload_root)
    uploads = {"upload_root": upload_root, "max_upload_bytes": max_upload_bytes}

    users_repo = MySQLUserRepository(conn)
    visitors_repo = MySQLVisitorRepository(conn)
    deletion_requests_repo = MySQLDeletionRequestRepository(conn)
    edit_requests_repo = MySQLEditRequestRepository(conn)
    configurations_repo = MySQLConfigurationRepository(conn)
    complaints_repo = MySQLComplaintRepository(conn)
    complaint_fields_repo = MySQLComplaintFieldRepository(conn)
    feedback_repo = MySQLFeedbackRepository(conn)
    lost_items_repo = MySQLLostItemRepository(conn)

    tokens = TokenService(secret_key, max_age=token_max_age, refresh_grace=refresh_grace)
    lost_item_service = LostItemService(lost_items_repo, **uploads)
    visitor_service = VisitorService(visitors_repo, deletion_requests_repo, **uploads)

    return Container(
        conn=conn,
        upload_root=upload_root,
        users_repo=users_repo,
        visitors_repo=visitors_repo,
        deletion_requests_repo=deletion_requests_repo,
        edit_requests_repo=edit_requests_repo,
        configurations_repo=configurations_repo,
        complaints_repo=complaints_repo,
        complaint_fields_repo=complaint_fields_repo,
        feedback_repo=feedback_repo,
        lost_items_repo=lost_items_repo,
        auth_service=AuthService(users_repo, tokens),
        user_service=UserService(users_repo, **uploads),
        visitor_service=visitor_service,
        deletion_request_service=DeletionRequestService(deletion_requests_repo, visitors_repo),
        edit_request_service=EditRequestService(edit_requests_repo, visitor_service),
        configuration_service=ConfigurationService(configurations_repo),
        complaint_service=ComplaintService(complaints_repo, complaint_fields_repo, **uploads),
        feedback_service=FeedbackService(feedback_repo, visitors_repo),
        lost_item_service=lost_item_service,
        dashboard_service=DashboardService(visitors_repo, feedback_repo, complaints_repo, lost_item_service),
        report_service=ReportService(visitors_repo),
        health_service=HealthService(conn),
    )
