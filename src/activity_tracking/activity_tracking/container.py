from __future__ import annotations

from dataclasses import dataclass

from .core.constants import (
    DEFAULT_ACCESS_TOKEN_MS,
    DEFAULT_MAX_LOGIN_ATTEMPTS,
    DEFAULT_PASSWORD_EXPIRATION_DAYS,
    DEFAULT_PASSWORD_WARNING_DAYS,
    DEFAULT_REFRESH_TOKEN_MS,
)
from .database.connection import DBConfig, DatabaseConnection
from .dropdowns.mysql_dropdown_repository import MySQLDropdownRepository
from .dropdowns.service import BillabilityService, DropdownValueService
from .expenses.mysql_expense_repository import MySQLExpenseRepository
from .expenses.service import ExpenseService
from .imports.csv_import import CsvImportService
from .notifications.email_service import EmailService, MailSettings
from .receipts.service import ReceiptService
from .receipts.storage import ReceiptStorage, build_receipt_storage
from .reports.service import ReportService
from .roles.mysql_role_repository import MySQLRoleRepository
from .roles.service import PermissionService, RoleService
from .security.jwt_service import JwtService
from .tasks.mysql_task_repository import MySQLTaskActivityRepository
from .tasks.service import TaskActivityService
from .tokens.mysql_token_repository import MySQLRevokedTokenRepository
from .tokens.service import TokenRevocationService
from .users.mysql_user_repository import MySQLUserRepository
from .users.password_expiration import PasswordExpirationNotificationService
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    db: DatabaseConnection

    users_repo: MySQLUserRepository
    roles_repo: MySQLRoleRepository
    tokens_repo: MySQLRevokedTokenRepository
    dropdowns_repo: MySQLDropdownRepository
    tasks_repo: MySQLTaskActivityRepository
    expenses_repo: MySQLExpenseRepository

    jwt_service: JwtService
    token_revocation_service: TokenRevocationService
    permission_service: PermissionService
    role_service: RoleService
    auth_service: AuthService
    user_service: UserService
    email_service: EmailService
    password_expiration_service: PasswordExpirationNotificationService
    dropdown_service: DropdownValueService
    billability_service: BillabilityService
    task_activity_service: TaskActivityService
    expense_service: ExpenseService
    receipt_storage: ReceiptStorage
    receipt_service: ReceiptService
    csv_import_service: CsvImportService
    report_service: ReportService


def build_container(*, db_config: dict, settings) -> Container:
    db = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(db)
    roles_repo = MySQLRoleRepository(db)
    tokens_repo = MySQLRevokedTokenRepository(db)
    dropdowns_repo = MySQLDropdownRepository(db)
    tasks_repo = MySQLTaskActivityRepository(db)
    expenses_repo = MySQLExpenseRepository(db)

    jwt_service = JwtService(
        getattr(settings, "JWT_SECRET", ""),
        access_expiration_ms=int(getattr(settings, "JWT_ACCESS_EXPIRATION_MS", DEFAULT_ACCESS_TOKEN_MS)),
        refresh_expiration_ms=int(getattr(settings, "JWT_REFRESH_EXPIRATION_MS", DEFAULT_REFRESH_TOKEN_MS)),
    )
    warning_days = int(getattr(settings, "PASSWORD_WARNING_DAYS", DEFAULT_PASSWORD_WARNING_DAYS))

    email_service = EmailService(MailSettings.from_settings(settings))
    permission_service = PermissionService(roles_repo, users_repo)
    role_service = RoleService(roles_repo, users_repo)
    receipt_storage = build_receipt_storage(settings)
    billability_service = BillabilityService(dropdowns_repo)

    return Container(
        db=db,
        users_repo=users_repo,
        roles_repo=roles_repo,
        tokens_repo=tokens_repo,
        dropdowns_repo=dropdowns_repo,
        tasks_repo=tasks_repo,
        expenses_repo=expenses_repo,
        jwt_service=jwt_service,
        token_revocation_service=TokenRevocationService(tokens_repo, jwt_service),
        permission_service=permission_service,
        role_service=role_service,
        auth_service=AuthService(
            users_repo,
            email_service,
            max_attempts=int(getattr(settings, "MAX_LOGIN_ATTEMPTS", DEFAULT_MAX_LOGIN_ATTEMPTS)),
        ),
        user_service=UserService(
            users_repo,
            known_roles=role_service.role_names,
            expiration_days=int(getattr(settings, "PASSWORD_EXPIRATION_DAYS", DEFAULT_PASSWORD_EXPIRATION_DAYS)),
            warning_days=warning_days,
        ),
        email_service=email_service,
        password_expiration_service=PasswordExpirationNotificationService(
            users_repo, email_service, warning_days=warning_days
        ),
        dropdown_service=DropdownValueService(dropdowns_repo),
        billability_service=billability_service,
        task_activity_service=TaskActivityService(tasks_repo),
        expense_service=ExpenseService(
            expenses_repo, users_repo, permission_service, email=email_service, receipts=receipt_storage
        ),
        receipt_storage=receipt_storage,
        receipt_service=ReceiptService(expenses_repo, receipt_storage),
        csv_import_service=CsvImportService(tasks_repo, expenses_repo, dropdowns_repo, users_repo),
        report_service=ReportService(tasks_repo, billability_service),
    )
