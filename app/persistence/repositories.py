"""Data access layer (repositories) for the notifier.

Repositories wrap a caller-owned session, translate SQLAlchemy failures into
PersistenceError and return domain models. Lookups that may legitimately
miss return None; deciding whether a miss is fatal is the caller's job.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.models import (
    AuditRecord,
    Client,
    Contract,
    EmailTemplate,
    Organization,
    Program,
    ReportReminder,
    ReportTemplate,
)

from .exceptions import DataIntegrityError, PersistenceError
from .schema import (
    ClientModel,
    ClientSettingsModel,
    ContactModel,
    ContractModel,
    ContractTypeModel,
    EmailNotificationTypeModel,
    EmailSettingsModel,
    EmailTemplateModel,
    OrganizationAssociationModel,
    OrganizationModel,
    ProgramModel,
    ReportReminderModel,
    ReportTemplateModel,
    ReportTemplateOrganizationModel,
    RoleModel,
    SystemEmailModel,
    UserModel,
    UserRoleModel,
)

logger = logging.getLogger(__name__)

# Contracts in these states never get expiration notices
EXCLUDED_CONTRACT_STATUSES = ("Pending Contract", "Pending Amendment", "Completed")


class ContractRepository:
    """Read access to contracts and the lookups used in their emails."""

    def __init__(self, session: Session):
        self.session = session

    def get_expiring(self, expiration_date: date) -> List[Contract]:
        """Contracts eligible for notices that expire on ``expiration_date``.

        Args:
            expiration_date: Exact expiration date to match

        Returns:
            List of Contract domain models (empty if none)

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(ContractModel)
                .where(
                    ContractModel.expiration_date == expiration_date,
                    # NULL status counts as eligible
                    (ContractModel.status.is_(None))
                    | (ContractModel.status.not_in(EXCLUDED_CONTRACT_STATUSES)),
                )
                .order_by(ContractModel.id)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving contracts expiring on {expiration_date}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve expiring contracts: {e}") from e

    def get_by_id(self, contract_id: int) -> Optional[Contract]:
        return self._get(ContractModel, contract_id, "contract")

    def get_program(self, program_id: Optional[int]) -> Optional[Program]:
        """Active funding program, or None."""
        if program_id is None:
            return None
        try:
            stmt = select(ProgramModel).where(
                ProgramModel.id == program_id, ProgramModel.active.is_(True)
            )
            model = self.session.execute(stmt).scalars().first()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving program {program_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve program: {e}") from e

    def get_organization(self, organization_id: int) -> Optional[Organization]:
        return self._get(OrganizationModel, organization_id, "organization")

    def get_contract_type_name(self, contract_type_id: int) -> Optional[str]:
        try:
            model = self.session.get(ContractTypeModel, contract_type_id)
            return model.name if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving contract type {contract_type_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve contract type: {e}") from e

    def _get(self, model_cls, key: int, label: str):
        try:
            model = self.session.get(model_cls, key)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {label} {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve {label}: {e}") from e


class ReportRepository:
    """Read access to report templates and their reminders."""

    def __init__(self, session: Session):
        self.session = session

    def get_reminder(self, reminder_id: int) -> Optional[ReportReminder]:
        """Active reminder by id, or None."""
        try:
            stmt = select(ReportReminderModel).where(
                ReportReminderModel.id == reminder_id,
                ReportReminderModel.active.is_(True),
            )
            model = self.session.execute(stmt).scalars().first()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving report reminder {reminder_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve report reminder: {e}") from e

    def list_active_reminders(self) -> List[ReportReminder]:
        """All active reminders, ordered by id."""
        try:
            stmt = (
                select(ReportReminderModel)
                .where(ReportReminderModel.active.is_(True))
                .order_by(ReportReminderModel.id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing report reminders: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list report reminders: {e}") from e

    def get_template(self, template_id: int) -> Optional[ReportTemplate]:
        """Active report template by id, or None."""
        try:
            stmt = select(ReportTemplateModel).where(
                ReportTemplateModel.id == template_id,
                ReportTemplateModel.active.is_(True),
            )
            model = self.session.execute(stmt).scalars().first()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving report template {template_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve report template: {e}") from e


class TenantRepository:
    """Tenant-level configuration: client records, SMTP settings and email templates."""

    def __init__(self, session: Session):
        self.session = session

    def get_client(self, client_id: int) -> Optional[Client]:
        """Active client by id, or None."""
        try:
            stmt = select(ClientModel).where(
                ClientModel.id == client_id, ClientModel.active.is_(True)
            )
            model = self.session.execute(stmt).scalars().first()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving client {client_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve client: {e}") from e

    def get_email_settings(self, tenant_code: str) -> Optional[EmailSettingsModel]:
        """First active Email_Settings row for the tenant, or None."""
        try:
            stmt = (
                select(EmailSettingsModel)
                .where(
                    EmailSettingsModel.tenant_code == tenant_code,
                    EmailSettingsModel.active.is_(True),
                )
                .order_by(EmailSettingsModel.id)
            )
            return self.session.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving email settings for {tenant_code}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve email settings: {e}") from e

    def get_support_email(self, tenant_code: str) -> Optional[str]:
        """Support address from Admin_ClientSettings.

        Returns None when the tenant has no settings row; an existing row with a
        blank address returns an empty string.
        """
        try:
            stmt = (
                select(ClientSettingsModel)
                .where(ClientSettingsModel.client_code == tenant_code)
                .order_by(ClientSettingsModel.id)
            )
            model = self.session.execute(stmt).scalars().first()
            if model is None:
                return None
            return model.support_email or ""
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving client settings for {tenant_code}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve client settings: {e}") from e

    def get_email_template(
        self, tenant_code: str, notification_type: str, active_only: bool = True
    ) -> Optional[EmailTemplate]:
        """Template mapped to a notification type for the tenant, or None.

        Args:
            tenant_code: Tenant code
            notification_type: Notification type key, e.g. "ContractExpiration"
            active_only: Only consider active notification types
        """
        try:
            type_stmt = select(EmailNotificationTypeModel.id).where(
                EmailNotificationTypeModel.notification_type == notification_type,
                EmailNotificationTypeModel.client_code == tenant_code,
            )
            if active_only:
                type_stmt = type_stmt.where(EmailNotificationTypeModel.active.is_(True))
            type_id = self.session.execute(
                type_stmt.order_by(EmailNotificationTypeModel.id)
            ).scalars().first()

            if type_id is None:
                return None

            stmt = (
                select(EmailTemplateModel)
                .where(EmailTemplateModel.email_type_id == type_id)
                .order_by(EmailTemplateModel.id)
            )
            model = self.session.execute(stmt).scalars().first()
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving template {notification_type} for {tenant_code}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to retrieve email template: {e}") from e


class RecipientRepository:
    """Email addresses of active users holding a role within a set of organizations."""

    def __init__(self, session: Session):
        self.session = session

    def find_emails_for_organizations(
        self, role_name: str, organization_ids: Iterable[int]
    ) -> List[str]:
        ids = list(organization_ids)
        if not ids:
            return []
        return self._find_emails(
            role_name, select(OrganizationModel.id).where(OrganizationModel.id.in_(ids))
        )

    def find_emails_for_report_template(self, role_name: str, report_template_id: int) -> List[str]:
        organizations = select(ReportTemplateOrganizationModel.organization_id).where(
            ReportTemplateOrganizationModel.report_template_id == report_template_id,
            ReportTemplateOrganizationModel.active.is_(True),
        )
        return self._find_emails(role_name, organizations)

    def find_emails_for_tenant(self, role_name: str, tenant_code: str) -> List[str]:
        organizations = (
            select(OrganizationModel.id)
            .join(ClientModel, ClientModel.id == OrganizationModel.client_id)
            .where(ClientModel.code == tenant_code)
        )
        return self._find_emails(role_name, organizations)

    def _find_emails(self, role_name: str, organization_ids: Select) -> List[str]:
        """user -> role assignment -> role name, user -> contact -> organization association."""
        stmt = (
            select(ContactModel.primary_email)
            .join(UserModel, UserModel.id == ContactModel.app_user_id)
            .join(UserRoleModel, UserRoleModel.user_id == UserModel.id)
            .join(RoleModel, RoleModel.id == UserRoleModel.role_id)
            .join(
                OrganizationAssociationModel,
                OrganizationAssociationModel.contact_id == ContactModel.id,
            )
            .where(
                UserModel.active.is_(True),
                RoleModel.display_text == role_name,
                OrganizationAssociationModel.organization_id.in_(organization_ids),
                ContactModel.primary_email.is_not(None),
            )
            .distinct()
            .order_by(ContactModel.primary_email)
        )
        try:
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query recipients for role '{role_name}': {e}") from e


class SystemEmailRepository:
    """Insert-only access to the Email_SystemEmails audit table."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, record: AuditRecord) -> AuditRecord:
        """Insert one audit row and flush so failures surface here.

        Raises:
            DataIntegrityError: If a constraint or trigger rejects the row
            PersistenceError: If any other database error occurs
        """
        try:
            model = SystemEmailModel.from_domain(record)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error inserting audit row for {record.tenant_code}: {e}")
            raise DataIntegrityError(f"Audit row rejected: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting audit row for {record.tenant_code}: {e}")
            raise PersistenceError(f"Failed to insert audit row: {e}") from e

    def list_for_tenant(self, tenant_code: str) -> List[AuditRecord]:
        """Audit rows for a tenant, oldest first."""
        try:
            stmt = (
                select(SystemEmailModel)
                .where(SystemEmailModel.tenant_code == tenant_code)
                .order_by(SystemEmailModel.id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing audit rows for {tenant_code}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list audit rows: {e}") from e
