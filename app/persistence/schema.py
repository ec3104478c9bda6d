"""ORM mappings for the tenant database.

The tables belong to the line-of-business application; this module maps the
columns the notifier reads, plus the Email_SystemEmails audit table it
inserts into. Column names follow the existing database, attribute names are
snake_case.
"""

import logging
from datetime import timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

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

logger = logging.getLogger(__name__)

Base = declarative_base()


# Tenants and tenant-level settings

class ClientModel(Base):
    __tablename__ = "Admin_Client"

    id = Column("Id", Integer, primary_key=True)
    code = Column("Code", String(20), nullable=False)
    name = Column("Name", String(255), nullable=True)
    active = Column("Active", Boolean, nullable=False, default=True)

    def to_domain(self) -> Client:
        return Client(id=self.id, code=self.code)


class ClientSettingsModel(Base):
    __tablename__ = "Admin_ClientSettings"

    id = Column("Id", Integer, primary_key=True)
    client_code = Column("ClientCode", String(20), nullable=False)
    support_email = Column("SupportEmail", String(255), nullable=True)


class EmailSettingsModel(Base):
    """SMTP settings per tenant; only the active row is used."""

    __tablename__ = "Email_Settings"

    id = Column("Id", Integer, primary_key=True)
    tenant_code = Column("TenantCode", String(20), nullable=False)
    smtp_server = Column("SmtpServer", String(255), nullable=True)
    port = Column("Port", Integer, nullable=False, default=25)
    sender = Column("Sender", String(255), nullable=True)
    user_name = Column("UserName", String(255), nullable=True)
    password = Column("Password", String(255), nullable=True)
    is_live = Column("IsLive", Boolean, nullable=False, default=False)
    test_address = Column("TestAddress", String(255), nullable=True)
    active = Column("Active", Boolean, nullable=False, default=True)

    __table_args__ = (Index("idx_email_settings_tenant", "TenantCode"),)


class EmailNotificationTypeModel(Base):
    __tablename__ = "Email_NotificationType"

    id = Column("Id", Integer, primary_key=True)
    notification_type = Column("NotificationType", String(100), nullable=False)
    client_code = Column("ClientCode", String(20), nullable=False)
    active = Column("Active", Boolean, nullable=False, default=True)


class EmailTemplateModel(Base):
    __tablename__ = "Email_Template"

    id = Column("Id", Integer, primary_key=True)
    email_type_id = Column(
        "EmailType_Id", Integer, ForeignKey("Email_NotificationType.Id"), nullable=False
    )
    subject = Column("Subject", Text, nullable=True)
    template = Column("Template", Text, nullable=True)

    def to_domain(self) -> EmailTemplate:
        return EmailTemplate(subject=self.subject, body=self.template)


class SystemEmailModel(Base):
    """Audit row written once per send attempt."""

    __tablename__ = "Email_SystemEmails"

    id = Column("Id", Integer, primary_key=True, autoincrement=True)
    # Column name is misspelled in the source database
    recipient = Column("Recepient", Text, nullable=False)
    subject = Column("Subject", Text, nullable=False)
    body = Column("Body", Text, nullable=False)
    sent = Column("Sent", Boolean, nullable=False)
    tenant_code = Column("TenantCode", String(20), nullable=False)
    active = Column("Active", Boolean, nullable=False, default=True)
    created_date = Column("CreatedDate", DateTime, nullable=False)

    def to_domain(self) -> AuditRecord:
        return AuditRecord(
            id=self.id,
            recipient=self.recipient,
            subject=self.subject,
            body=self.body,
            sent=self.sent,
            tenant_code=self.tenant_code,
            created_at=self.created_date,
        )

    @classmethod
    def from_domain(cls, record: AuditRecord) -> "SystemEmailModel":
        created = record.created_at
        if created.tzinfo is not None:
            # Stored as naive UTC
            created = created.astimezone(timezone.utc).replace(tzinfo=None)
        return cls(
            recipient=record.recipient,
            subject=record.subject,
            body=record.body,
            sent=record.sent,
            tenant_code=record.tenant_code,
            active=True,
            created_date=created,
        )


# Users, roles and organization membership

class OrganizationModel(Base):
    __tablename__ = "Organization_Organization"

    id = Column("Id", Integer, primary_key=True)
    legal_name = Column("LegalName", String(255), nullable=True)
    common_name = Column("CommonName", String(255), nullable=True)
    client_id = Column("Client_Id", Integer, ForeignKey("Admin_Client.Id"), nullable=True)

    def to_domain(self) -> Organization:
        return Organization(
            id=self.id, legal_name=self.legal_name, common_name=self.common_name
        )


class UserModel(Base):
    __tablename__ = "Security_User"

    id = Column("Id", Integer, primary_key=True)
    active = Column("Active", Boolean, nullable=False, default=True)


class RoleModel(Base):
    __tablename__ = "Security_Role"

    id = Column("Id", Integer, primary_key=True)
    display_text = Column("DisplayText", String(100), nullable=False)


class UserRoleModel(Base):
    __tablename__ = "Security_UserRole"

    user_id = Column("UserId", Integer, ForeignKey("Security_User.Id"), primary_key=True)
    role_id = Column("RoleId", Integer, ForeignKey("Security_Role.Id"), primary_key=True)


class ContactModel(Base):
    __tablename__ = "Contact_Contact"

    id = Column("Id", Integer, primary_key=True)
    app_user_id = Column("AppUser_Id", Integer, ForeignKey("Security_User.Id"), nullable=True)
    primary_email = Column("PrimaryEmail", String(255), nullable=True)


class OrganizationAssociationModel(Base):
    __tablename__ = "Contact_OrganizationAssociation"

    id = Column("Id", Integer, primary_key=True)
    contact_id = Column("Contact_Id", Integer, ForeignKey("Contact_Contact.Id"), nullable=False)
    organization_id = Column(
        "Organization_Id", Integer, ForeignKey("Organization_Organization.Id"), nullable=False
    )

    __table_args__ = (Index("idx_org_assoc_org", "Organization_Id"),)


# Contracts

class ProgramModel(Base):
    __tablename__ = "Program_FundSourceType"

    id = Column("Id", Integer, primary_key=True)
    name = Column("Name", String(255), nullable=True)
    common_name = Column("CommonName", String(255), nullable=True)
    type = Column("Type", String(50), nullable=True)
    active = Column("Active", Boolean, nullable=False, default=True)

    def to_domain(self) -> Program:
        return Program(id=self.id, name=self.name, common_name=self.common_name)


class ContractTypeModel(Base):
    __tablename__ = "Project_ContractType"

    id = Column("Id", Integer, primary_key=True)
    name = Column("Name", String(255), nullable=False)


class ContractModel(Base):
    __tablename__ = "Project_Contract"

    id = Column("Id", Integer, primary_key=True)
    organization_id = Column(
        "Organization_Id", Integer, ForeignKey("Organization_Organization.Id"), nullable=False
    )
    client_id = Column("Client_Id", Integer, ForeignKey("Admin_Client.Id"), nullable=False)
    expiration_date = Column("ExpirationDate", Date, nullable=False)
    contract_year = Column("ContractYear", String(20), nullable=True)
    fund_source_type_id = Column("FundSourceType_Id", Integer, nullable=True)
    contract_type_id = Column("ContractType_Id", Integer, nullable=True)
    status = Column("Status", String(50), nullable=True)

    __table_args__ = (Index("idx_contract_expiration", "ExpirationDate"),)

    def to_domain(self) -> Contract:
        return Contract(
            id=self.id,
            organization_id=self.organization_id,
            client_id=self.client_id,
            expiration_date=self.expiration_date,
            contract_year=self.contract_year,
            fund_source_type_id=self.fund_source_type_id,
            # Missing contract types default to the first type
            contract_type_id=self.contract_type_id if self.contract_type_id is not None else 1,
            status=self.status,
        )


# Reporting

class ReportTemplateModel(Base):
    __tablename__ = "Reporting_ProfileTemplate"

    id = Column("Id", Integer, primary_key=True)
    client_id = Column("Client_Id", Integer, ForeignKey("Admin_Client.Id"), nullable=False)
    display_name = Column("DisplayName", String(255), nullable=False)
    status = Column("Status", String(50), nullable=True)
    reporting_frequency = Column("ReportingFrequency", String(50), nullable=True)
    active = Column("Active", Boolean, nullable=False, default=True)

    def to_domain(self) -> ReportTemplate:
        return ReportTemplate(
            id=self.id,
            client_id=self.client_id,
            display_name=self.display_name,
            status=self.status,
            reporting_frequency=self.reporting_frequency,
        )


class ReportTemplateOrganizationModel(Base):
    __tablename__ = "ReportingProfileTemplateOrganizations"

    id = Column("Id", Integer, primary_key=True)
    report_template_id = Column(
        "ReportingProfileTemplate_Id",
        Integer,
        ForeignKey("Reporting_ProfileTemplate.Id"),
        nullable=False,
    )
    organization_id = Column(
        "Organization_Id", Integer, ForeignKey("Organization_Organization.Id"), nullable=False
    )
    active = Column("Active", Boolean, nullable=False, default=True)


class ReportReminderModel(Base):
    __tablename__ = "Reporting_Reminder"

    id = Column("Id", Integer, primary_key=True)
    report_template_id = Column(
        "ReportTemplateId", Integer, ForeignKey("Reporting_ProfileTemplate.Id"), nullable=False
    )
    number_of_days = Column("NumberOfDays", Integer, nullable=False, default=0)
    when_to_send = Column("WhenToSend", String(10), nullable=False, default="1")
    months = Column("Months", String(100), nullable=True)
    email_notification_type = Column("EmailNotificationType", String(100), nullable=False)
    active = Column("Active", Boolean, nullable=False, default=True)

    def to_domain(self) -> ReportReminder:
        return ReportReminder(
            id=self.id,
            report_template_id=self.report_template_id,
            number_of_days=self.number_of_days or 0,
            when_to_send=self.when_to_send,
            months=self.months,
            email_notification_type=self.email_notification_type,
        )


def create_schema(engine: Engine) -> None:
    """Create all mapped tables that do not exist yet (idempotent).

    Only used for local and test databases; production schemas are owned by
    the line-of-business application.

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        from sqlalchemy import inspect

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
