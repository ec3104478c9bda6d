"""Entity sources: turn a NotificationEvent into a PreparedNotification.

Each source resolves the entity and the lookups its template needs. The
dispatcher picks the source by ``event.kind`` from ``ENTITY_SOURCES``.

Missing entity rows raise RecordNotFoundError (the entity fails, the batch
continues); a missing client raises TenantConfigurationError (the run aborts).
"""

from dataclasses import dataclass
from typing import Callable, Dict

from sqlalchemy.orm import Session

from app.config.models import DeploymentEnvironment
from app.domain.models import EntityKind, NotificationEvent
from app.notifications.recipients import RecipientScope
from app.notifications.smtp_client import PRIORITY_HIGH, PRIORITY_NORMAL
from app.persistence.exceptions import RecordNotFoundError, TenantConfigurationError
from app.persistence.repositories import ContractRepository, ReportRepository, TenantRepository

from .models import PreparedNotification

CONTRACT_EXPIRATION_TYPE = "ContractExpiration"
PUBLISHED_STATUS = "Published"
IN_DEVELOPMENT_STATUS = "In Development"
EXPIRATION_DATE_FORMAT = "%m/%d/%Y"


@dataclass(frozen=True)
class SourceContext:
    """Deployment settings entity sources need.

    Attributes:
        environment: Deployment environment value ("local", "qa", ...)
        link_domain: Tenant code -> domain used in links
    """

    environment: str
    link_domain: Callable[[str], str]

    @property
    def publishable_status(self) -> str:
        """Report template status that allows reminders to be sent."""
        if self.environment == DeploymentEnvironment.LOCAL.value:
            return IN_DEVELOPMENT_STATUS
        return PUBLISHED_STATUS


EntitySource = Callable[[Session, NotificationEvent, SourceContext], PreparedNotification]


def contract_link(domain: str, organization_id: int, contract_id: int) -> str:
    url = f"https://{domain}/organization/{organization_id}/contract/{contract_id}?pid=0"
    return f"<a href='{url}'>View Contracts Permissions</a>"


def prepare_contract_expiration(
    session: Session, event: NotificationEvent, context: SourceContext
) -> PreparedNotification:
    contracts = ContractRepository(session)

    contract = contracts.get_by_id(event.entity_id)
    if contract is None:
        raise RecordNotFoundError(f"Contract {event.entity_id} was not found")

    program = contracts.get_program(contract.fund_source_type_id)
    if program is None:
        raise RecordNotFoundError(f"Program was not found for contract {contract.id}")

    organization = contracts.get_organization(contract.organization_id)
    if organization is None:
        raise RecordNotFoundError(
            f"Organization {contract.organization_id} was not found for contract {contract.id}"
        )

    client = TenantRepository(session).get_client(contract.client_id)
    if client is None:
        raise TenantConfigurationError(
            str(contract.client_id), f"Client {contract.client_id} was not found"
        )

    type_name = contracts.get_contract_type_name(contract.contract_type_id)
    if type_name is None:
        raise RecordNotFoundError(
            f"Contract type {contract.contract_type_id} was not found for contract {contract.id}"
        )

    display_name = f"{type_name}({contract.id})"
    values = {
        "days": event.days_threshold,
        "organization": organization.display_name,
        "program": program.common_name,
        "year": contract.contract_year,
        "contract": display_name,
        "expiration": contract.expiration_date.strftime(EXPIRATION_DATE_FORMAT),
        "requestlink": contract_link(
            context.link_domain(client.code), contract.organization_id, contract.id
        ),
    }

    return PreparedNotification(
        event=event,
        tenant_code=client.code,
        display_name=display_name,
        notification_type=CONTRACT_EXPIRATION_TYPE,
        values=values,
        scope=RecipientScope.for_organization(contract.organization_id),
        priority=PRIORITY_HIGH,
    )


def prepare_report_reminder(
    session: Session, event: NotificationEvent, context: SourceContext
) -> PreparedNotification:
    reports = ReportRepository(session)

    reminder = reports.get_reminder(event.entity_id)
    if reminder is None:
        raise RecordNotFoundError(f"Report reminder {event.entity_id} was not found")

    template = reports.get_template(reminder.report_template_id)
    if template is None:
        raise RecordNotFoundError(
            f"Report template {reminder.report_template_id} was not found "
            f"for reminder {reminder.id}"
        )

    client = TenantRepository(session).get_client(template.client_id)
    if client is None:
        raise TenantConfigurationError(
            str(template.client_id), f"Client {template.client_id} was not found"
        )

    skip_reason = None
    if template.status != context.publishable_status:
        skip_reason = (
            f"Report template status is '{template.status}', "
            f"not '{context.publishable_status}'"
        )

    return PreparedNotification(
        event=event,
        tenant_code=client.code,
        display_name=f"{template.display_name}({reminder.timing_label}-{event.month})",
        notification_type=reminder.email_notification_type,
        values={
            "Reporting_Display_Name": template.display_name,
            "numberofdays": reminder.number_of_days,
        },
        scope=RecipientScope.for_report_template(template.id),
        priority=PRIORITY_HIGH if reminder.when_to_send == "2" else PRIORITY_NORMAL,
        skip_reason=skip_reason,
    )


ENTITY_SOURCES: Dict[EntityKind, EntitySource] = {
    EntityKind.CONTRACT_EXPIRATION: prepare_contract_expiration,
    EntityKind.REPORT_REMINDER: prepare_report_reminder,
}
