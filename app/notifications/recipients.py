"""Recipient resolution.

Recipients are the contacts of active users who hold a named role and belong,
through an organization association, to the organizations in scope. The list
is computed on every dispatch and never cached.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, ContextManager, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.logging import get_logger
from app.persistence.database import get_session
from app.persistence.repositories import RecipientRepository

from .smtp_client import is_valid_address

logger = get_logger(__name__, component="recipients")

VIEW_CONTRACTS_ROLE = "View Contracts"
SUBMIT_REPORTING_ROLE = "Submit Reporting"


class ScopeKind(str, Enum):
    ORGANIZATION = "organization"
    REPORT_TEMPLATE = "report_template"
    TENANT = "tenant"


@dataclass(frozen=True)
class RecipientScope:
    """Who a notification is for: a role within one or more organizations."""

    kind: ScopeKind
    role_name: str
    organization_id: Optional[int] = None
    report_template_id: Optional[int] = None
    tenant_code: Optional[str] = None

    @classmethod
    def for_organization(
        cls, organization_id: int, role_name: str = VIEW_CONTRACTS_ROLE
    ) -> "RecipientScope":
        return cls(ScopeKind.ORGANIZATION, role_name, organization_id=organization_id)

    @classmethod
    def for_report_template(
        cls, report_template_id: int, role_name: str = SUBMIT_REPORTING_ROLE
    ) -> "RecipientScope":
        return cls(ScopeKind.REPORT_TEMPLATE, role_name, report_template_id=report_template_id)

    @classmethod
    def for_tenant(cls, tenant_code: str, role_name: str) -> "RecipientScope":
        return cls(ScopeKind.TENANT, role_name, tenant_code=tenant_code)

    def describe(self) -> str:
        target = {
            ScopeKind.ORGANIZATION: self.organization_id,
            ScopeKind.REPORT_TEMPLATE: self.report_template_id,
            ScopeKind.TENANT: self.tenant_code,
        }[self.kind]
        return f"{self.kind.value}:{target} role:{self.role_name}"


def unique_addresses(addresses: Iterable[Optional[str]]) -> List[str]:
    """Strip, drop blanks and invalid addresses, and remove case-insensitive duplicates.

    The first spelling of each address wins and input order is kept.
    """
    seen = set()
    result = []
    for address in addresses:
        if not address:
            continue
        cleaned = address.strip()
        if not cleaned:
            continue
        key = cleaned.lower()
        if key in seen:
            continue
        if not is_valid_address(cleaned):
            logger.warning(
                f"Ignoring invalid recipient address '{cleaned}'",
                extra={"event": "recipients.invalid_address"},
            )
            continue
        seen.add(key)
        result.append(cleaned)
    return result


class RecipientResolver:
    """Computes the ordered, distinct recipient list for a scope.

    Lookups are fail-soft: any error is logged and an empty list returned so
    that one broken lookup does not abort a batch.
    """

    def __init__(self, session_provider: Callable[[], ContextManager[Session]] = get_session):
        self.session_provider = session_provider

    def resolve(self, scope: RecipientScope) -> List[str]:
        """Resolve recipients for a scope.

        Args:
            scope: Organization, report template or tenant plus the role name

        Returns:
            Distinct email addresses; empty on any failure
        """
        try:
            with self.session_provider() as session:
                repo = RecipientRepository(session)
                if scope.kind == ScopeKind.ORGANIZATION:
                    raw = repo.find_emails_for_organizations(scope.role_name, [scope.organization_id])
                elif scope.kind == ScopeKind.REPORT_TEMPLATE:
                    raw = repo.find_emails_for_report_template(
                        scope.role_name, scope.report_template_id
                    )
                else:
                    raw = repo.find_emails_for_tenant(scope.role_name, scope.tenant_code)
        except Exception as e:
            logger.error(
                f"Recipient lookup failed for {scope.describe()}: {e}",
                exc_info=True,
                extra={
                    "event": "recipients.lookup_failed",
                    "scope": scope.describe(),
                    "error_type": type(e).__name__,
                },
            )
            return []

        recipients = unique_addresses(raw)
        logger.debug(
            f"Resolved {len(recipients)} recipients for {scope.describe()}",
            extra={"event": "recipients.resolved", "count": len(recipients)},
        )
        return recipients
