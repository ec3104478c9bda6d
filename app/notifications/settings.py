"""Per-tenant SMTP settings."""

from typing import Callable, ContextManager

from sqlalchemy.orm import Session

from app.domain.models import SmtpProfile
from app.logging import get_logger
from app.persistence.database import get_session
from app.persistence.exceptions import TenantConfigurationError
from app.persistence.repositories import TenantRepository

logger = get_logger(__name__, component="settings")


class EmailSettingsResolver:
    """Builds an SmtpProfile from a tenant's Email_Settings and client settings rows."""

    def __init__(
        self,
        default_sender: str,
        session_provider: Callable[[], ContextManager[Session]] = get_session,
    ):
        """
        Args:
            default_sender: Sender identity used when the settings row has none
            session_provider: Session scope factory
        """
        self.default_sender = default_sender
        self.session_provider = session_provider

    def resolve(self, tenant_code: str) -> SmtpProfile:
        """Resolve SMTP settings for a tenant.

        Args:
            tenant_code: Tenant code

        Returns:
            SmtpProfile with credentials and routing flags

        Raises:
            TenantConfigurationError: If the tenant has no active settings row
                or no client settings row
            PersistenceError: If the lookup itself fails
        """
        with self.session_provider() as session:
            repo = TenantRepository(session)
            row = repo.get_email_settings(tenant_code)
            if row is None:
                raise TenantConfigurationError(
                    tenant_code, f"No active email settings for tenant '{tenant_code}'"
                )

            support_email = repo.get_support_email(tenant_code)
            if support_email is None:
                raise TenantConfigurationError(
                    tenant_code, f"No client settings for tenant '{tenant_code}'"
                )

            if not row.smtp_server:
                raise TenantConfigurationError(
                    tenant_code, f"Email settings for tenant '{tenant_code}' have no SMTP server"
                )

            sender = (row.sender or "").strip() or self.default_sender
            profile = SmtpProfile(
                tenant_code=tenant_code,
                host=row.smtp_server,
                port=row.port or 25,
                sender=sender,
                password=row.password or None,
                username=(row.user_name or "").strip() or None,
                is_live=bool(row.is_live),
                test_address=(row.test_address or "").strip() or None,
                support_email=support_email.strip() or None,
            )

        logger.debug(
            f"Resolved SMTP settings for {tenant_code}: {profile!r}",
            extra={"event": "settings.resolved", "tenant": tenant_code, "is_live": profile.is_live},
        )
        return profile
