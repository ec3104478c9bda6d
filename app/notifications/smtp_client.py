"""SMTP client wrapper for email delivery.

This module provides a thin wrapper around Python's smtplib with support
for TLS/SSL, authentication, timeouts, and connection cleanup, plus helpers
for building outbound messages.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import getaddresses
from typing import Callable, List, Optional

from email_validator import EmailNotValidError, validate_email

from app.domain.models import SmtpProfile

from .models import SMTPDeliveryError

logger = logging.getLogger(__name__)

PRIORITY_HIGH = "high"
PRIORITY_NORMAL = "normal"


class SMTPClient:
    """Wrapper around smtplib for sending email messages.

    Connections are opened per message: tenants use different servers, and
    a run sends at most a handful of messages per tenant.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
        timeout_seconds: int = 30,
    ):
        """Initialize SMTP client with optional factory injection.

        Args:
            smtp_factory: Factory for SMTP instances (for mocking)
            smtp_ssl_factory: Factory for SMTP_SSL instances (for mocking)
            timeout_seconds: Socket timeout applied to every connection
        """
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL
        self.timeout_seconds = timeout_seconds

    def send(
        self,
        message: EmailMessage,
        profile: SmtpProfile,
        use_tls: bool = True,
    ) -> None:
        """Send an email message via SMTP.

        Port 465 uses implicit TLS; any other port uses STARTTLS when
        ``use_tls`` is set. Logs in when the profile carries a password,
        using the username or, if blank, the sender address.

        Args:
            message: Fully constructed EmailMessage to send
            profile: Server settings and credentials
            use_tls: Whether to upgrade plain connections with STARTTLS

        Raises:
            SMTPDeliveryError: If message delivery fails
        """
        smtp = None
        try:
            if profile.port == 465:
                logger.debug(f"Connecting to {profile.host}:{profile.port} with implicit TLS")
                smtp = self.smtp_ssl_factory(
                    profile.host,
                    profile.port,
                    timeout=self.timeout_seconds,
                    context=ssl.create_default_context(),
                )
            else:
                logger.debug(f"Connecting to {profile.host}:{profile.port}")
                smtp = self.smtp_factory(profile.host, profile.port, timeout=self.timeout_seconds)

                if use_tls:
                    logger.debug("Upgrading connection with STARTTLS")
                    smtp.starttls(context=ssl.create_default_context())

            if profile.password:
                login_user = profile.username or profile.sender
                logger.debug(f"Authenticating as {login_user}")
                smtp.login(login_user, profile.password)

            smtp.send_message(message)
            logger.debug(f"Message sent successfully to {message['To']}")

        except smtplib.SMTPException as e:
            error_msg = f"SMTP error during message delivery: {e}"
            logger.error(error_msg)
            raise SMTPDeliveryError(error_msg) from e
        except OSError as e:
            error_msg = f"Network error during SMTP connection: {e}"
            logger.error(error_msg)
            raise SMTPDeliveryError(error_msg) from e
        except Exception as e:
            error_msg = f"Unexpected error during SMTP delivery: {e}"
            logger.error(error_msg)
            raise SMTPDeliveryError(error_msg) from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except Exception as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def build_message(
    to: str,
    subject: str,
    body: str,
    sender: str,
    from_address: Optional[str] = None,
    priority: str = PRIORITY_NORMAL,
    is_html: bool = True,
) -> EmailMessage:
    """Build an outbound message.

    Args:
        to: Comma-separated destination addresses
        subject: Subject line (newlines are collapsed)
        body: Message body
        sender: Address the server sends as (``Sender`` header)
        from_address: Visible ``From``; defaults to ``sender``
        priority: PRIORITY_HIGH adds X-Priority/Importance headers
        is_html: Send the body as text/html instead of text/plain

    Returns:
        EmailMessage ready for SMTPClient.send()
    """
    message = EmailMessage()
    message["Subject"] = " ".join(subject.splitlines())
    message["From"] = from_address or sender
    if from_address and from_address != sender:
        message["Sender"] = sender
    message["To"] = to

    if priority == PRIORITY_HIGH:
        message["X-Priority"] = "1"
        message["Importance"] = "High"

    message.set_content(body, subtype="html" if is_html else "plain")
    return message


def parse_recipients(recipient_string: str) -> List[str]:
    """Parse and validate comma-separated email addresses.

    Args:
        recipient_string: Comma-separated email addresses

    Returns:
        List of validated addresses, as written

    Raises:
        ValueError: If any email address is invalid or none are present
    """
    recipients = []

    for _, email in getaddresses([recipient_string]):
        email = email.strip()
        if not email:
            continue

        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: '{email}' - {e}") from e
        recipients.append(email)

    if not recipients:
        raise ValueError(f"No valid email addresses found in '{recipient_string}'")

    return recipients


def is_valid_address(email: str) -> bool:
    """Syntax check without DNS lookups."""
    try:
        validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False
