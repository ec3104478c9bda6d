"""Template rendering.

Two kinds of templates are rendered here:

- Tenant email templates stored in the database use ``[placeholder]`` tokens
  and are filled by literal substitution (PlaceholderRenderer). No escaping
  is applied; bodies are sent as HTML and values may contain markup such as
  links.
- Ops alerts for run status lines are Jinja2 templates shipped in the
  ``app.notifications.email_templates`` package (AlertTemplateRenderer).
"""

import logging
import re
from typing import Dict, Mapping, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)


class PlaceholderRenderer:
    """Replaces ``[name]`` tokens with values.

    All tokens are replaced in a single pass, so a value that itself contains
    a token is inserted verbatim and never expanded. Tokens without a value
    are left untouched. Names are case-sensitive.
    """

    def render(self, template: Optional[str], values: Mapping[str, object]) -> str:
        """Render a subject or body.

        Args:
            template: Template text (None renders as an empty string)
            values: Placeholder name -> replacement; None becomes ""

        Returns:
            Rendered text
        """
        if not template:
            return ""
        if not values:
            return template

        tokens = {f"[{name}]": "" if value is None else str(value) for name, value in values.items()}
        pattern = re.compile(
            "|".join(re.escape(token) for token in sorted(tokens, key=len, reverse=True))
        )
        return pattern.sub(lambda match: tokens[match.group(0)], template)


class AlertTemplateRenderer:
    """Renders ops alert emails for status lines using Jinja2."""

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "status_alert_subject.j2",
        text_template: str = "status_alert_body.txt.j2",
    ):
        """
        Args:
            template_dir: Directory name within the app.notifications package
            subject_template: Filename of subject line template
            text_template: Filename of plain text body template
        """
        self.subject_template_name = subject_template
        self.text_template_name = text_template

        self.env = Environment(
            loader=PackageLoader("app.notifications", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
        )

    def render(self, context: Dict) -> Dict[str, str]:
        """Render subject and body.

        Args:
            context: Template variables (status, status_line, service, environment)

        Returns:
            Dictionary with "subject" (single line) and "text_body"

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        try:
            subject = (
                self.env.get_template(self.subject_template_name)
                .render(context)
                .strip()
                .replace("\n", " ")
            )
            text_body = self.env.get_template(self.text_template_name).render(context)
            return {"subject": subject, "text_body": text_body}

        except TemplateError as e:
            error_msg = f"Alert template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e
