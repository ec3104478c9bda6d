"""Unit tests for template rendering.

Tests the PlaceholderRenderer for:
- Literal [placeholder] substitution
- Unknown tokens left verbatim
- Single-pass replacement (values are never rescanned)
- No escaping of markup

And the AlertTemplateRenderer for ops status alerts.
"""

import pytest

from app.notifications.models import NotificationTemplateError
from app.notifications.templates import AlertTemplateRenderer, PlaceholderRenderer


@pytest.fixture
def renderer():
    return PlaceholderRenderer()


def test_replaces_each_placeholder(renderer):
    """Test the contract notice example renders exactly."""
    template = "Dear [organization], contract [contract] expires [expiration]"
    values = {
        "organization": "Acme (ACM)",
        "contract": "MSA(42)",
        "expiration": "2025-01-01",
    }

    assert renderer.render(template, values) == (
        "Dear Acme (ACM), contract MSA(42) expires 2025-01-01"
    )


def test_replaces_every_occurrence(renderer):
    """Test a placeholder used twice is replaced twice."""
    assert renderer.render("[days] days, [days] days", {"days": 30}) == "30 days, 30 days"


def test_unknown_placeholders_left_verbatim(renderer):
    """Test tokens without a value stay in the output."""
    result = renderer.render("Hello [name], see [link]", {"name": "Pat"})

    assert result == "Hello Pat, see [link]"


def test_placeholder_names_are_case_sensitive(renderer):
    result = renderer.render("[Days] / [days]", {"days": 180})

    assert result == "[Days] / 180"


def test_values_are_not_rescanned(renderer):
    """Test a value containing another token is inserted as-is."""
    result = renderer.render("[a] [b]", {"a": "[b]", "b": "B"})

    assert result == "[b] B"


def test_rendering_twice_is_stable(renderer):
    """Test re-rendering an already rendered template changes nothing."""
    values = {"organization": "Acme (ACM)", "requestlink": "<a href='x'>View</a>"}
    once = renderer.render("To [organization]: [requestlink]", values)

    assert renderer.render(once, values) == once


def test_markup_is_not_escaped(renderer):
    link = "<a href='https://localhost/organization/7/contract/42?pid=0'>View Contracts Permissions</a>"

    assert renderer.render("<p>[requestlink]</p>", {"requestlink": link}) == f"<p>{link}</p>"


def test_none_values_render_empty(renderer):
    assert renderer.render("Year: [year].", {"year": None}) == "Year: ."


def test_none_template_renders_empty(renderer):
    assert renderer.render(None, {"a": "b"}) == ""


def test_empty_mapping_returns_template(renderer):
    assert renderer.render("No [tokens] here", {}) == "No [tokens] here"


def test_regex_characters_in_names_are_literal(renderer):
    """Test placeholder names are matched literally, not as patterns."""
    assert renderer.render("[a.b] [axb]", {"a.b": "dot"}) == "dot [axb]"


def test_alert_renderer_renders_subject_and_body():
    """Test the ops alert templates render with a full context."""
    alert_renderer = AlertTemplateRenderer()

    rendered = alert_renderer.render(
        {
            "status": "FAILED",
            "status_line": "FAILED tenant:TX / entity:MSA(42) / result:boom:01/15/2025 09:00:00 AM",
            "service": "expiration-notifier",
            "environment": "qa",
            "tenant": "TX",
        }
    )

    assert rendered["subject"] == "[QA] expiration-notifier FAILED - TX"
    assert "\n" not in rendered["subject"]
    assert "FAILED tenant:TX / entity:MSA(42)" in rendered["text_body"]
    assert "Tenant: TX" in rendered["text_body"]


def test_alert_renderer_without_tenant():
    rendered = AlertTemplateRenderer().render(
        {
            "status": "SUCCESS",
            "status_line": "SUCCESS tenant: / entity:Report reminders / result:ok:01/15/2025 09:00:00 AM",
            "service": "expiration-notifier",
            "environment": "production",
            "tenant": "",
        }
    )

    assert rendered["subject"] == "[PRODUCTION] expiration-notifier SUCCESS"
    assert "Tenant:" not in rendered["text_body"]


def test_alert_renderer_missing_variable_raises():
    """Test StrictUndefined turns a missing variable into NotificationTemplateError."""
    with pytest.raises(NotificationTemplateError):
        AlertTemplateRenderer().render({"status": "FAILED"})
