"""Subjects and HTML bodies for transactional notifications.

All values taken from the notification context are HTML-escaped; display
names and user agents are caller-controlled.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Any

from identity.domain.value_objects import NotificationKind, Role


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def render(
    kind: NotificationKind, context: Mapping[str, Any], app_name: str
) -> RenderedEmail:
    """Render the email for a notification kind.

    Raises:
        ValueError: If the kind has no template
    """
    renderer = _RENDERERS.get(kind)
    if renderer is None:
        raise ValueError(f"No template for notification kind: {kind}")
    return renderer(context, escape(app_name))


def _value(context: Mapping[str, Any], key: str, default: str = "unknown") -> str:
    value = context.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M UTC")
    return escape(str(value))


def _details(rows: list[tuple[str, str]]) -> str:
    items = "".join(f"<li><strong>{label}:</strong> {value}</li>" for label, value in rows)
    return f"<ul>{items}</ul>"


def _registration_welcome(context: Mapping[str, Any], app_name: str) -> RenderedEmail:
    name = _value(context, "display_name", "there")
    role = context.get("role")
    if role == Role.PRIMARY.value:
        intro = "Your primary account is ready. You can now manage your members."
    else:
        intro = "Your account is ready. You can now sign in and get started."
    body = (
        f"<h1>Welcome to {app_name}, {name}!</h1>"
        f"<p>{intro}</p>"
        + _details(
            [
                ("Email", _value(context, "email")),
                ("Institution", _value(context, "institution_name")),
                ("Registered at", _value(context, "occurred_at")),
            ]
        )
    )
    return RenderedEmail(subject=f"Welcome to {app_name}", html=body)


def _staff_registration_alert(
    context: Mapping[str, Any], app_name: str
) -> RenderedEmail:
    name = _value(context, "display_name")
    body = (
        f"<h1>New account registered</h1>"
        f"<p>{name} just registered on {app_name}.</p>"
        + _details(
            [
                ("Email", _value(context, "email")),
                ("Institution", _value(context, "institution_name")),
                ("Sign-up method", _value(context, "origin")),
                ("Registered at", _value(context, "occurred_at")),
            ]
        )
    )
    return RenderedEmail(subject=f"New account registered on {app_name}", html=body)


def _login_alert(context: Mapping[str, Any], app_name: str) -> RenderedEmail:
    name = _value(context, "display_name", "there")
    body = (
        f"<h1>New sign-in to your account</h1>"
        f"<p>Hi {name}, we noticed a new sign-in to your {app_name} account.</p>"
        + _details(
            [
                ("Time", _value(context, "occurred_at")),
                ("Device", _value(context, "device")),
                ("IP address", _value(context, "client_ip")),
            ]
        )
        + "<p>If this was not you, change your password right away.</p>"
    )
    return RenderedEmail(subject=f"New sign-in to {app_name}", html=body)


_RENDERERS = {
    NotificationKind.REGISTRATION_WELCOME: _registration_welcome,
    NotificationKind.STAFF_REGISTRATION_ALERT: _staff_registration_alert,
    NotificationKind.LOGIN_ALERT: _login_alert,
}
