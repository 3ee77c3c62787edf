"""
HTML email rendering for each notification kind.

Every template shares one base layout: a heading, a greeting, the
kind-specific block, an optional call-to-action linking to the event,
and the support footer. All user-provided text is escaped.
"""

from collections.abc import Callable
from html import escape
from typing import Any

from eventcore.config import settings
from eventcore.features.notifications.domain.models import NotificationKind

BRAND_COLOR = "#15383c"
ACCENT_COLOR = "#e35e25"


def _text(value: Any) -> str:
    return escape(str(value)) if value is not None else ""


def _paragraphs(text: str) -> str:
    return _text(text).replace("\n", "<br>")


def _detail_rows(rows: list[tuple[str, Any]]) -> str:
    cells = "".join(
        f'<tr><td style="color: #666; padding: 4px 12px 4px 0;">{escape(label)}</td>'
        f'<td style="color: #333;">{_text(value)}</td></tr>'
        for label, value in rows
        if value not in (None, "")
    )
    return f'<table style="margin: 16px 0;">{cells}</table>' if cells else ""


def _button(label: str, url: str | None) -> str:
    if not url:
        return ""
    return (
        f'<p style="margin: 24px 0;"><a href="{escape(url, quote=True)}" '
        f'style="background: {ACCENT_COLOR}; color: #fff; padding: 12px 24px; '
        f'border-radius: 24px; text-decoration: none;">{escape(label)}</a></p>'
    )


def base_layout(heading: str, recipient_name: str | None, content: str) -> str:
    support = escape(settings.SUPPORT_EMAIL)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<h2 style="color: {BRAND_COLOR};">{_text(heading)}</h2>'
        f"<p>Hello {_text(recipient_name or 'there')},</p>"
        f'<div style="color: #333; line-height: 1.6;">{content}</div>'
        '<hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">'
        '<p style="color: #666; font-size: 12px;">The Events Team<br>'
        f'<a href="mailto:{support}" style="color: {ACCENT_COLOR};">{support}</a></p>'
        "</div>"
    )


def parse_poll_options(message: str) -> list[str]:
    """Options are written inline as '... Vote: pizza or tacos'."""
    if "Vote:" not in message:
        return []
    tail = message.split("Vote:", 1)[1]
    return [option.strip() for option in tail.split(" or ") if option.strip()]


def _new_rsvp(title: str, body: str, ctx: dict[str, Any]) -> str:
    attendee = ctx.get("attendee_name") or "Someone"
    return (
        f"<p><strong>{_text(attendee)}</strong> just reserved a spot at "
        f"<strong>{_text(ctx.get('event_title'))}</strong>.</p>"
        + _detail_rows([("Spots", ctx.get("attendee_count")), ("Date", ctx.get("event_date"))])
        + _button("View event", ctx.get("event_url"))
    )


def _reservation_confirmation(title: str, body: str, ctx: dict[str, Any]) -> str:
    return (
        f"<p>Your reservation for <strong>{_text(ctx.get('event_title'))}</strong> is confirmed.</p>"
        + _detail_rows(
            [
                ("Date", ctx.get("event_date")),
                ("Time", ctx.get("event_time")),
                ("Location", ctx.get("location")),
                ("Spots", ctx.get("attendee_count")),
                ("Total", ctx.get("total_amount")),
                ("Order ID", ctx.get("order_id")),
            ]
        )
        + _button("View your ticket", ctx.get("event_url"))
    )


def _announcement(title: str, body: str, ctx: dict[str, Any]) -> str:
    return (
        f"<p>The host of <strong>{_text(ctx.get('event_title'))}</strong> posted an update:</p>"
        f"<h3>{_text(title)}</h3><p>{_paragraphs(body)}</p>"
        + _button("Open event chat", ctx.get("event_url"))
    )


def _poll(title: str, body: str, ctx: dict[str, Any]) -> str:
    options = ctx.get("poll_options") or parse_poll_options(body)
    items = "".join(f"<li>{_text(option)}</li>" for option in options)
    return (
        f"<p>A new poll was posted in <strong>{_text(ctx.get('event_title'))}</strong>:</p>"
        f"<h3>{_text(title)}</h3><p>{_paragraphs(body)}</p>"
        + (f"<ul>{items}</ul>" if items else "")
        + _button("Vote now", ctx.get("event_url"))
    )


def _new_message(title: str, body: str, ctx: dict[str, Any]) -> str:
    return (
        f'<p style="color: #666;"><strong>{_text(ctx.get("sender_name") or "Someone")}</strong> '
        "sent a message:</p>"
        f'<blockquote style="border-left: 3px solid {ACCENT_COLOR}; padding-left: 12px;">'
        f"{_paragraphs(ctx.get('message_snippet') or body)}</blockquote>"
        + _button("Reply in chat", ctx.get("event_url"))
    )


def _followed_host_event(title: str, body: str, ctx: dict[str, Any]) -> str:
    return (
        f"<p><strong>{_text(ctx.get('host_name') or 'A host you follow')}</strong> "
        f"just published <strong>{_text(ctx.get('event_title'))}</strong>.</p>"
        + (f"<p>{_paragraphs(ctx['event_description'])}</p>" if ctx.get("event_description") else "")
        + _button("See the event", ctx.get("event_url"))
    )


def _new_follower(title: str, body: str, ctx: dict[str, Any]) -> str:
    return f"<p><strong>{_text(ctx.get('follower_name') or 'Someone')}</strong> started following you.</p>"


def _follow_suggestion(title: str, body: str, ctx: dict[str, Any]) -> str:
    return (
        f"<p>Hope you enjoyed <strong>{_text(ctx.get('event_title'))}</strong>!</p>"
        f"<p>Follow <strong>{_text(ctx.get('host_name') or 'the host')}</strong> "
        "to hear about their next event first.</p>"
        + _button("Follow host", ctx.get("host_url") or ctx.get("event_url"))
    )


def _generic(title: str, body: str, ctx: dict[str, Any]) -> str:
    return f"<p>{_paragraphs(body)}</p>" + _button("Open", ctx.get("event_url"))


_RENDERERS: dict[str, Callable[[str, str, dict[str, Any]], str]] = {
    NotificationKind.NEW_RSVP: _new_rsvp,
    NotificationKind.RESERVATION_CONFIRMATION: _reservation_confirmation,
    NotificationKind.ANNOUNCEMENT: _announcement,
    NotificationKind.POLL: _poll,
    NotificationKind.NEW_MESSAGE: _new_message,
    NotificationKind.FOLLOWED_HOST_EVENT: _followed_host_event,
    NotificationKind.NEW_FOLLOWER: _new_follower,
    NotificationKind.FOLLOW_SUGGESTION: _follow_suggestion,
}


def render_email(
    kind: str,
    *,
    subject: str,
    title: str,
    body: str,
    recipient_name: str | None = None,
    context: dict[str, Any] | None = None,
) -> str:
    ctx = dict(context or {})
    if ctx.get("event_id") and not ctx.get("event_url"):
        ctx["event_url"] = settings.event_url(ctx["event_id"])
    renderer = _RENDERERS.get(kind, _generic)
    return base_layout(subject, recipient_name, renderer(title, body, ctx))


def default_sms_text(title: str, body: str) -> str:
    return f"{title}: {body}"
