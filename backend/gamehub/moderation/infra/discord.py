"""Discord webhook delivery for moderation events."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from gamehub.moderation.domain import notifications
from gamehub.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

COLOR_SUBMITTED = 0x3498DB
STATUS_STYLE = {
    "approved": (0x2ECC71, "✅"),
    "rejected": (0xE74C3C, "❌"),
    "modified": (0xF39C12, "✏️"),
}
MAX_FIELD_VALUE = 1024


def _clip(value: Any) -> str:
    text = "—" if value in (None, "", []) else str(value)
    return text if len(text) <= MAX_FIELD_VALUE else text[: MAX_FIELD_VALUE - 1] + "…"


def _field(name: str, value: Any, *, inline: bool = True) -> dict[str, Any]:
    return {"name": name, "value": _clip(value), "inline": inline}


def build_embed(event_type: str, payload: Mapping[str, Any], *, base_url: str) -> dict[str, Any] | None:
    """Translate a stream event into a webhook body; ``None`` for unknown events."""
    base = base_url.rstrip("/")
    kind_label = str(payload.get("kind") or "submission").replace("_", " ")
    if event_type == notifications.SUBMISSION_CREATED:
        fields = [_field("Game", payload.get("target_title")), _field("Submitted By", payload.get("submitter_name"))]
        if payload.get("field"):
            fields.append(_field("Field", payload.get("field")))
        embed = {
            "title": f"📝 New {kind_label}",
            "color": COLOR_SUBMITTED,
            "url": f"{base}/dashboard/moderation",
            "fields": fields,
        }
    elif event_type == notifications.DECISION_COMMITTED:
        status = str(payload.get("status") or "")
        color, emoji = STATUS_STYLE.get(status, (COLOR_SUBMITTED, "📝"))
        fields = [
            _field("Game", payload.get("target_title")),
            _field("Submitted By", payload.get("submitter_name")),
            _field("Reviewed By", payload.get("reviewer_name")),
        ]
        if payload.get("field"):
            fields.append(_field("Field", payload.get("field")))
        if status == "modified":
            fields.append(_field("Final Value", payload.get("final_value"), inline=False))
        if payload.get("notes"):
            fields.append(_field("Review Notes", payload.get("notes"), inline=False))
        embed = {
            "title": f"{emoji} {kind_label.capitalize()} {status.capitalize()}",
            "color": color,
            "url": f"{base}/dashboard/audit",
            "fields": fields,
        }
    elif event_type == notifications.APPLICATION_SUBMITTED:
        embed = {
            "title": "🙋 New reviewer application",
            "color": COLOR_SUBMITTED,
            "url": f"{base}/dashboard/reviewer-applications",
            "fields": [_field("Applicant", payload.get("user_name"))],
        }
    elif event_type == notifications.APPLICATION_DECIDED:
        status = str(payload.get("status") or "")
        color, emoji = STATUS_STYLE.get(status, (COLOR_SUBMITTED, "📝"))
        fields = [_field("Applicant", payload.get("user_name")), _field("Reviewed By", payload.get("admin_name"))]
        if payload.get("notes"):
            fields.append(_field("Notes", payload.get("notes"), inline=False))
        embed = {
            "title": f"{emoji} Reviewer application {status}",
            "color": color,
            "url": f"{base}/dashboard/reviewer-applications",
            "fields": fields,
        }
    else:
        return None
    return {"embeds": [embed]}


class DiscordWebhookClient:
    """Posts to every configured webhook; one failing URL does not stop the others."""

    def __init__(
        self,
        webhook_urls: Sequence[str],
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._urls = tuple(url for url in webhook_urls if url)
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._urls)

    async def send(self, body: Mapping[str, Any]) -> int:
        delivered = 0
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for url in self._urls:
                try:
                    response = await client.post(url, json=dict(body))
                    response.raise_for_status()
                except httpx.HTTPError:
                    obs_metrics.MOD_NOTIFICATIONS_TOTAL.labels(channel="discord", result="error").inc()
                    logger.exception("discord webhook failed", extra={"webhook": url})
                    continue
                delivered += 1
                obs_metrics.MOD_NOTIFICATIONS_TOTAL.labels(channel="discord", result="ok").inc()
        return delivered
