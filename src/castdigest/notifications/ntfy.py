"""ntfy push notifications.

Delivery is best effort: errors are logged and never affect summary status.
"""

import logging

import httpx

from castdigest.config.settings import get_settings

logger = logging.getLogger(__name__)


async def send_notification(
    title: str,
    message: str,
    tags: list[str] | None = None,
    priority: str = "default",
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Send a notification to the configured ntfy topic.

    Returns:
        True if the notification was accepted.
    """
    settings = get_settings()
    if not settings.ntfy_enabled or not settings.ntfy_topic:
        return False

    url = f"{settings.ntfy_url.rstrip('/')}/{settings.ntfy_topic}"
    headers = {"Title": title, "Priority": priority}
    if tags:
        headers["Tags"] = ",".join(tags)

    try:
        async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
            response = await client.post(url, content=message.encode("utf-8"), headers=headers)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Failed to send ntfy notification: {e}")
        return False

    logger.debug(f"Sent ntfy notification: {title}")
    return True


async def notify_summary_ready(
    episode_id: str,
    level: str,
    language: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Tell subscribers a summary reached ready."""
    return await send_notification(
        title="Summary ready",
        message=f"The {level} summary for episode {episode_id} ({language}) is ready.",
        tags=["memo"],
        transport=transport,
    )
