"""Usage threshold and connection prompts derived from cached state."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from .models import Notice, NoticeLevel, RequestContext
from .usage import UsageCache, UsageSnapshot

NOTICE_DURATION = timedelta(days=30)
UPGRADE_OPTIONS_URL = "https://cloudinary.com/console/lui/upgrade_options"
UPGRADE_LINK_TEXT = "upgrade your account"

# Checked in order; the first threshold reached wins.
USAGE_THRESHOLDS: tuple[tuple[float, NoticeLevel], ...] = (
    (90, NoticeLevel.ERROR),
    (80, NoticeLevel.WARNING),
    (70, NoticeLevel.NEUTRAL),
)


def level_for(percent: float) -> NoticeLevel | None:
    for threshold, level in USAGE_THRESHOLDS:
        if percent >= threshold:
            return level
    return None


class NoticeGenerator:
    """Builds notices from the usage cache and connection state."""

    def __init__(self, usage_cache: UsageCache, *, settings_handles: Iterable[str] = ()) -> None:
        self._usage = usage_cache
        self._settings_handles = frozenset(settings_handles)

    def usage_notices(self, snapshot: UsageSnapshot | None = None) -> list[Notice]:
        snapshot = snapshot if snapshot is not None else self._usage.get()
        if snapshot is None:
            return []
        notices: list[Notice] = []
        for category in snapshot.categories:
            percent = snapshot.stat(category, "used_percent")
            if not percent or isinstance(percent, (str, bool)):
                continue
            level = level_for(float(percent))
            if level is None:
                continue
            link = UPGRADE_OPTIONS_URL if level is NoticeLevel.ERROR else None
            notices.append(
                Notice(
                    message=(
                        f"You are {percent}% of the way through your monthly quota for "
                        f"{category.replace('_', ' ').title()} on your Cloudinary account. "
                        "If you exceed your quota, the Cloudinary plugin will be deactivated until your "
                        "next billing cycle and your media assets will be served from your local media "
                        f"library. You may wish to {UPGRADE_LINK_TEXT} and increase your quota to ensure "
                        "you maintain full functionality."
                    ),
                    level=level,
                    dismissible=True,
                    duration=NOTICE_DURATION,
                    link=link,
                    link_text=UPGRADE_LINK_TEXT,
                )
            )
        return notices

    def connect_notice(self, connected: bool, context: RequestContext) -> Notice | None:
        """Prompt to connect, shown only on registered settings screens."""

        if connected or context.screen_id not in self._settings_handles:
            return None
        return Notice(
            message="Connect your Cloudinary account to get started.",
            level=NoticeLevel.ERROR,
            dismissible=True,
            link_text="Connect",
        )


__all__ = [
    "NOTICE_DURATION",
    "NoticeGenerator",
    "UPGRADE_OPTIONS_URL",
    "USAGE_THRESHOLDS",
    "level_for",
]
