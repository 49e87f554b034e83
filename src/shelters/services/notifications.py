"""Spawn announcements delivered through the host notifier."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from shelters.constants import DEFAULT_MESSAGES, MSG_SHELTER_SPAWNED
from shelters.interfaces import Anchor, EntityHandle, Notifier
from shelters.services.config import NotificationConfig

LOG = logging.getLogger(__name__)


def format_message(key: str, messages: Optional[Mapping[str, str]] = None, **fmt: object) -> str:
    """Return the localized text for ``key``; unknown keys echo the key."""

    table = messages if messages is not None else DEFAULT_MESSAGES
    template = table.get(key, DEFAULT_MESSAGES.get(key, key))
    if not fmt:
        return template
    try:
        return template.format(**fmt)
    except (KeyError, IndexError, ValueError):
        LOG.warning("message format failed key=%s", key)
        return template


class SpawnNotifier:
    def __init__(
        self,
        notifier: Notifier,
        *,
        config: NotificationConfig,
        messages: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._notifier = notifier
        self._config = config
        self._messages = messages

    def announce(self, structure: EntityHandle, anchor: Anchor) -> None:
        """Tell the anchor (or everyone nearby) that a shelter appeared."""

        key = MSG_SHELTER_SPAWNED
        text = format_message(key, self._messages)
        toast = self._config.send_as_toast
        if self._config.notify_surrounding_players:
            self._notifier.broadcast(structure.pose.position, self._config.radius, key, text=text, toast=toast)
        else:
            self._notifier.notify(anchor, key, text=text, toast=toast)
