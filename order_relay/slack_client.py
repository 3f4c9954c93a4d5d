"""Thin wrapper utilities around the Slack WebClient."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from slack_sdk import WebClient
from slack_sdk.errors import SlackClientError


class SlackClient:
    """Encapsulate Slack WebClient interactions for easier testing."""

    def __init__(self, *, client: WebClient) -> None:
        self._client = client

    def post_message(
        self,
        *,
        channel: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]] | None = None,
    ) -> Mapping[str, Any]:
        """Post a message, optionally with Block Kit content, to a Slack channel."""

        if blocks is None:
            return self._client.chat_postMessage(channel=channel, text=text)
        return self._client.chat_postMessage(channel=channel, text=text, blocks=list(blocks))

    def update_message(
        self,
        *,
        channel: str,
        ts: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]],
    ) -> Mapping[str, Any]:
        """Update an existing Slack message."""

        return self._client.chat_update(channel=channel, ts=ts, text=text, blocks=list(blocks))

    def post_ephemeral(self, *, channel: str, user: str, text: str) -> Mapping[str, Any]:
        """Post a message only *user* can see."""

        return self._client.chat_postEphemeral(channel=channel, user=user, text=text)

    def is_connected(self) -> bool:
        """Return True when the bot token authenticates against Slack."""

        try:
            response = self._client.auth_test()
        except (SlackClientError, OSError):
            return False
        return bool(response.get("ok"))
