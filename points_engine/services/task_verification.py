"""Membership checks that gate social task payouts."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from points_engine.config import settings
from points_engine.utils.errors import (
    InvalidInputError,
    NotConfiguredError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
MEMBER_STATUSES = frozenset({"member", "administrator", "creator"})


class MembershipVerifier(Protocol):
    def is_member(self, member_id: str) -> bool: ...


class TelegramMembershipVerifier:
    """Ask the Bot API whether a Telegram user has joined the channel.

    The bot must be an administrator of the channel for ``getChatMember``
    to answer for arbitrary users.
    """

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        http_client: httpx.Client | None = None,
        timeout: float = 5.0,
    ) -> None:
        self.bot_token = bot_token
        self.channel_id = channel_id
        self.http_client = http_client
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> TelegramMembershipVerifier:
        return cls(
            settings.telegram_bot_token,
            settings.telegram_channel_id,
            timeout=settings.remote_timeout_seconds,
        )

    def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        if self.http_client is not None:
            return self.http_client.get(url, params=params, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(url, params=params)

    def is_member(self, member_id: str) -> bool:
        if not self.bot_token:
            raise NotConfiguredError("Telegram verification")
        member_id = (member_id or "").strip()
        if not member_id.isdigit():
            raise InvalidInputError("A numeric Telegram user id is required")

        url = f"{TELEGRAM_API}/bot{self.bot_token}/getChatMember"
        try:
            response = self._get(url, {"chat_id": self.channel_id, "user_id": member_id})
        except httpx.TimeoutException as exc:
            raise RemoteTimeoutError("Telegram verification") from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError("Telegram verification is unreachable") from exc

        # The Bot API answers 400 "user not found" for people who never joined.
        if response.status_code >= 500:
            raise RemoteUnavailableError("Telegram verification is unreachable")
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError("Telegram verification is unreachable") from exc

        if not payload.get("ok"):
            logger.info(
                "Telegram membership lookup for %s failed: %s",
                member_id,
                payload.get("description"),
            )
            return False
        status = (payload.get("result") or {}).get("status")
        return status in MEMBER_STATUSES


def default_verifiers() -> dict[str, MembershipVerifier]:
    """Verifiers keyed by ``SocialTask.verification``."""
    return {"telegram": TelegramMembershipVerifier.from_settings()}
