"""
Punishment executors: carry out timeouts and bans on the chat platform.

The scoring engine decides and records punishments; an executor is only the
side effect. Executors never raise: they return an ExecutionResult and the
engine logs and reports failures without touching the ledger.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote

import httpx
from loguru import logger

from helpers.time_utils import format_iso8601, minutes_from, utc_now
from models.config import settings
from repositories.db_models import PunishmentType

# Discord refuses timeouts longer than 28 days
MAX_TIMEOUT_MINUTES = 28 * 24 * 60


@dataclass
class ExecutionResult:
    """Outcome of a platform-side punishment call."""

    success: bool
    error: Optional[str] = None


class PunishmentExecutor(Protocol):
    """Performs (and reverses) punishments on the chat platform."""

    def apply(
        self,
        user_id: str,
        punishment_type: PunishmentType,
        duration_minutes: Optional[int],
        reason: str,
    ) -> ExecutionResult: ...

    def lift(self, user_id: str, punishment_type: PunishmentType) -> ExecutionResult: ...


@dataclass
class NullPunishmentExecutor:
    """
    Records calls without contacting any platform.

    Used when no bot token is configured, and as a test double.
    """

    calls: list[tuple[str, str, PunishmentType, Optional[int]]] = field(
        default_factory=list
    )

    def apply(
        self,
        user_id: str,
        punishment_type: PunishmentType,
        duration_minutes: Optional[int],
        reason: str,
    ) -> ExecutionResult:
        self.calls.append(("apply", user_id, punishment_type, duration_minutes))
        logger.debug(
            f"Punishment executor disabled; recorded {punishment_type.value} for {user_id}"
        )
        return ExecutionResult(success=True)

    def lift(self, user_id: str, punishment_type: PunishmentType) -> ExecutionResult:
        self.calls.append(("lift", user_id, punishment_type, None))
        logger.debug(
            f"Punishment executor disabled; recorded lift of {punishment_type.value} "
            f"for {user_id}"
        )
        return ExecutionResult(success=True)


class DiscordPunishmentExecutor:
    """
    Applies timeouts and bans through the Discord REST API.

    - mute: PATCH /guilds/{guild}/members/{user} communication_disabled_until
    - ban: PUT /guilds/{guild}/bans/{user}
    """

    def __init__(
        self,
        bot_token: str,
        guild_id: str,
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.bot_token = bot_token
        self.guild_id = guild_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        json: Optional[dict] = None,
        reason: Optional[str] = None,
    ) -> ExecutionResult:
        headers = {"Authorization": f"Bot {self.bot_token}"}
        if reason:
            # Discord expects the audit log reason URL-encoded
            headers["X-Audit-Log-Reason"] = quote(reason[:512])

        url = f"{self.api_base}{path}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, url, headers=headers, json=json)
                response.raise_for_status()
            logger.info(f"Discord {action} succeeded: {method} {path}")
            return ExecutionResult(success=True)
        except httpx.TimeoutException:
            error = f"Discord {action} timed out"
        except httpx.HTTPStatusError as e:
            error = f"Discord {action} failed with HTTP {e.response.status_code}"
        except httpx.HTTPError as e:
            error = f"Discord {action} failed: {e}"

        logger.error(error, path=path)
        return ExecutionResult(success=False, error=error)

    def apply(
        self,
        user_id: str,
        punishment_type: PunishmentType,
        duration_minutes: Optional[int],
        reason: str,
    ) -> ExecutionResult:
        if punishment_type == PunishmentType.BAN:
            return self._request(
                "PUT",
                f"/guilds/{self.guild_id}/bans/{user_id}",
                action="ban",
                json={},
                reason=reason,
            )

        minutes = min(duration_minutes or 0, MAX_TIMEOUT_MINUTES)
        until = format_iso8601(minutes_from(utc_now(), minutes))
        return self._request(
            "PATCH",
            f"/guilds/{self.guild_id}/members/{user_id}",
            action="timeout",
            json={"communication_disabled_until": until},
            reason=reason,
        )

    def lift(self, user_id: str, punishment_type: PunishmentType) -> ExecutionResult:
        if punishment_type == PunishmentType.BAN:
            return self._request(
                "DELETE",
                f"/guilds/{self.guild_id}/bans/{user_id}",
                action="unban",
                reason="Warning points reduced",
            )

        return self._request(
            "PATCH",
            f"/guilds/{self.guild_id}/members/{user_id}",
            action="timeout removal",
            json={"communication_disabled_until": None},
            reason="Warning points reduced",
        )


def get_default_executor() -> PunishmentExecutor:
    """
    Build the executor selected by configuration.

    Falls back to recording only when the Discord executor is selected but
    no bot token or guild is configured.
    """
    if settings.PUNISHMENT_EXECUTOR == "none":
        return NullPunishmentExecutor()

    if not settings.DISCORD_BOT_TOKEN or not settings.DISCORD_GUILD_ID:
        logger.warning(
            "DISCORD_BOT_TOKEN/DISCORD_GUILD_ID not set; punishments are recorded only"
        )
        return NullPunishmentExecutor()

    return DiscordPunishmentExecutor(
        bot_token=settings.DISCORD_BOT_TOKEN,
        guild_id=settings.DISCORD_GUILD_ID,
        api_base=settings.DISCORD_API_BASE,
        timeout=settings.DISCORD_REQUEST_TIMEOUT,
    )
