from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifierFailure:
    reason: str
    status_code: Optional[int] = None


class BotNotifier:
    """Pushes verification outcomes to the Discord bot. Never raises."""

    def __init__(
        self,
        url: str,
        timeout_s: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "BotNotifier":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def push(self, identity_id: str, verified: bool, token: str) -> Optional[NotifierFailure]:
        payload = {"token": token, "userId": identity_id, "verified": verified}
        try:
            resp = self.client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            return NotifierFailure(reason=f"{type(e).__name__}: {e}")
        if not resp.is_success:
            return NotifierFailure(
                reason=f"bot answered HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        log.debug("Notified bot for user %s (verified=%s)", identity_id, verified)
        return None
