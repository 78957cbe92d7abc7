"""Identity provider client: best-effort request to temporarily restrict an actor."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from audit_trail.application.exceptions import DispatchFailureError

logger = logging.getLogger(__name__)


class HttpIdentityProvider:
    """
    POST {base_url}/actors/{actor_id}/restrict. The provider owns enforcement;
    this only asks. Without a base_url the request is logged and dropped.
    """

    def __init__(
        self,
        base_url: Optional[str],
        *,
        timeout_seconds: float = 2.0,
        restriction_minutes: int = 30,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout_seconds
        self._restriction_minutes = restriction_minutes
        self._client = client

    async def restrict_actor(self, actor_id: str, *, reason: str, pattern_kind: str) -> None:
        if self._base_url is None:
            logger.warning(
                "actor_restriction_not_configured",
                extra={"actor": actor_id, "pattern_kind": pattern_kind},
            )
            return
        url = f"{self._base_url}/actors/{quote(actor_id, safe='')}/restrict"
        payload = {
            "reason": reason,
            "durationMinutes": self._restriction_minutes,
            "findingPattern": pattern_kind,
        }
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DispatchFailureError(f"Actor restriction request failed: {e}") from e
        logger.info(
            "actor_restriction_requested",
            extra={"actor": actor_id, "pattern_kind": pattern_kind},
        )
