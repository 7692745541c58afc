# backend/mailsift/services/verifier/millionverifier.py
import logging
from typing import Optional

import httpx

from ...errors import VerifierError
from ...models import ValidationStatus
from .base import Verdict, Verifier

logger = logging.getLogger("mailsift.verifier")


class MillionVerifierClient(Verifier):
    """Single-address lookups against the MillionVerifier v3 API. No retries."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.millionverifier.com/api/v3/",
        timeout: int = 10,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ValueError("MillionVerifier API key is required")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout + 5)

    async def verify(self, email: str) -> Verdict:
        params = {"api": self.api_key, "email": email, "timeout": self.timeout}
        try:
            resp = await self._client.get(self.base_url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise VerifierError(
                f"MillionVerifier returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise VerifierError(f"MillionVerifier request failed: {e}") from e

        if not isinstance(data, dict):
            raise VerifierError("MillionVerifier returned an unexpected payload")

        if data.get("error"):
            logger.warning("MillionVerifier error for %s: %s", email, data["error"])

        result = str(data.get("result") or "").lower()
        try:
            status = ValidationStatus(result)
        except ValueError:
            status = ValidationStatus.unknown
        return Verdict(status=status, payload=data)

    async def aclose(self) -> None:
        await self._client.aclose()
