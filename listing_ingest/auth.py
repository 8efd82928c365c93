# listing_ingest/auth.py
"""Bearer-token lifecycle for the upstream feed (OAuth2 client credentials)."""
import asyncio
from datetime import timedelta

import httpx
from pydantic import ValidationError

from .errors import TokenUnavailableError
from .schemas import TokenResponse
from .utils import logger, utcnow

REFRESH_THRESHOLD = timedelta(minutes=5)


class TokenManager:
    """Owns the cached token; refreshes are single-flight.

    While a refresh is in flight every caller awaits that same request and
    sees its outcome. A failed refresh leaves the previous token untouched.
    """

    def __init__(self, client: httpx.AsyncClient, token_url, client_id, client_secret,
                 timeout=180.0, clock=utcnow):
        self._client = client
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._clock = clock
        self._token = None
        self._expires_at = None
        self._inflight = None

    @property
    def token(self):
        return self._token

    @property
    def expires_at(self):
        return self._expires_at

    def needs_refresh(self) -> bool:
        if not self._token or self._expires_at is None:
            return True
        return self._expires_at - self._clock() <= REFRESH_THRESHOLD

    async def ensure_valid_token(self) -> bool:
        if not self.needs_refresh():
            return True
        logger.info("Token missing or expiring soon. Requesting new token...")
        return await self.refresh()

    async def refresh_rejected(self, rejected_token) -> bool:
        """Refresh after the feed rejected `rejected_token`.

        If another caller already replaced that token, reuse the new one.
        """
        if self._token is not None and self._token != rejected_token and not self.needs_refresh():
            return True
        return await self.refresh()

    async def authorization_header(self):
        if not await self.ensure_valid_token():
            raise TokenUnavailableError("token could not be obtained")
        return {"Authorization": f"Bearer {self._token}"}

    async def refresh(self) -> bool:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._request_token())
            self._inflight.add_done_callback(self._clear_inflight)
        else:
            logger.info("Token request already in progress, waiting...")
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, _future):
        self._inflight = None

    async def _request_token(self) -> bool:
        payload = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
            "scope": "api",
        }
        try:
            response = await self._client.post(self._token_url, data=payload, timeout=self._timeout)
            response.raise_for_status()
            token = TokenResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error("Error fetching token: status %s", e.response.status_code)
            return False
        except httpx.HTTPError as e:
            logger.error("Network error fetching token: %s", e)
            return False
        except (ValueError, ValidationError) as e:
            logger.error("Token or expires_in not found in token response: %s", e)
            return False

        self._token = token.access_token
        self._expires_at = self._clock() + timedelta(seconds=token.expires_in)
        logger.info("Token obtained/renewed. Valid until: %s", self._expires_at.isoformat())
        return True
