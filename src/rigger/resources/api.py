"""Authenticated API contexts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

import aiohttp

from rigger.core.errors import ConfigurationError
from rigger.core.models import ResourceKind
from rigger.resources.base import TokenResourceFactory

if TYPE_CHECKING:
    from rigger.config.schema import ApiConfig, ProfileConfig

logger = logging.getLogger(__name__)


@dataclass
class ApiContext:
    """Base URL and credentials for API calls made by a scenario."""
    base_url: Optional[str]
    token: Optional[str] = None
    timeout: float = 30.0

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def url(self, path: str) -> str:
        """Join a path onto the base URL."""
        if not self.base_url:
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


def extract_token(payload: Any, fields: Iterable[str]) -> str:
    """Return the first non-empty token field of an auth response.

    Raises:
        ValueError: If no token field is present
    """
    if isinstance(payload, dict):
        for name in fields:
            value = payload.get(name)
            if value:
                return str(value)
    raise ValueError("Token not found in authentication response")


class ApiContextFactory(TokenResourceFactory):
    """Builds API contexts; tokens come from a credential exchange."""

    kind = ResourceKind.API_CONTEXT

    def __init__(self, config: ApiConfig):
        self.config = config

    def requires_token(self, profile: ProfileConfig) -> bool:
        return bool(profile.auth_url)

    def fetch_token(self, profile: ProfileConfig) -> str:
        """POST the profile credentials to its auth URL and return the token."""
        if not profile.auth_url or profile.username is None or profile.password is None:
            raise ConfigurationError(
                f"Authentication credentials not configured for profile '{profile.name}'"
            )
        return asyncio.run(self._fetch_token(profile.auth_url, profile.username, profile.password))

    async def _fetch_token(self, auth_url: str, username: str, password: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        payload = {"username": username, "password": password}

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(auth_url, json=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise RuntimeError(
                        f"Authentication failed. Status: {resp.status}, Response: {body[:200]}"
                    )
                data = await resp.json(content_type=None)

        token = extract_token(data, self.config.token_fields)
        logger.info("Authentication token generated successfully")
        return token

    def create(self, profile: ProfileConfig, token: str = "") -> ApiContext:
        return ApiContext(
            base_url=profile.api_base_url,
            token=token or None,
            timeout=self.config.timeout,
        )

    def close(self, handle: ApiContext) -> None:
        # Nothing held open; requests use short-lived client sessions.
        handle.token = None
