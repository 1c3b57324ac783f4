"""
OAuth 2.0 sign-in (Google, Facebook).

Each provider knows its authorize URL, code exchange and profile fetch, and
returns a provider-neutral `OAuthProfile`. Account lookup/creation happens in
`AuthService.resolve_federated_account`, which never touches the network.

CSRF `state` values are signed by the TokenIssuer, so nothing is kept server-side.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from api.utils.logger import get_logger

logger = get_logger(__name__)


class OAuthProfile(BaseModel):
    """Identity asserted by an external provider."""
    provider: str  # "google" | "facebook"
    provider_user_id: str
    email: Optional[str] = None  # Facebook may omit it
    name: str = ""
    picture_url: Optional[str] = None


class OAuthError(Exception):
    """Provider handshake failed or the provider is not configured."""


class _OAuthProvider(ABC):
    name: str = ""
    AUTHORIZE_URL: str = ""
    TOKEN_URL: str = ""
    USERINFO_URL: str = ""
    SCOPE: str = ""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise OAuthError(f"{self.name.title()} sign-in is not configured")

    def authorize_params(self, state: str) -> dict[str, str]:
        return {
            "client_id": self.client_id or "",
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.SCOPE,
            "state": state,
        }

    def get_authorize_url(self, state: str) -> str:
        """URL the browser is redirected to for consent."""
        self._require_configured()
        return f"{self.AUTHORIZE_URL}?{urlencode(self.authorize_params(state))}"

    @abstractmethod
    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> dict[str, Any]:
        """Trade an authorization code for provider tokens."""

    @abstractmethod
    async def get_user_info(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        ...

    async def authenticate(self, code: str) -> OAuthProfile:
        """Complete the code flow: exchange the code, then fetch the profile."""
        self._require_configured()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                tokens = await self.exchange_code(client, code)
                access_token = tokens.get("access_token")
                if not access_token:
                    raise OAuthError(f"{self.name} token response carried no access_token")
                return await self.get_user_info(client, access_token)
        except httpx.HTTPError as e:
            logger.error(f"{self.name} OAuth transport error: {e!r}")
            raise OAuthError(f"Could not reach {self.name}") from e


class GoogleOAuth(_OAuthProvider):
    name = "google"
    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
    SCOPE = "openid email profile"

    def authorize_params(self, state: str) -> dict[str, str]:
        return {**super().authorize_params(state), "prompt": "select_account"}

    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> dict[str, Any]:
        response = await client.post(
            self.TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        if response.status_code != 200:
            logger.error(f"Google token exchange failed: {response.text}")
            raise OAuthError(f"Token exchange failed: {response.status_code}")
        return response.json()

    async def get_user_info(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        response = await client.get(
            self.USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code != 200:
            logger.error(f"Google userinfo failed: {response.text}")
            raise OAuthError(f"Failed to get user info: {response.status_code}")

        data = response.json()
        email = data.get("email")
        return OAuthProfile(
            provider=self.name,
            provider_user_id=str(data["id"]),
            email=email,
            name=data.get("name") or (email or "").split("@")[0],
            picture_url=data.get("picture"),
        )


class FacebookOAuth(_OAuthProvider):
    name = "facebook"
    AUTHORIZE_URL = "https://www.facebook.com/v18.0/dialog/oauth"
    TOKEN_URL = "https://graph.facebook.com/v18.0/oauth/access_token"
    USERINFO_URL = "https://graph.facebook.com/v18.0/me"
    SCOPE = "email,public_profile"

    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> dict[str, Any]:
        response = await client.get(
            self.TOKEN_URL,
            params={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
        )
        if response.status_code != 200:
            logger.error(f"Facebook token exchange failed: {response.text}")
            raise OAuthError(f"Token exchange failed: {response.status_code}")
        return response.json()

    async def get_user_info(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        response = await client.get(
            self.USERINFO_URL,
            params={"fields": "id,email,name,picture.type(large)", "access_token": access_token},
        )
        if response.status_code != 200:
            logger.error(f"Facebook userinfo failed: {response.text}")
            raise OAuthError(f"Failed to get user info: {response.status_code}")

        data = response.json()
        return OAuthProfile(
            provider=self.name,
            provider_user_id=str(data["id"]),
            email=data.get("email") or None,
            name=data.get("name", ""),
            picture_url=data.get("picture", {}).get("data", {}).get("url"),
        )


class OAuthManager:
    """Registry of the supported providers."""

    def __init__(self, providers: list[_OAuthProvider]):
        self.providers = {p.name: p for p in providers}

    def get(self, provider: str) -> _OAuthProvider:
        try:
            return self.providers[provider]
        except KeyError:
            raise OAuthError(f"Unknown provider: {provider}") from None

    def get_available_providers(self) -> list[str]:
        return [name for name, p in self.providers.items() if p.is_configured]

    def get_authorize_url(self, provider: str, state: str) -> str:
        return self.get(provider).get_authorize_url(state)

    async def authenticate(self, provider: str, code: str) -> OAuthProfile:
        return await self.get(provider).authenticate(code)
