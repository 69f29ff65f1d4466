"""Clerk session verification and internal user resolution."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx
import jwt
from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from config.settings import Settings, get_settings
from services.user_service import UserStore

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


@dataclass(frozen=True)
class AuthContext:
    """Verified identity of the caller, as issued by Clerk."""

    user_id: str
    session_id: Optional[str] = None


class ClerkAuth:
    """FastAPI dependency that verifies a Clerk session token.

    The token is read from the ``Authorization: Bearer`` header or, failing
    that, Clerk's ``__session`` cookie, and checked against the instance JWKS.
    With ``auto_error=False`` an unverifiable request yields ``None`` instead
    of a 401 so the handler can decide what to do.
    """

    def __init__(self, settings: Optional[Settings] = None, auto_error: bool = True):
        self._settings = settings
        self._auto_error = auto_error
        self._bearer = HTTPBearer(auto_error=False)
        self._jwks_client: Optional[jwt.PyJWKClient] = None

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _jwks(self) -> jwt.PyJWKClient:
        if self._jwks_client is None:
            headers = {}
            if self.settings.clerk_secret_key:
                headers["Authorization"] = f"Bearer {self.settings.clerk_secret_key}"
            self._jwks_client = jwt.PyJWKClient(self.settings.clerk_jwks_url, headers=headers)
        return self._jwks_client

    def verify(self, token: str) -> Optional[AuthContext]:
        try:
            signing_key = self._jwks().get_signing_key_from_jwt(token)
            claims: Dict[str, Any] = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"require": ["exp", "sub"]},
                leeway=5,
            )
        except jwt.PyJWTError as e:
            logger.info(f"Rejected session token: {e}")
            return None

        parties = self.settings.clerk_authorized_parties
        if parties and claims.get("azp") not in parties:
            logger.info(f"Rejected session token from unauthorized party {claims.get('azp')}")
            return None

        return AuthContext(user_id=claims["sub"], session_id=claims.get("sid"))

    async def __call__(self, request: Request) -> Optional[AuthContext]:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        token = credentials.credentials if credentials is not None else request.cookies.get(SESSION_COOKIE)

        context = await run_in_threadpool(self.verify, token) if token else None
        if context is None and self._auto_error:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        return context


class ClerkClient:
    """Minimal client for the Clerk Backend API."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        self._settings = settings or get_settings()
        self._transport = transport

    def get_user(self, user_id: str) -> Dict[str, Any]:
        with httpx.Client(
            base_url=self._settings.clerk_api_url,
            headers={"Authorization": f"Bearer {self._settings.clerk_secret_key}"},
            timeout=10.0,
            transport=self._transport,
        ) as client:
            response = client.get(f"/users/{user_id}")
            response.raise_for_status()
            return response.json()

    def get_primary_email(self, user_id: str) -> Optional[str]:
        """Primary email address of a Clerk user, else the first one listed"""
        user = self.get_user(user_id)
        addresses: List[Dict[str, Any]] = user.get("email_addresses") or []
        primary_id = user.get("primary_email_address_id")
        for address in addresses:
            if address.get("id") == primary_id:
                return address.get("email_address")
        return addresses[0].get("email_address") if addresses else None


@dataclass(frozen=True)
class UserFound:
    user: Dict[str, Any]


@dataclass(frozen=True)
class UserUnauthenticated:
    pass


@dataclass(frozen=True)
class UserNotFound:
    clerk_user_id: str


UserLookup = Union[UserFound, UserUnauthenticated, UserNotFound]


def resolve_user(store: UserStore, auth: Optional[AuthContext]) -> UserLookup:
    """Map the verified external identity to the internal user row.

    Callers choose the HTTP response for each outcome.
    """
    if auth is None or not auth.user_id:
        return UserUnauthenticated()

    user = store.get_by_clerk_id(auth.user_id)
    if user is None:
        return UserNotFound(clerk_user_id=auth.user_id)
    return UserFound(user=user)
