"""Authentication module delegating identity to an external provider.

This module provides:
1. A client for the managed identity provider (token exchange, account creation)
2. FastAPI dependencies resolving the calling user for protected routes
3. Role lookups re-derived per request from the stored User record
"""

import asyncio
import logging
import time
from typing import Optional, Dict, Any

import requests
from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from store import keys

# Configure logging
logger = logging.getLogger(__name__)

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a token has expired."""
    pass

class PermissionDeniedError(AuthError):
    """Raised when an authenticated user may not perform an action."""
    pass

class IdentityProviderError(Exception):
    """Raised when the identity provider fails or rejects a request."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

class IdentityProvider:
    """Client for the managed identity provider.

    The provider exposes `GET /auth/v1/user` to resolve a bearer token and
    `POST /auth/v1/admin/users` (service key) to create accounts. Calls are
    blocking `requests` calls moved off the event loop.
    """

    def __init__(self, auth_url: str, service_key: str, timeout: float = 10.0):
        """Initialize the provider client.

        Args:
            auth_url: Base URL of the identity provider
            service_key: Service-role key used for admin calls
            timeout: Seconds to wait for each provider call
        """
        self.auth_url = auth_url.rstrip('/')
        self.service_key = service_key
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers['content-type'] = 'application/json'
        if service_key:
            self.session.headers['apikey'] = service_key

    @staticmethod
    def check_token_claims(token: str) -> Optional[Dict[str, Any]]:
        """Reject expired JWTs without a provider round trip.

        Tokens that are not JWTs are opaque and left to the provider. The
        signature is not checked here; the provider does that.

        Returns:
            The unverified claims, or None for an opaque token

        Raises:
            SessionExpiredError: If the token's `exp` is in the past
        """
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return None

        exp = claims.get('exp')
        if exp is not None and float(exp) < time.time():
            raise SessionExpiredError("Session has expired")
        return claims

    def _fetch_user(self, token: str) -> Dict[str, Any]:
        try:
            response = self.session.get(
                f"{self.auth_url}/auth/v1/user",
                headers={'Authorization': f"Bearer {token}"},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}")

        if response.status_code in (401, 403):
            raise AuthError("Invalid or revoked token")
        if response.status_code != 200:
            raise IdentityProviderError(
                f"Identity provider returned {response.status_code}",
                response.status_code
            )

        user = response.json()
        if not user or not user.get('id'):
            raise AuthError("Token does not resolve to a user")
        return user

    async def get_user(self, token: str) -> Dict[str, Any]:
        """Exchange a bearer token for the provider's user identity.

        Args:
            token: Opaque bearer token from the Authorization header

        Returns:
            Dict with at least `id` and `email`

        Raises:
            SessionExpiredError: If the token has expired
            AuthError: If the token is invalid
            IdentityProviderError: If the provider cannot be reached
        """
        self.check_token_claims(token)
        return await asyncio.to_thread(self._fetch_user, token)

    def _create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                f"{self.auth_url}/auth/v1/admin/users",
                headers={'Authorization': f"Bearer {self.service_key}"},
                json={
                    'email': email,
                    'password': password,
                    'user_metadata': metadata,
                    # No mail server is configured, confirm immediately
                    'email_confirm': True
                },
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}")

        if response.status_code >= 400:
            try:
                body = response.json()
                message = body.get('msg') or body.get('message') or body.get('error_description')
            except ValueError:
                message = None
            raise IdentityProviderError(
                message or f"Identity provider returned {response.status_code}",
                response.status_code
            )

        return response.json()

    async def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Create an identity with a confirmed email.

        Returns:
            The provider's user object, including its `id`

        Raises:
            IdentityProviderError: If the provider rejects the request
        """
        return await asyncio.to_thread(self._create_user, email, password, metadata)

    def close(self) -> None:
        self.session.close()

# FastAPI security scheme; missing tokens are reported as 401 below
auth_scheme = HTTPBearer(
    auto_error=False,
    description="Bearer token issued by the identity provider"
)

def get_identity_provider(request: Request) -> IdentityProvider:
    """FastAPI dependency returning the application's identity provider."""
    return request.app.state.identity_provider

async def _load_actor(request: Request, identity: Dict[str, Any]) -> Dict[str, Any]:
    """Load the stored User record for an identity.

    Roles are always taken from the stored record, never from token claims.
    Identities without a stored profile get no role.
    """
    user = await request.app.state.store.get(keys.user(identity['id']))
    if user:
        return user
    return {'id': identity['id'], 'email': identity.get('email'), 'role': None}

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    provider: IdentityProvider = Depends(get_identity_provider)
) -> Dict[str, Any]:
    """FastAPI dependency for getting the authenticated user.

    Returns:
        The caller's stored User record

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    try:
        identity = await provider.get_user(credentials.credentials)
    except SessionExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except IdentityProviderError as e:
        logger.error(f"Error verifying token: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify credentials"
        )
    return await _load_actor(request, identity)

# Export public interface
__all__ = [
    'IdentityProvider',
    'get_identity_provider',
    'get_current_user',
    'auth_scheme',
    'AuthError',
    'SessionExpiredError',
    'PermissionDeniedError',
    'IdentityProviderError'
]
