"""Users module for accounts and seller profiles.

This module provides functionality for:
- Signing up (identity provider account + stored User record)
- Looking up users with self-or-admin visibility
- Reading and updating seller profiles through an allow-list
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from auth import IdentityProvider, IdentityProviderError
from auth.policy import authorize
from store import RecordStore, WriteConflictError, keys

logger = logging.getLogger(__name__)

ROLES = ('buyer', 'seller', 'admin')

# Roles a caller may pick at signup; admins are provisioned out of band
SIGNUP_ROLES = ('buyer', 'seller')

UPDATE_ATTEMPTS = 3

# User-mutable seller profile fields
SELLER_MUTABLE_FIELDS = {
    'business_name',
    'description',
    'address_text',
    'location_lat',
    'location_lng'
}

class UserError(Exception):
    """Base exception for user operations."""
    pass

class UserNotFoundError(UserError, LookupError):
    """Raised when a user is not found."""
    pass

class SignupError(UserError):
    """Raised when an account cannot be created."""
    pass

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

def new_seller_profile(user_id: str, business_name: str = '') -> Dict[str, Any]:
    """Default seller profile; verification flags always start false."""
    return {
        'user_id': user_id,
        'business_name': business_name,
        'description': '',
        'location_lat': None,
        'location_lng': None,
        'address_text': '',
        'bank_verified': False,
        'phone_verified': False,
        'id_verified': False,
    }

class UserManager:
    """Manager class for accounts and seller profiles."""

    def __init__(self, store: RecordStore, identity_provider: Optional[IdentityProvider] = None):
        """Initialize the user manager.

        Args:
            store: Record store holding users and seller profiles
            identity_provider: Provider used to create identities at signup
        """
        self.store = store
        self.identity_provider = identity_provider

    async def signup(
        self,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
        role: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create an identity and the matching User (and Seller Profile) records.

        Args:
            email: Login email
            password: Login password, handed straight to the identity provider
            name: Display name; also the initial business name for sellers
            phone: Optional phone number
            role: 'buyer' (default) or 'seller'

        Returns:
            The stored User record

        Raises:
            SignupError: If the role is not allowed or the provider rejects the account
        """
        role = role or 'buyer'
        if role not in SIGNUP_ROLES:
            raise SignupError(f"Invalid role: {role}")

        try:
            identity = await self.identity_provider.create_user(
                email,
                password,
                {'name': name, 'phone': phone, 'role': role}
            )
        except IdentityProviderError as e:
            if e.status_code and 400 <= e.status_code < 500:
                raise SignupError(str(e))
            raise

        user_id = identity['id']
        user = {
            'id': user_id,
            'name': name,
            'email': email,
            'phone': phone,
            'phone_verified': False,
            'role': role,
            'created_at': utcnow(),
            'rating': 0,
            'profile_pic': None,
        }

        records = {keys.user(user_id): user}
        if role == 'seller':
            records[keys.seller(user_id)] = new_seller_profile(user_id, name)

        try:
            await self.store.write_batch(sets=records)
        except Exception as e:
            logger.error(f"Identity {user_id} created but profile write failed: {e}")
            raise

        logger.info(f"Signed up {role} {user_id}")
        return user

    async def get_user(self, actor: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        """Get a user record. Callers see themselves; admins see anyone.

        Raises:
            PermissionDeniedError: If the caller is neither the user nor an admin
            UserNotFoundError: If no such user is stored
        """
        authorize('user:read', actor, {'id': user_id})
        user = await self.store.get(keys.user(user_id))
        if not user:
            raise UserNotFoundError("User not found")
        return user

    async def get_seller_profile(self, user_id: str) -> Dict[str, Any]:
        """Return the caller's seller profile and user record (either may be None)."""
        records = await self.store.get_records([keys.seller(user_id), keys.user(user_id)])
        return {
            'seller': records[keys.seller(user_id)],
            'user': records[keys.user(user_id)],
        }

    async def update_seller_profile(self, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update the caller's seller profile.

        Only SELLER_MUTABLE_FIELDS may change; verification flags are set
        exclusively by approved verification requests.

        Raises:
            UserError: If the update names fields outside the allow-list
        """
        invalid_fields = set(updates) - SELLER_MUTABLE_FIELDS
        if invalid_fields:
            raise UserError(f"Cannot update fields: {', '.join(sorted(invalid_fields))}")

        key = keys.seller(user_id)
        for attempt in range(1, UPDATE_ATTEMPTS + 1):
            current = await self.store.get(key)
            seller = dict(current) if current else new_seller_profile(user_id)
            seller.update(updates)

            try:
                # Verification approvals write the same record
                await self.store.write_batch(sets={key: seller}, expected={key: current})
                return seller
            except WriteConflictError:
                logger.warning(
                    f"Seller profile {user_id} changed during update (attempt {attempt})"
                )

        raise UserError("Seller profile changed concurrently, please retry")
