"""Shared fixtures: an in-memory record store and a fake identity provider."""

import uuid
from typing import Dict, Any

import pytest
import pytest_asyncio

from auth import AuthError, IdentityProviderError
from store import keys
from store.memory import MemoryRecordStore
from users import new_seller_profile

class FakeIdentityProvider:
    """Identity provider double: tokens map straight to identities."""

    def __init__(self):
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.emails: Dict[str, str] = {}

    def issue(self, user_id: str, email: str = None) -> str:
        token = f"token-{user_id}"
        self.tokens[token] = {'id': user_id, 'email': email or f"{user_id}@example.com"}
        return token

    async def get_user(self, token: str) -> Dict[str, Any]:
        if token not in self.tokens:
            raise AuthError("Invalid or revoked token")
        return dict(self.tokens[token])

    async def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        if email in self.emails:
            raise IdentityProviderError("A user with this email address has already been registered", 422)
        user_id = str(uuid.uuid4())
        self.emails[email] = user_id
        self.issue(user_id, email)
        return {'id': user_id, 'email': email, 'user_metadata': metadata}

    def close(self) -> None:
        pass

def make_user(user_id: str, role: str, name: str = None) -> Dict[str, Any]:
    """A stored User record as signup would write it."""
    return {
        'id': user_id,
        'name': name or user_id.title(),
        'email': f"{user_id}@example.com",
        'phone': None,
        'phone_verified': False,
        'role': role,
        'created_at': '2024-01-01T00:00:00+00:00',
        'rating': 0,
        'profile_pic': None,
    }

def seed_records() -> Dict[str, Any]:
    """Users for every role, plus a seller profile for the seller."""
    records = {}
    for user_id, role in (('buyer', 'buyer'), ('seller', 'seller'), ('admin', 'admin'), ('other', 'buyer')):
        records[keys.user(user_id)] = make_user(user_id, role)
    records[keys.seller('seller')] = new_seller_profile('seller', 'Seller Co')
    return records

@pytest.fixture
def buyer() -> Dict[str, Any]:
    return make_user('buyer', 'buyer')

@pytest.fixture
def seller() -> Dict[str, Any]:
    return make_user('seller', 'seller')

@pytest.fixture
def admin() -> Dict[str, Any]:
    return make_user('admin', 'admin')

@pytest.fixture
def other() -> Dict[str, Any]:
    return make_user('other', 'buyer')

@pytest_asyncio.fixture
async def store():
    """In-memory store seeded with a buyer, a seller, an admin and a bystander."""
    store = MemoryRecordStore(seed_records())
    yield store
    await store.close()

@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()
