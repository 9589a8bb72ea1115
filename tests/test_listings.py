"""Tests for the listings module."""

import asyncio

import pytest
import pytest_asyncio
from typing import Dict, Any

from auth import PermissionDeniedError
from listings import (
    ListingManager,
    ListingError,
    ListingNotFoundError,
    InvalidPriceError,
    CATEGORIES
)
from store import keys

# Test data
SAMPLE_LISTING = {
    "title": "Mountain Bike",
    "category": "sports",
    "price": 1499.99,
    "description": "21 gears, barely used",
    "condition": "used",
    "quantity": 2,
    "address_text": "Cape Town",
    "images": [
        "https://cdn.example.com/bike-front.jpg",
        "https://cdn.example.com/bike-side.jpg"
    ]
}

@pytest_asyncio.fixture
async def listing_manager(store):
    """Create and return a ListingManager over the seeded store."""
    return ListingManager(store, currency='ZAR')

@pytest_asyncio.fixture
async def sample_listing(listing_manager, seller) -> Dict[str, Any]:
    """Create and return a sample listing."""
    return await listing_manager.create_listing(seller_id=seller['id'], **SAMPLE_LISTING)

@pytest.mark.asyncio
async def test_create_listing(listing_manager, store, seller):
    """Test creating a new listing."""
    listing = await listing_manager.create_listing(seller_id=seller['id'], **SAMPLE_LISTING)

    # Verify base listing fields
    assert listing["seller_id"] == seller["id"]
    assert listing["title"] == SAMPLE_LISTING["title"]
    assert listing["price_cents"] == 149999
    assert listing["price"] == 1499.99
    assert listing["currency"] == "ZAR"
    assert listing["status"] == "published"
    assert listing["verified_flag"] is False
    assert "created_at" in listing

    # Verify stored record, pointer and images
    stored = await store.get(keys.listing(listing["id"]))
    assert "price" not in stored
    assert await store.get(keys.listing_by_seller(seller["id"], listing["id"])) == listing["id"]

    images = await listing_manager.get_images(listing["id"])
    assert [image["image_url"] for image in images] == SAMPLE_LISTING["images"]
    assert images[0]["is_primary"] is True
    assert images[1]["is_primary"] is False

@pytest.mark.asyncio
async def test_create_listing_defaults(listing_manager, seller):
    """Test condition and quantity defaults."""
    listing = await listing_manager.create_listing(
        seller_id=seller["id"],
        title="Kettle",
        category="home",
        price=250
    )
    assert listing["condition"] == "new"
    assert listing["quantity"] == 1
    assert listing["price_cents"] == 25000

@pytest.mark.asyncio
async def test_create_listing_price_rounding(listing_manager, seller):
    """Test prices are stored as cents rounded half up."""
    listing = await listing_manager.create_listing(
        seller_id=seller["id"], title="Gum", category="food", price=0.005
    )
    assert listing["price_cents"] == 1

    listing = await listing_manager.create_listing(
        seller_id=seller["id"], title="Book", category="books", price=19.99
    )
    assert listing["price_cents"] == 1999

@pytest.mark.asyncio
async def test_create_listing_validation(listing_manager, seller):
    """Test validation during listing creation."""
    with pytest.raises(ListingError):
        await listing_manager.create_listing(seller_id=seller["id"], title=" ", category="home", price=1)

    with pytest.raises(ListingError):
        await listing_manager.create_listing(seller_id=seller["id"], title="X", category="weapons", price=1)

    with pytest.raises(ListingError):
        await listing_manager.create_listing(
            seller_id=seller["id"], title="X", category="home", price=1, condition="broken"
        )

    with pytest.raises(ListingError):
        await listing_manager.create_listing(
            seller_id=seller["id"], title="X", category="home", price=1, quantity=0
        )

    with pytest.raises(InvalidPriceError):
        await listing_manager.create_listing(seller_id=seller["id"], title="X", category="home", price=-1)

    with pytest.raises(InvalidPriceError):
        await listing_manager.create_listing(seller_id=seller["id"], title="X", category="home", price="abc")

@pytest.mark.asyncio
async def test_get_listing_enriched(listing_manager, sample_listing, seller):
    """Test a single listing carries seller, seller profile and images."""
    listing = await listing_manager.get_listing(sample_listing["id"])

    assert listing["id"] == sample_listing["id"]
    assert listing["seller"]["id"] == seller["id"]
    assert listing["seller_profile"]["business_name"] == "Seller Co"
    assert len(listing["images"]) == 2
    assert listing["price"] == 1499.99

@pytest.mark.asyncio
async def test_get_listing_not_found(listing_manager):
    """Test getting a non-existent listing."""
    with pytest.raises(ListingNotFoundError):
        await listing_manager.get_listing("does-not-exist")

@pytest.mark.asyncio
async def test_get_seller_listings(listing_manager, sample_listing, seller, buyer):
    """Test listing a seller's own listings through the index."""
    second = await listing_manager.create_listing(
        seller_id=seller["id"], title="Helmet", category="sports", price=300
    )

    listings = await listing_manager.get_seller_listings(seller["id"])
    assert {listing["id"] for listing in listings} == {sample_listing["id"], second["id"]}
    assert all("images" in listing for listing in listings)

    assert await listing_manager.get_seller_listings(buyer["id"]) == []

@pytest.mark.asyncio
async def test_update_listing(listing_manager, store, sample_listing, seller):
    """Test updating allow-listed fields."""
    updated = await listing_manager.update_listing(
        seller,
        sample_listing["id"],
        {"title": "Mountain Bike XL", "price": 1200}
    )
    assert updated["title"] == "Mountain Bike XL"
    assert updated["price_cents"] == 120000
    assert updated["price"] == 1200.0
    assert "updated_at" in updated

    stored = await store.get(keys.listing(sample_listing["id"]))
    assert stored["title"] == "Mountain Bike XL"

@pytest.mark.asyncio
async def test_update_listing_quantity_rederives_status(listing_manager, sample_listing, seller):
    """Test quantity changes drive the sold/published status."""
    updated = await listing_manager.update_listing(seller, sample_listing["id"], {"quantity": 0})
    assert updated["status"] == "sold"

    updated = await listing_manager.update_listing(seller, sample_listing["id"], {"quantity": 3})
    assert updated["status"] == "published"

@pytest.mark.asyncio
async def test_update_listing_rejects_protected_fields(listing_manager, sample_listing, seller):
    """Test fields outside the allow-list cannot be changed."""
    for field, value in (
        ("seller_id", "someone-else"),
        ("verified_flag", True),
        ("price_cents", 1),
        ("status", "sold")
    ):
        with pytest.raises(ListingError):
            await listing_manager.update_listing(seller, sample_listing["id"], {field: value})

@pytest.mark.asyncio
async def test_update_listing_requires_owner(listing_manager, sample_listing, buyer, admin):
    """Test only the owner may update a listing."""
    with pytest.raises(PermissionDeniedError):
        await listing_manager.update_listing(buyer, sample_listing["id"], {"title": "Mine now"})
    with pytest.raises(PermissionDeniedError):
        await listing_manager.update_listing(admin, sample_listing["id"], {"title": "Mine now"})

@pytest.mark.asyncio
async def test_delete_listing(listing_manager, store, sample_listing, seller):
    """Test deleting removes the listing, its pointer and its images."""
    listing_id = sample_listing["id"]
    await listing_manager.delete_listing(seller, listing_id)

    assert await store.get(keys.listing(listing_id)) is None
    assert await store.get(keys.listing_by_seller(seller["id"], listing_id)) is None
    assert await store.scan_by_prefix(keys.listing_images(listing_id)) == []
    assert await listing_manager.get_seller_listings(seller["id"]) == []

    with pytest.raises(ListingNotFoundError):
        await listing_manager.delete_listing(seller, listing_id)

@pytest.mark.asyncio
async def test_delete_listing_requires_owner(listing_manager, sample_listing, buyer):
    """Test only the owner may delete a listing."""
    with pytest.raises(PermissionDeniedError):
        await listing_manager.delete_listing(buyer, sample_listing["id"])

@pytest.mark.asyncio
async def test_concurrent_creates_are_all_indexed(listing_manager, seller):
    """Test listings created concurrently all land in the seller index."""
    created = await asyncio.gather(*(
        listing_manager.create_listing(seller_id=seller["id"], title=f"Item {i}", category="other", price=i)
        for i in range(5)
    ))
    listings = await listing_manager.get_seller_listings(seller["id"])
    assert {listing["id"] for listing in listings} == {listing["id"] for listing in created}

def test_categories():
    """Test the static category list."""
    assert len(CATEGORIES) == 12
    assert all({"id", "name", "icon"} <= set(category) for category in CATEGORIES)
