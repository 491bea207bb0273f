# tests/unit/services/test_listing_store.py
import pytest
from sqlalchemy import func, select

from app.models.listing import Listing
from app.services.listing_store import ListingRecordStore, normalize_remote_offer


@pytest.mark.asyncio
async def test_upsert_twice_keeps_one_row_with_latest_values(db_session, store):
    records = ListingRecordStore(db_session)

    await records.upsert_by_offer_id(store.id, "offer-1", {"title": "First", "price": "10.00", "quantity": 1})
    listing = await records.upsert_by_offer_id(store.id, "offer-1", {"title": "Second", "price": "12.00", "quantity": 3})

    count = await db_session.scalar(select(func.count()).select_from(Listing))
    assert count == 1
    assert listing.title == "Second"
    assert listing.price == "12.00"
    assert listing.quantity == 3


@pytest.mark.asyncio
async def test_upsert_only_overwrites_given_fields(db_session, store):
    records = ListingRecordStore(db_session)

    await records.upsert_by_offer_id(store.id, "offer-1", {"title": "First", "sku": "drop-1"})
    listing = await records.upsert_by_offer_id(store.id, "offer-1", {"title": "Second"})

    assert listing.sku == "drop-1"
    assert listing.title == "Second"


def test_normalize_remote_offer_reads_nested_fields():
    fields = normalize_remote_offer({
        "offerId": 42,
        "sku": "drop-1",
        "listingDescription": {"title": "Quartz Point"},
        "pricingSummary": {"price": {"value": "19.99", "currency": "USD"}},
        "availableQuantity": 2,
        "status": "PUBLISHED",
        "listing": {"listingId": "110"},
        "categoryId": "8822",
    })

    assert fields["ebay_offer_id"] == "42"
    assert fields["title"] == "Quartz Point"
    assert fields["price"] == "19.99"
    assert fields["quantity"] == 2
    assert fields["status"] == "published"
    assert fields["ebay_listing_id"] == "110"


def test_normalize_remote_offer_without_id():
    assert normalize_remote_offer({"sku": "drop-1"}) is None


@pytest.mark.asyncio
async def test_sync_tolerates_partial_and_malformed_offers(db_session, store):
    records = ListingRecordStore(db_session)
    offers = [
        {"offerId": "o-1", "sku": "drop-1", "pricingSummary": {"price": {"value": "9.99"}}, "availableQuantity": 4},
        {"sku": "no-id"},
        {"offerId": "o-2"},
        "not-an-offer",
        {"offerId": "o-3", "pricingSummary": "garbage", "listing": ["bad"]},
    ]

    counts = await records.sync_offers(store, offers)

    assert counts == {"upserted": 3, "skipped": 2}
    bare = (await db_session.execute(select(Listing).where(Listing.ebay_offer_id == "o-2"))).scalar_one()
    assert bare.price is None
    assert bare.sku is None
    assert bare.title == "Untitled"
    assert bare.quantity == 1
    assert bare.status == "active"


@pytest.mark.asyncio
async def test_sync_is_repeatable(db_session, store):
    records = ListingRecordStore(db_session)
    offers = [{"offerId": "o-1", "sku": "drop-1"}]

    await records.sync_offers(store, offers)
    await records.sync_offers(store, offers)

    count = await db_session.scalar(select(func.count()).select_from(Listing))
    assert count == 1


@pytest.mark.asyncio
async def test_mark_ended_keeps_row(db_session, store):
    records = ListingRecordStore(db_session)
    listing = await records.upsert_by_offer_id(store.id, "offer-1", {"title": "T"})

    await records.mark_ended(listing)

    assert (await records.get_for_user(listing.id, store.user_id)).status == "ended"
