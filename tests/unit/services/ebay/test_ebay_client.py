# tests/unit/services/ebay/test_ebay_client.py
import json

import httpx
import pytest

from app.core.exceptions import RemoteRequestFailed
from app.services.ebay.client import EbayClient


def client_for(handler) -> EbayClient:
    return EbayClient(sandbox=True, transport=httpx.MockTransport(handler))


"""
1. Generic request handling
"""

@pytest.mark.asyncio
async def test_request_sends_bearer_token_and_parses_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"ok": True})

    data = await client_for(handler).request("/sell/account/v1/privilege", "tok")

    assert data == {"ok": True}
    assert seen["auth"] == "Bearer tok"
    assert seen["url"] == "https://api.sandbox.ebay.com/sell/account/v1/privilege"


@pytest.mark.asyncio
async def test_request_empty_body_returns_empty_dict():
    data = await client_for(lambda request: httpx.Response(204)).request("/x", "tok", method="PUT", body={})

    assert data == {}


@pytest.mark.asyncio
async def test_request_failure_is_typed_and_parsed_once():
    body = json.dumps({"errors": [{"errorId": 25005, "message": "The category is not valid"}]})

    with pytest.raises(RemoteRequestFailed) as exc_info:
        await client_for(lambda request: httpx.Response(400, text=body)).request("/sell/inventory/v1/offer/1/publish", "tok", method="POST")

    error = exc_info.value
    assert error.http_status == 400
    assert error.path == "/sell/inventory/v1/offer/1/publish"
    assert error.code == 25005
    assert error.error_message == "The category is not valid"
    assert error.raw_body == body
    assert error.to_dict()["ebayError"] == {"code": 25005, "message": "The category is not valid"}


@pytest.mark.asyncio
async def test_request_failure_with_non_json_body():
    with pytest.raises(RemoteRequestFailed) as exc_info:
        await client_for(lambda request: httpx.Response(500, text="Internal Server Error")).request("/x", "tok")

    assert exc_info.value.code is None
    assert exc_info.value.parsed is None
    assert exc_info.value.raw_body == "Internal Server Error"


@pytest.mark.asyncio
async def test_network_error_becomes_remote_request_failed():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(RemoteRequestFailed) as exc_info:
        await client_for(handler).request("/x", "tok")
    assert exc_info.value.http_status == 0


"""
2. Policies (partial results)
"""

@pytest.mark.asyncio
async def test_get_policies_degrades_per_category():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["marketplace_id"] == "EBAY_US"
        if request.url.path.endswith("payment_policy"):
            return httpx.Response(200, json={"paymentPolicies": [{"paymentPolicyId": "P1"}]})
        if request.url.path.endswith("fulfillment_policy"):
            return httpx.Response(403, json={"errors": [{"errorId": 20403, "message": "Not opted in"}]})
        return httpx.Response(200, json={"returnPolicies": [{"returnPolicyId": "R1"}]})

    policies = await client_for(handler).get_policies("tok", "EBAY_US")

    assert policies["paymentPolicies"] == [{"paymentPolicyId": "P1"}]
    assert policies["fulfillmentPolicies"] == []
    assert policies["returnPolicies"] == [{"returnPolicyId": "R1"}]
    assert list(policies["errors"]) == ["fulfillment"]
    assert policies["errors"]["fulfillment"]["httpStatus"] == 403


"""
3. Inventory & offers
"""

@pytest.mark.asyncio
async def test_upsert_inventory_item_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.raw_path.decode()
        seen["language"] = request.headers.get("Content-Language")
        seen["body"] = json.loads(request.content)
        return httpx.Response(204)

    await client_for(handler).upsert_inventory_item(
        "tok",
        "drop 1",
        title="Amethyst",
        quantity=2,
        condition="USED_GOOD",
        image_urls=["https://img/0"],
        aspects={"Mineral": "Amethyst", "Colors": ["Purple", "White"], "Empty": ""},
    )

    assert seen["method"] == "PUT"
    assert seen["path"] == "/sell/inventory/v1/inventory_item/drop%201"
    assert seen["language"] == "en-US"
    assert seen["body"] == {
        "availability": {"shipToLocationAvailability": {"quantity": 2}},
        "product": {
            "title": "Amethyst",
            "imageUrls": ["https://img/0"],
            "aspects": {"Mineral": ["Amethyst"], "Colors": ["Purple", "White"]},
        },
        "condition": "USED_GOOD",
    }


@pytest.mark.asyncio
async def test_create_offer_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"offerId": "9001"})

    response = await client_for(handler).create_offer(
        "tok",
        sku="drop-1",
        marketplace_id="EBAY_US",
        merchant_location_key="warehouse-1",
        category_id="8822",
        title="Amethyst",
        price_value="24.50",
        currency="USD",
        quantity=1,
        payment_policy_id="P1",
        fulfillment_policy_id="F1",
        return_policy_id="R1",
        description="<p>nice</p>",
    )

    assert response == {"offerId": "9001"}
    body = seen["body"]
    assert body["format"] == "FIXED_PRICE"
    assert body["categoryId"] == "8822"
    assert body["merchantLocationKey"] == "warehouse-1"
    assert body["pricingSummary"] == {"price": {"value": "24.50", "currency": "USD"}}
    assert body["listingPolicies"] == {"paymentPolicyId": "P1", "fulfillmentPolicyId": "F1", "returnPolicyId": "R1"}
    assert body["listingDescription"] == "<p>nice</p>"


@pytest.mark.asyncio
async def test_update_offer_price_quantity_patches_current_offer():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "GET":
            return httpx.Response(200, json={
                "offerId": "9001",
                "sku": "drop-1",
                "status": "PUBLISHED",
                "marketplaceId": "EBAY_US",
                "format": "FIXED_PRICE",
                "availableQuantity": 1,
                "categoryId": "8822",
                "pricingSummary": {"price": {"value": "10.00", "currency": "USD"}},
            })
        body = json.loads(request.content)
        assert "offerId" not in body and "status" not in body
        assert body["pricingSummary"]["price"] == {"value": "12.00", "currency": "USD"}
        assert body["availableQuantity"] == 1
        assert body["categoryId"] == "8822"
        return httpx.Response(204)

    await client_for(handler).update_offer_price_quantity("tok", "9001", price_value="12.00")

    assert calls == ["GET", "PUT"]


@pytest.mark.asyncio
async def test_delete_offer_issues_delete_on_offer_path():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(204)

    data = await client_for(handler).delete_offer("tok", "9001")

    assert data == {}
    assert seen == {"method": "DELETE", "path": "/sell/inventory/v1/offer/9001"}


"""
4. Taxonomy
"""

@pytest.mark.asyncio
async def test_get_category_suggestions():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("get_default_category_tree_id"):
            return httpx.Response(200, json={"categoryTreeId": "0"})
        assert request.url.path == "/commerce/taxonomy/v1/category_tree/0/get_category_suggestions"
        assert request.url.params["q"] == "Amethyst cluster"
        return httpx.Response(200, json={"categorySuggestions": [
            {"category": {"categoryId": "3213", "categoryName": "Crystals"}},
            {"category": {}},
            {"category": {"categoryId": 8822, "categoryName": "Rocks"}},
        ]})

    suggestions = await client_for(handler).get_category_suggestions("tok", "EBAY_US", "Amethyst cluster")

    assert suggestions == [
        {"categoryId": "3213", "categoryName": "Crystals"},
        {"categoryId": "8822", "categoryName": "Rocks"},
    ]
