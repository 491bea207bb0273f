import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.core.enums import PolicyType
from app.core.exceptions import RemoteRequestFailed

logger = logging.getLogger(__name__)


class EbayClient:
    """
    Thin authenticated wrapper around the eBay Sell/Commerce REST APIs.

    Every call takes the caller's access token; the client holds no seller
    state. Any non-2xx response raises ``RemoteRequestFailed`` with the status,
    path and raw body (plus the first eBay error code/message, parsed once).
    """

    def __init__(self, sandbox: bool = False, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.sandbox = sandbox
        self.transport = transport

        if sandbox:
            self.API_BASE = "https://api.sandbox.ebay.com"
        else:
            self.API_BASE = "https://api.ebay.com"

    def _get_headers(self, token: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Get headers with auth token for API requests"""
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        path: str,
        token: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Perform one authenticated request and return the parsed JSON body
        (an empty dict for 204 / empty responses).

        Raises:
            RemoteRequestFailed: non-2xx response or network failure
        """
        url = f"{self.API_BASE}{path}"

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=30.0) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._get_headers(token, headers),
                    params=params,
                    json=body,
                )
        except httpx.RequestError as e:
            logger.error(f"Network error calling eBay {method} {path}: {str(e)}")
            raise RemoteRequestFailed(0, path, f"Network error: {str(e)}")

        if not 200 <= response.status_code < 300:
            logger.error(f"eBay API error {response.status_code} on {method} {path}: {response.text[:500]}")
            raise RemoteRequestFailed(response.status_code, path, response.text)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    # -----------------------------------------------------------------
    # Account: policies, programs, identity
    # -----------------------------------------------------------------

    async def _get_policy_list(self, token: str, policy_type: PolicyType, marketplace_id: str) -> List[Dict]:
        data = await self.request(policy_type.endpoint, token, params={"marketplace_id": marketplace_id})
        return data.get(policy_type.collection_key, []) or []

    async def get_policies(self, token: str, marketplace_id: str) -> Dict[str, Any]:
        """
        Fetch payment, fulfillment and return policies concurrently.

        A failing category degrades to an empty list plus an entry under
        ``errors`` instead of failing the whole call.
        """
        policy_types = [PolicyType.PAYMENT, PolicyType.FULFILLMENT, PolicyType.RETURN]
        results = await asyncio.gather(
            *(self._get_policy_list(token, p, marketplace_id) for p in policy_types),
            return_exceptions=True,
        )

        policies: Dict[str, Any] = {"errors": {}}
        for policy_type, result in zip(policy_types, results):
            if isinstance(result, RemoteRequestFailed):
                logger.warning(f"Could not load {policy_type.value} policies: {result.message}")
                policies[policy_type.collection_key] = []
                policies["errors"][policy_type.value] = result.to_dict()
            elif isinstance(result, BaseException):
                raise result
            else:
                policies[policy_type.collection_key] = result
        return policies

    async def opt_in_to_program(self, token: str, program_type: str = "SELLING_POLICY_MANAGEMENT") -> Dict:
        return await self.request(
            "/sell/account/v1/program/opt_in", token, method="POST", body={"programType": program_type}
        )

    async def get_opted_in_programs(self, token: str) -> Dict:
        return await self.request("/sell/account/v1/program/get_opted_in_programs", token)

    async def get_identity(self, token: str) -> Dict:
        return await self.request("/commerce/identity/v1/user/", token)

    async def get_account(self, token: str) -> Dict:
        return await self.request("/sell/account/v1/privilege", token)

    # -----------------------------------------------------------------
    # Inventory locations
    # -----------------------------------------------------------------

    async def get_inventory_locations(self, token: str) -> Dict:
        return await self.request("/sell/inventory/v1/location", token)

    async def create_inventory_location(
        self, token: str, merchant_location_key: str, country: str, postal_code: str, phone: str
    ) -> Dict:
        payload = {
            "location": {"address": {"country": country, "postalCode": postal_code}},
            "phone": phone,
            "locationTypes": ["WAREHOUSE"],
        }
        return await self.request(
            f"/sell/inventory/v1/location/{quote(merchant_location_key, safe='')}",
            token,
            method="POST",
            body=payload,
        )

    # -----------------------------------------------------------------
    # Inventory items & offers
    # -----------------------------------------------------------------

    async def upsert_inventory_item(
        self,
        token: str,
        sku: str,
        title: str,
        quantity: int,
        description: Optional[str] = None,
        condition: Optional[str] = None,
        image_urls: Optional[List[str]] = None,
        aspects: Optional[Dict[str, Any]] = None,
    ) -> Dict:
        """Create or replace the inventory item keyed by SKU (idempotent PUT)."""
        product: Dict[str, Any] = {"title": title}
        if description:
            product["description"] = description
        if image_urls:
            product["imageUrls"] = list(image_urls)
        if aspects:
            product["aspects"] = {
                str(k): [str(v) for v in (val if isinstance(val, list) else [val])]
                for k, val in aspects.items()
                if val not in (None, "")
            }

        payload: Dict[str, Any] = {
            "availability": {"shipToLocationAvailability": {"quantity": quantity}},
            "product": product,
        }
        if condition:
            payload["condition"] = condition

        return await self.request(
            f"/sell/inventory/v1/inventory_item/{quote(sku, safe='')}",
            token,
            method="PUT",
            body=payload,
            headers={"Content-Language": "en-US"},
        )

    async def create_offer(
        self,
        token: str,
        sku: str,
        marketplace_id: str,
        merchant_location_key: str,
        category_id: str,
        title: str,
        price_value: str,
        currency: str,
        quantity: int,
        payment_policy_id: str,
        fulfillment_policy_id: str,
        return_policy_id: str,
        description: Optional[str] = None,
    ) -> Dict:
        """
        Create a new offer. Not idempotent: every call may create another
        remote offer for the same SKU.
        """
        payload: Dict[str, Any] = {
            "sku": sku,
            "marketplaceId": marketplace_id,
            "format": "FIXED_PRICE",
            "availableQuantity": quantity,
            "categoryId": category_id,
            "merchantLocationKey": merchant_location_key,
            "listingPolicies": {
                "paymentPolicyId": payment_policy_id,
                "fulfillmentPolicyId": fulfillment_policy_id,
                "returnPolicyId": return_policy_id,
            },
            "pricingSummary": {"price": {"value": price_value, "currency": currency}},
        }
        if description:
            payload["listingDescription"] = description

        logger.debug(f"Creating offer for SKU {sku} in category {category_id}")
        return await self.request(
            "/sell/inventory/v1/offer", token, method="POST", body=payload, headers={"Content-Language": "en-US"}
        )

    async def publish_offer(self, token: str, offer_id: str) -> Dict:
        """Publish an offer; the response carries ``listingId`` once live."""
        return await self.request(f"/sell/inventory/v1/offer/{quote(offer_id, safe='')}/publish", token, method="POST")

    async def get_offer(self, token: str, offer_id: str) -> Dict:
        return await self.request(f"/sell/inventory/v1/offer/{quote(offer_id, safe='')}", token)

    async def get_offers(self, token: str, limit: int = 200, sku: Optional[str] = None) -> Dict:
        params: Dict[str, Any] = {"limit": limit}
        if sku:
            params["sku"] = sku
        return await self.request("/sell/inventory/v1/offer", token, params=params)

    async def update_offer_price_quantity(
        self,
        token: str,
        offer_id: str,
        price_value: Optional[str] = None,
        currency: str = "USD",
        quantity: Optional[int] = None,
    ) -> Dict:
        """
        Change price and/or quantity on an existing offer.

        updateOffer replaces the whole offer, so the current offer is fetched
        and only the requested fields are patched before the PUT.
        """
        offer = await self.get_offer(token, offer_id)
        for read_only in ("offerId", "status", "listing", "marketplaceId", "format", "sku"):
            offer.pop(read_only, None)

        if price_value is not None:
            offer.setdefault("pricingSummary", {})["price"] = {"value": price_value, "currency": currency}
        if quantity is not None:
            offer["availableQuantity"] = quantity

        return await self.request(
            f"/sell/inventory/v1/offer/{quote(offer_id, safe='')}",
            token,
            method="PUT",
            body=offer,
            headers={"Content-Language": "en-US"},
        )

    async def withdraw_offer(self, token: str, offer_id: str) -> Dict:
        """End the live listing for an offer; the offer itself remains."""
        return await self.request(f"/sell/inventory/v1/offer/{quote(offer_id, safe='')}/withdraw", token, method="POST")

    async def delete_offer(self, token: str, offer_id: str) -> Dict:
        """Remove an offer that was never published (ends the listing if it was)."""
        return await self.request(f"/sell/inventory/v1/offer/{quote(offer_id, safe='')}", token, method="DELETE")

    # -----------------------------------------------------------------
    # Taxonomy
    # -----------------------------------------------------------------

    async def get_category_suggestions(self, token: str, marketplace_id: str, query: str) -> List[Dict[str, str]]:
        """Leaf category suggestions for a free-text query, best first."""
        tree = await self.request(
            "/commerce/taxonomy/v1/get_default_category_tree_id", token, params={"marketplace_id": marketplace_id}
        )
        tree_id = tree.get("categoryTreeId") or "0"

        data = await self.request(
            f"/commerce/taxonomy/v1/category_tree/{tree_id}/get_category_suggestions", token, params={"q": query}
        )
        suggestions = []
        for entry in data.get("categorySuggestions", []) or []:
            category = entry.get("category") or {}
            if category.get("categoryId"):
                suggestions.append(
                    {"categoryId": str(category["categoryId"]), "categoryName": category.get("categoryName") or ""}
                )
        return suggestions
