# tally_pos/services/product_client.py
from dataclasses import dataclass, field
from typing import List
from urllib.parse import quote

import requests

from tally_pos.domain.schemas import Product
from tally_pos.services.api_client import ApiClient
from tally_pos.utils.logging import get_logger
from tally_pos.utils.retry import http_retry

logger = get_logger(__name__)


@dataclass
class LookupOutcome:
    """Result of a scan: a single product to add, or candidates to pick from."""

    match: Product | None = None
    candidates: List[Product] = field(default_factory=list)


class ProductClient:
    def __init__(self, api: ApiClient):
        self.api = api

    @http_retry()
    def _fetch_list(self, path: str, params: dict | None = None) -> list:
        return self.api.get(path, params=params)

    @http_retry()
    def _fetch_one(self, path: str) -> dict:
        return self.api.get(path)

    def search(self, term: str = "") -> List[Product]:
        term = term.strip()
        try:
            if term:
                data = self._fetch_list("/products", {"search": term, "isActive": "true"})
            else:
                data = self._fetch_list("/products/active")
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch products for '{term}': {e}")
            return []

        return [Product.model_validate(p) for p in data]

    def _fetch_product(self, path: str, what: str) -> Product | None:
        try:
            data = self._fetch_one(path)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            logger.warning(f"{what} lookup failed: {e}")
            return None
        except requests.RequestException as e:
            logger.warning(f"{what} lookup failed: {e}")
            return None

        return Product.model_validate(data) if data else None

    def get(self, product_id: str) -> Product | None:
        return self._fetch_product(f"/products/{quote(product_id, safe='')}", f"Product {product_id}")

    def get_by_barcode(self, barcode: str) -> Product | None:
        return self._fetch_product(
            f"/products/barcode/{quote(barcode.strip(), safe='')}", f"Barcode {barcode}"
        )

    def lookup(self, query: str) -> LookupOutcome:
        query = query.strip()
        if not query:
            return LookupOutcome()

        #exact barcode wins, then free-text
        product = self.get_by_barcode(query)
        if product:
            return LookupOutcome(match=product)

        results = self.search(query)
        if len(results) == 1:
            return LookupOutcome(match=results[0])
        return LookupOutcome(candidates=results)
