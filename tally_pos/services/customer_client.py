# tally_pos/services/customer_client.py
from typing import List
from urllib.parse import quote

import requests

from tally_pos.domain.schemas import Customer
from tally_pos.services.api_client import ApiClient
from tally_pos.utils.logging import get_logger
from tally_pos.utils.retry import http_retry

logger = get_logger(__name__)


class CustomerClient:
    def __init__(self, api: ApiClient):
        self.api = api

    @http_retry()
    def _fetch(self, path: str, params: dict | None = None):
        return self.api.get(path, params=params)

    def search(self, term: str = "") -> List[Customer]:
        term = term.strip()
        try:
            data = self._fetch("/customers", {"search": term} if term else None)
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch customers for '{term}': {e}")
            return []

        return [Customer.model_validate(c) for c in data]

    def get(self, customer_id: str) -> Customer | None:
        try:
            data = self._fetch(f"/customers/{quote(customer_id, safe='')}")
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch customer {customer_id}: {e}")
            return None

        return Customer.model_validate(data) if data else None
