"""Shared fixtures: product/transaction factories and a fake HTTP transport."""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import pytest
import requests
from jose import jwt

from tally_pos.domain.schemas import Product, TransactionResult
from tally_pos.services.api_client import ApiClient

BASE_URL = "http://api.test"


def make_product(id="A", price="10000", stock=5, name=None, **extra) -> Product:
    return Product(
        id=id,
        name=name or f"Product {id}",
        sku=f"SKU-{id}",
        barcode=f"899{id}",
        selling_price=Decimal(price),
        stock=stock,
        **extra,
    )


def product_json(id="A", price="10000.00", stock=5, name=None) -> dict:
    return {
        "id": id,
        "categoryId": "cat-1",
        "sku": f"SKU-{id}",
        "barcode": f"899{id}",
        "name": name or f"Product {id}",
        "description": None,
        "purchasePrice": "7000.00",
        "sellingPrice": price,
        "stock": stock,
        "minStock": 1,
        "unit": "pcs",
        "imageUrl": None,
        "isActive": True,
        "category": {"id": "cat-1", "name": "Snacks"},
    }


def transaction_json(**overrides) -> dict:
    data = {
        "id": "trx-1",
        "transactionCode": "TRX-20240115-0001",
        "transactionDate": "2024-01-15T10:30:00.000Z",
        "userId": "user-1",
        "customerId": None,
        "subtotal": "45000.00",
        "discountAmount": "5000.00",
        "discountPercentage": "0.00",
        "taxAmount": "0.00",
        "totalAmount": "40000.00",
        "paymentMethod": "cash",
        "paymentAmount": "50000.00",
        "changeAmount": "10000.00",
        "notes": None,
        "status": "completed",
        "user": {"id": "user-1", "username": "siti", "fullName": "Siti Rahma"},
        "details": [
            {
                "id": "d-1",
                "productId": "A",
                "productName": "Indomie Goreng",
                "quantity": 2,
                "unitPrice": "10000.00",
                "discountAmount": "5000.00",
                "subtotal": "15000.00",
            },
            {
                "id": "d-2",
                "productId": "B",
                "productName": "Teh Botol",
                "quantity": 1,
                "unitPrice": "25000.00",
                "discountAmount": "0.00",
                "subtotal": "25000.00",
            },
        ],
    }
    data.update(overrides)
    return data


def make_result(**overrides) -> TransactionResult:
    return TransactionResult.model_validate(transaction_json(**overrides))


def make_token(role="kasir", username="siti", sub="user-1", exp=None) -> str:
    now = int(time.time())
    claims = {
        "sub": sub,
        "username": username,
        "role": role,
        "iat": now,
        "exp": exp if exp is not None else now + 3600,
    }
    return jwt.encode(claims, "test-secret", algorithm="HS256")


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


@dataclass
class Call:
    method: str
    path: str
    params: dict | None
    json: Any
    headers: dict


class FakeHttp:
    """Stands in for requests.Session; routes by (method, path)."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method: str, path: str, response):
        self.routes[(method, path)] = response
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(BASE_URL):]
        self.calls.append(Call(method, path, params, json, headers or {}))

        response = self.routes.get((method, path))
        if response is None:
            return FakeResponse(404, {"message": "Not Found"})
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response()
        return response

    def calls_to(self, method: str, path: str):
        return [c for c in self.calls if c.method == method and c.path == path]


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def api(http):
    return ApiClient(base_url=BASE_URL, timeout=1, http=http)
