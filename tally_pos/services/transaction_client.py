# tally_pos/services/transaction_client.py
from datetime import datetime
from typing import List
from urllib.parse import quote

import requests

from tally_pos.domain.errors import RemoteRejected, RemoteUnreachable
from tally_pos.domain.schemas import TransactionRequest, TransactionResult
from tally_pos.services.api_client import ApiClient, error_message
from tally_pos.utils.logging import get_logger
from tally_pos.utils.retry import http_retry

logger = get_logger(__name__)


class TransactionClient:
    def __init__(self, api: ApiClient):
        self.api = api

    def submit(self, request: TransactionRequest) -> TransactionResult:
        """
        POST /transactions.

        Not idempotent at the backend and deliberately not retried: a timeout
        after the backend committed would otherwise create a second sale.
        """
        payload = request.model_dump(mode="json", by_alias=True)
        logger.info(
            f"Submitting transaction: {len(request.items)} item(s), "
            f"method {request.payment_method.value}, paid {request.payment_amount}"
        )

        try:
            data = self.api.post("/transactions", json=payload)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"Transaction submission failed, backend unreachable: {e}")
            raise RemoteUnreachable(
                "Cannot reach the server; check the connection before retrying"
            ) from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            message = error_message(e, "Failed to process transaction")
            logger.error(f"Transaction rejected by backend ({status}): {message}")
            raise RemoteRejected(message, status) from e
        except requests.RequestException as e:
            logger.error(f"Transaction submission failed: {e}")
            raise RemoteUnreachable(str(e)) from e

        result = TransactionResult.model_validate(data)
        logger.info(f"Transaction {result.transaction_code} confirmed")
        return result

    @http_retry()
    def list(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        status: str | None = None,
    ) -> List[TransactionResult]:
        params = {}
        if user_id:
            params["userId"] = user_id
        if start:
            params["startDate"] = start.isoformat()
        if end:
            params["endDate"] = end.isoformat()
        if status:
            params["status"] = status

        data = self.api.get("/transactions", params=params or None)
        return [TransactionResult.model_validate(t) for t in data]

    @http_retry()
    def get(self, transaction_id: str) -> TransactionResult:
        data = self.api.get(f"/transactions/{quote(transaction_id, safe='')}")
        return TransactionResult.model_validate(data)
