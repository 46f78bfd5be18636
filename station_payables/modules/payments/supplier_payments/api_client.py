# station_payables/modules/payments/supplier_payments/api_client.py
"""
httpx adapter for the supplier-payments REST service.

Implements both collaborator contracts used by the engine:
  - LedgerReader.get_supplier_account(...)
  - PaymentGateway.process_cash_payment(...) / process_bank_payment(...)

GETs are idempotent and retried on transport errors (tenacity). POSTs that move
money are sent exactly once. Failures surface as LedgerReadError (reads) or
SubmissionError (writes), carrying the server message and field errors.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import httpx
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ....config import EngineConfig
from .errors import LedgerReadError, SubmissionError, field_errors_from_payload
from .ledger_view import SupplierAccount, supplier_account_from_api
from .payment_session import MethodOptions

logger = logging.getLogger(__name__)

_PREFIX = "/supplier-payments"


def _wire(value: Any) -> Any:
    """Plain JSON types for a (possibly read-only) payload; money goes out as numbers."""
    if isinstance(value, Mapping):
        return {str(k): _wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_wire(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _unwrap(body: Any) -> Any:
    """Strip the {"success": ..., "data": ...} envelope when present."""
    if isinstance(body, Mapping) and "data" in body:
        return body["data"]
    return body


def _rows(body: Any, *keys: str) -> List[Mapping[str, Any]]:
    data = _unwrap(body)
    if isinstance(data, Mapping):
        for k in keys:
            if isinstance(data.get(k), list):
                return list(data[k])
        return []
    return list(data) if isinstance(data, list) else []


class SupplierPaymentsClient:
    """Blocking client; one httpx.Client per instance. Use as a context manager or call close()."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        retry_wait=None,
        as_of: Optional[date] = None,
    ) -> None:
        self.config = config or EngineConfig()
        headers = {"Accept": "application/json"}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        self._client = httpx.Client(
            base_url=self.config.api_base_url,
            timeout=self.config.timeout_seconds,
            headers=headers,
            transport=transport,
        )
        self._retry_wait = retry_wait if retry_wait is not None else wait_exponential_jitter(initial=1, max=30)
        self._as_of = as_of

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SupplierPaymentsClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------ plumbing

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=self._retry_wait,
            stop=stop_after_attempt(self.config.read_retry_attempts),
            reraise=True,
        )

    def _get_once(self, path: str, params: Optional[Mapping[str, Any]]) -> httpx.Response:
        return self._client.get(path, params=params)

    def _get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        try:
            response = self._retrying()(self._get_once, path, params)
        except httpx.HTTPError as e:
            logger.warning("GET %s failed after %d attempt(s): %s", path, self.config.read_retry_attempts, e)
            raise LedgerReadError(f"Could not reach the supplier payments service: {e}", original=e) from e

        body = self._json(response)
        if response.is_error:
            message = self._message(body, response)
            logger.warning("GET %s -> %s: %s", path, response.status_code, message)
            raise LedgerReadError(message, status_code=response.status_code)
        if body is None:
            raise LedgerReadError(f"Unreadable response from {path}", status_code=response.status_code)
        return body

    def _post(self, path: str, payload: Mapping[str, Any]) -> Any:
        try:
            response = self._client.post(
                path,
                content=json.dumps(_wire(payload)),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning("POST %s failed: %s", path, e)
            raise SubmissionError(f"Could not reach the supplier payments service: {e}", original=e) from e

        body = self._json(response)
        if response.is_error:
            message = self._message(body, response)
            errors = field_errors_from_payload(body.get("errors")) if isinstance(body, Mapping) else []
            logger.warning("POST %s -> %s: %s", path, response.status_code, message)
            raise SubmissionError(message, status_code=response.status_code, field_errors=errors)
        if body is None:
            # 2xx without JSON: the payment may still have gone through
            logger.warning("POST %s -> %s with an unreadable body", path, response.status_code)
        return body

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _message(body: Any, response: httpx.Response) -> str:
        if isinstance(body, Mapping) and body.get("message"):
            return str(body["message"])
        return f"API request failed: {response.status_code}"

    # ------------------------------------------------------------------ reads

    def health_check(self) -> Mapping[str, Any]:
        return self._get(f"{_PREFIX}/health")

    def list_supplier_accounts(self, **query: Any) -> List[SupplierAccount]:
        body = self._get(f"{_PREFIX}/accounts", params=query or None)
        return [supplier_account_from_api(r, as_of=self._as_of) for r in _rows(body, "accounts", "items")]

    def get_supplier_account(self, supplier_account_id: str) -> SupplierAccount:
        """LedgerReader contract: a fresh snapshot of one account with its open invoices."""
        body = self._get(f"{_PREFIX}/accounts/{supplier_account_id}")
        data = _unwrap(body)
        if isinstance(data, Mapping) and isinstance(data.get("account"), Mapping):
            data = data["account"]
        if not isinstance(data, Mapping):
            raise LedgerReadError(f"Supplier account {supplier_account_id} not found")
        try:
            return supplier_account_from_api(data, as_of=self._as_of)
        except ValueError as e:
            raise LedgerReadError(f"Malformed supplier account {supplier_account_id}: {e}", original=e) from e

    def get_supplier_payment_journey(self, supplier_account_id: str) -> Mapping[str, Any]:
        return _unwrap(self._get(f"{_PREFIX}/accounts/{supplier_account_id}/journey"))

    def get_supplier_transactions(self, **query: Any) -> List[Mapping[str, Any]]:
        return _rows(self._get(f"{_PREFIX}/transactions", params=query or None), "transactions", "items")

    def get_payment_allocations(self, **query: Any) -> List[Mapping[str, Any]]:
        return _rows(self._get(f"{_PREFIX}/allocations", params=query or None), "allocations", "items")

    def get_account_transfers(self, **query: Any) -> List[Mapping[str, Any]]:
        return _rows(self._get(f"{_PREFIX}/transfers", params=query or None), "transfers", "items")

    def get_payment_methods(self) -> List[Mapping[str, Any]]:
        return _rows(self._get(f"{_PREFIX}/payment-methods"), "paymentMethods", "methods")

    def get_bank_accounts(self) -> List[Mapping[str, Any]]:
        return _rows(self._get(f"{_PREFIX}/bank-accounts"), "bankAccounts", "accounts")

    def get_station_wallets(self, station_id: Optional[str] = None) -> List[Mapping[str, Any]]:
        params = {"stationId": station_id} if station_id else None
        return _rows(self._get(f"{_PREFIX}/station-wallets", params=params), "stationWallets", "wallets")

    def load_method_options(self, station_id: Optional[str] = None) -> MethodOptions:
        """Known bank accounts and station wallets, for existence checks in validation."""
        banks = frozenset(str(r["id"]) for r in self.get_bank_accounts() if isinstance(r, Mapping) and r.get("id"))
        stations: set = set()
        for r in self.get_station_wallets(station_id):
            if not isinstance(r, Mapping):
                continue
            sid = r.get("stationId") or r.get("id")
            if sid:
                stations.add(str(sid))
        return MethodOptions(bank_account_ids=banks, station_ids=frozenset(stations))

    # ------------------------------------------------------------------ writes

    def process_cash_payment(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._post(f"{_PREFIX}/payments/cash", payload)

    def process_bank_payment(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._post(f"{_PREFIX}/payments/bank", payload)

    def validate_allocations(self, allocations, total_payment_amount) -> Dict[str, Any]:
        """Server-side allocation check; advisory only, nothing is moved."""
        body = self._post(f"{_PREFIX}/allocations/validate", {
            "allocations": [a.to_payload() if hasattr(a, "to_payload") else a for a in allocations],
            "totalPaymentAmount": total_payment_amount,
        })
        data = _unwrap(body)
        return dict(data) if isinstance(data, Mapping) else {"result": data}
