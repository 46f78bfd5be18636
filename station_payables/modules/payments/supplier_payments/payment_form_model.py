# station_payables/modules/payments/supplier_payments/payment_form_model.py
"""
Turns raw form dicts into kwargs for PaymentSessionModel.set_details(...).
Pure mapping: aliases are resolved and simple types coerced. Business rules
(required fields, amount limits) are left to validation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from .payment_session import ApplicationMethod, PaymentMethod

# ───────────────────────────────────────────────────────────────────────────────
# 1) Form alias map → set_details keyword names
#    (only keys listed here are recognized; everything else is ignored)
# ───────────────────────────────────────────────────────────────────────────────
ALIASES: Dict[str, str] = {
    # canonical
    "payment_amount": "payment_amount",
    "payment_method": "payment_method",
    "station_id": "station_id",
    "shift_id": "shift_id",
    "bank_account_id": "bank_account_id",
    "application_method": "application_method",
    "description": "description",
    "reference": "reference",

    # ledger service / form field names
    "paymentAmount": "payment_amount",
    "paymentMethod": "payment_method",
    "stationId": "station_id",
    "shiftId": "shift_id",
    "bankAccountId": "bank_account_id",
    "applicationMethod": "application_method",
    "paymentReference": "reference",

    # common UI synonyms
    "amount": "payment_amount",
    "method": "payment_method",
    "station": "station_id",
    "station_wallet": "station_id",
    "shift": "shift_id",
    "bank_account": "bank_account_id",
    "allocation_method": "application_method",
    "notes": "description",
    "ref_no": "reference",
    "payment_reference": "reference",
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) Method canonicalizers
# ───────────────────────────────────────────────────────────────────────────────
_METHOD_CANON_MAP: Dict[str, PaymentMethod] = {
    "cash": PaymentMethod.CASH,
    "bank transfer": PaymentMethod.BANK_TRANSFER,
    "bank_transfer": PaymentMethod.BANK_TRANSFER,
    "bank": PaymentMethod.BANK_TRANSFER,
    "transfer": PaymentMethod.BANK_TRANSFER,
    "bt": PaymentMethod.BANK_TRANSFER,
}

_APPLICATION_CANON_MAP: Dict[str, ApplicationMethod] = {
    "oldest_first": ApplicationMethod.OLDEST_FIRST,
    "oldest first": ApplicationMethod.OLDEST_FIRST,
    "oldest": ApplicationMethod.OLDEST_FIRST,
    "auto": ApplicationMethod.OLDEST_FIRST,
    "manual": ApplicationMethod.MANUAL,
}


def _canon_method(s: Any) -> Union[PaymentMethod, str, None]:
    """
    PaymentMethod for a known spelling, None if empty.
    Unknown values are returned stripped and left for validation to reject.
    """
    if s is None:
        return None
    if isinstance(s, PaymentMethod):
        return s
    k = str(s).strip()
    if not k:
        return None
    return _METHOD_CANON_MAP.get(k.lower(), k)


def _canon_application(s: Any) -> Union[ApplicationMethod, str, None]:
    if s is None:
        return None
    if isinstance(s, ApplicationMethod):
        return s
    k = str(s).strip()
    if not k:
        return None
    return _APPLICATION_CANON_MAP.get(k.lower(), k)


def _text(v: Any) -> Optional[str]:
    return None if v is None else str(v).strip()


# ───────────────────────────────────────────────────────────────────────────────
# 3) normalize_form(data) → kwargs for PaymentSessionModel.set_details(...)
#    - map aliases
#    - canonicalize methods
#    - ids / text stripped; "" is kept so a field can be cleared
#    - missing keys are omitted (set_details leaves them unchanged)
# ───────────────────────────────────────────────────────────────────────────────
def normalize_form(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pure function. The amount is passed through untouched (string or number);
    set_details parses it and reports an unparseable value as a field error.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")

    tmp: Dict[str, Any] = {}
    for k, v in data.items():
        canon = ALIASES.get(k)
        if canon:
            tmp[canon] = v

    out: Dict[str, Any] = {}

    if tmp.get("payment_amount") is not None:
        v = tmp["payment_amount"]
        out["payment_amount"] = v.strip() if isinstance(v, str) else v

    if "payment_method" in tmp:
        m = _canon_method(tmp["payment_method"])
        if m is not None:
            out["payment_method"] = m

    if "application_method" in tmp:
        a = _canon_application(tmp["application_method"])
        if a is not None:
            out["application_method"] = a

    for key in ("station_id", "shift_id", "bank_account_id", "description", "reference"):
        if key in tmp:
            v = _text(tmp[key])
            if v is not None:
                out[key] = v

    return out
