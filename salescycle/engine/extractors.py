"""
First-non-empty field extraction for AccuLynx response shapes.

Each lookup is an ordered tuple of (name, extractor) pairs. The first
extractor returning a non-empty value wins; the names only exist for
debugging and tests.
"""
from __future__ import annotations

from typing import Any, Callable, Optional

Extractor = Callable[[Any], Any]


def _deep_get(data: Any, *path: str) -> Any:
    cur: Any = data
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _non_empty(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    return bool(value)


def first_non_empty(
    data: Any,
    extractors: tuple[tuple[str, Extractor], ...],
) -> tuple[Optional[str], Any]:
    """Return (extractor_name, value) for the first non-empty hit, else (None, None)."""
    for name, extract in extractors:
        value = extract(data)
        if _non_empty(value):
            return name, value
    return None, None


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def as_item_list(result: Any) -> list[Any]:
    """Normalise a list endpoint response: {"items": [...]}, a bare list, or nothing."""
    if isinstance(result, list):
        return result
    if isinstance(result, dict):
        items = result.get("items")
        if isinstance(items, list):
            return items
    return []


# ---------------------------------------------------------------------------
# Status name: /jobs/{id}/milestones/current?includes=status
# ---------------------------------------------------------------------------

STATUS_NAME_EXTRACTORS: tuple[tuple[str, Extractor], ...] = (
    ("statusName", lambda r: _deep_get(r, "statusName")),
    ("status.name", lambda r: _deep_get(r, "status", "name")),
    ("name", lambda r: _deep_get(r, "name")),
)


def extract_status_name(result: Any) -> str:
    _, value = first_non_empty(result, STATUS_NAME_EXTRACTORS)
    return str(value).strip() if value is not None else ""


# ---------------------------------------------------------------------------
# Representative: /jobs/{id}/representatives
# ---------------------------------------------------------------------------

def _rep_of_type(rep_type: str) -> Extractor:
    def extract(reps: list[Any]) -> Any:
        for rep in reps:
            if isinstance(rep, dict) and rep.get("type") == rep_type:
                return rep
        return None
    return extract


REPRESENTATIVE_EXTRACTORS: tuple[tuple[str, Extractor], ...] = (
    ("SalesOwner", _rep_of_type("SalesOwner")),
    ("CompanyRepresentative", _rep_of_type("CompanyRepresentative")),
    ("first", lambda reps: reps[0] if reps else None),
)


def pick_representative(result: Any) -> Optional[dict[str, Any]]:
    reps = as_item_list(result)
    _, rep = first_non_empty(reps, REPRESENTATIVE_EXTRACTORS)
    return rep if isinstance(rep, dict) else None


def representative_user_id(rep: Optional[dict[str, Any]]) -> Optional[str]:
    user_id = _deep_get(rep, "user", "id")
    if isinstance(user_id, (str, int)) and str(user_id).strip():
        return str(user_id)
    return None


# ---------------------------------------------------------------------------
# Invoice amount: /jobs/{id}/invoices
# ---------------------------------------------------------------------------

INVOICE_AMOUNT_EXTRACTORS: tuple[tuple[str, Extractor], ...] = (
    ("invoiceTotal", lambda inv: _deep_get(inv, "invoiceTotal")),
    ("amount", lambda inv: _deep_get(inv, "amount")),
    ("total", lambda inv: _deep_get(inv, "total")),
    ("invoiceAmount", lambda inv: _deep_get(inv, "invoiceAmount")),
)


def extract_invoice_amount(invoice: Any) -> float:
    _, value = first_non_empty(invoice, INVOICE_AMOUNT_EXTRACTORS)
    return _to_float(value)


# ---------------------------------------------------------------------------
# User display name: /users
# ---------------------------------------------------------------------------

def _joined_name(user: Any) -> str:
    parts = [_deep_get(user, "firstName"), _deep_get(user, "lastName")]
    return " ".join(str(p).strip() for p in parts if isinstance(p, str) and p.strip())


USER_NAME_EXTRACTORS: tuple[tuple[str, Extractor], ...] = (
    ("displayName", lambda u: _deep_get(u, "displayName")),
    ("firstName+lastName", _joined_name),
    ("name", lambda u: _deep_get(u, "name")),
)


def extract_user_name(user: Any) -> str:
    _, value = first_non_empty(user, USER_NAME_EXTRACTORS)
    return str(value).strip() if value is not None else ""


# ---------------------------------------------------------------------------
# Contract value: /jobs/{id}/financials and /financials/{id}
# ---------------------------------------------------------------------------

def contract_value(financials: Any) -> Optional[float]:
    """approvedJobValue when present (zero included), else None. Never negative."""
    value = _deep_get(financials, "approvedJobValue")
    if value is None:
        return None
    return max(_to_float(value), 0.0)


def financials_reference_id(financials: Any) -> Optional[str]:
    ref = _deep_get(financials, "id")
    if isinstance(ref, (str, int)) and str(ref).strip():
        return str(ref)
    return None
