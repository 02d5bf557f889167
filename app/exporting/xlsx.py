from __future__ import annotations

from io import BytesIO
from typing import Any, Iterable, Mapping

import pandas as pd

SALES_COLUMNS = [
    "sale_id",
    "order_id",
    "sale_date",
    "coupon",
    "influencer",
    "manager",
    "amount",
    "influencer_commission",
    "manager_commission",
    "status",
]
PAYMENTS_COLUMNS = [
    "payment_id",
    "user",
    "email",
    "role",
    "period_start",
    "period_end",
    "amount",
    "status",
    "payment_date",
    "transaction_id",
]


def _name(value: Any) -> Any:
    """Populated references come back as objects; plain ids as strings."""
    if isinstance(value, Mapping):
        return value.get("name") or value.get("_id")
    return value


def _money(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _sales_df(sales: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    rows = []
    for item in sales:
        rows.append(
            {
                "sale_id": item.get("_id"),
                "order_id": item.get("orderId"),
                "sale_date": item.get("saleDate") or item.get("createdAt"),
                "coupon": item.get("couponCode") or _name(item.get("coupon")),
                "influencer": _name(item.get("influencer")),
                "manager": _name(item.get("manager")),
                "amount": _money(item.get("saleValue") if "saleValue" in item else item.get("amount")),
                "influencer_commission": _money(item.get("influencerCommission")),
                "manager_commission": _money(item.get("managerCommission")),
                "status": item.get("status"),
            }
        )
    return pd.DataFrame(rows, columns=SALES_COLUMNS)


def _payments_df(payments: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    rows = []
    for item in payments:
        user = item.get("user") if isinstance(item.get("user"), Mapping) else {}
        period = item.get("period") if isinstance(item.get("period"), Mapping) else {}
        rows.append(
            {
                "payment_id": item.get("_id"),
                "user": user.get("name") or item.get("user"),
                "email": user.get("email"),
                "role": user.get("role") or item.get("userRole"),
                "period_start": period.get("startDate") or item.get("periodStart"),
                "period_end": period.get("endDate") or item.get("periodEnd"),
                "amount": _money(item.get("amount")),
                "status": item.get("status"),
                "payment_date": item.get("paymentDate"),
                "transaction_id": item.get("transactionId"),
            }
        )
    return pd.DataFrame(rows, columns=PAYMENTS_COLUMNS)


def _workbook(sheets: Mapping[str, pd.DataFrame]) -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet_name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
    buffer.seek(0)
    return buffer.getvalue()


def export_sales_workbook(sales: Iterable[Mapping[str, Any]]) -> bytes:
    """Return an XLSX workbook (bytes) with one row per sale."""
    return _workbook({"Sales": _sales_df(sales)})


def export_payments_workbook(payments: Iterable[Mapping[str, Any]]) -> bytes:
    """Return an XLSX workbook (bytes) with one row per commission payment."""
    return _workbook({"Payments": _payments_df(payments)})
