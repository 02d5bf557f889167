from io import BytesIO

import pandas as pd
from openpyxl import load_workbook

from app.exporting import export_payments_workbook, export_sales_workbook
from app.exporting.xlsx import PAYMENTS_COLUMNS, SALES_COLUMNS


def test_sales_workbook_flattens_references():
    content = export_sales_workbook([
        {
            "_id": "s1",
            "orderId": "A-1",
            "saleDate": "2024-05-01",
            "coupon": {"_id": "c1", "code": "BIA10"},
            "couponCode": "BIA10",
            "influencer": {"_id": "i1", "name": "Bia"},
            "manager": "m1",
            "saleValue": "199.90",
            "influencerCommission": 9.99,
            "managerCommission": None,
            "status": "processed",
        }
    ])
    frame = pd.read_excel(BytesIO(content), sheet_name="Sales")
    assert list(frame.columns) == SALES_COLUMNS
    row = frame.iloc[0]
    assert row["coupon"] == "BIA10"
    assert row["influencer"] == "Bia"
    assert row["manager"] == "m1"
    assert row["amount"] == 199.9
    assert pd.isna(row["manager_commission"])


def test_payments_workbook_has_headers_when_empty():
    content = export_payments_workbook([])
    workbook = load_workbook(BytesIO(content))
    sheet = workbook["Payments"]
    assert [cell.value for cell in sheet[1]] == PAYMENTS_COLUMNS
    assert sheet.max_row == 1


def test_payments_workbook_reads_nested_period():
    content = export_payments_workbook([
        {
            "_id": "p1",
            "user": {"name": "Bia", "email": "bia@example.com", "role": "influencer"},
            "period": {"startDate": "2024-05-01", "endDate": "2024-05-31"},
            "amount": 250,
            "status": "paid",
            "transactionId": "TX-9",
        }
    ])
    frame = pd.read_excel(BytesIO(content), sheet_name="Payments")
    row = frame.iloc[0]
    assert row["user"] == "Bia"
    assert row["period_start"] == "2024-05-01"
    assert row["transaction_id"] == "TX-9"
