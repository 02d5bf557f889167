from io import BytesIO
from urllib.parse import parse_qs, urlsplit

import pandas as pd
from conftest import FakeResponse, sign_in

from app.core.submission import tier_submissions

TIERS = "/api/commissions/tiers"
BULK = "/api/commissions/tiers/bulk"


def _flash(response, key):
    return parse_qs(urlsplit(response.headers["location"]).query).get(key, [None])[0]


def test_admin_dashboard_renders_rankings(client, backend):
    sign_in(client, "admin")
    backend.on("GET", "/api/dashboard/admin", FakeResponse(200, {"totalSales": 1500.5, "activeInfluencers": 4}))
    backend.on(
        "GET",
        "/api/dashboard/influencer-ranking",
        FakeResponse(200, {"ranking": [{"influencerId": "i1", "name": "Bia", "couponCode": "BIA10", "totalSales": 900}]}),
    )
    resp = client.get("/admin/dashboard")
    assert resp.status_code == 200
    assert "R$ 1.500,50" in resp.text
    assert "Bia" in resp.text
    assert "BIA10" in resp.text


def test_commissions_page_lists_tiers(client, backend):
    sign_in(client, "admin")
    backend.on(
        "GET",
        TIERS,
        FakeResponse(200, [
            {"_id": "t1", "minSalesValue": 0, "maxSalesValue": 999.99, "commissionPercentage": 5},
            {"_id": "t2", "minSalesValue": 1000, "commissionPercentage": 7},
        ]),
    )
    resp = client.get("/admin/commissions?applies_to=manager")
    assert resp.status_code == 200
    assert 'value="999.99"' in resp.text
    assert 'value="1000.00"' in resp.text
    assert backend.calls_to("GET", TIERS)[0].params == {"appliesTo": "manager"}


def test_add_tier_closes_previous_band(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/commissions",
        data={
            "applies_to": "influencer",
            "action": "add",
            "new_min_value": "1000",
            "min_sales_value": ["0"],
            "max_sales_value": [""],
            "commission_percentage": ["5"],
        },
    )
    assert resp.status_code == 200
    assert 'value="999.99"' in resp.text
    assert 'value="1000.00"' in resp.text
    assert backend.calls == []


def test_add_tier_rejects_low_minimum(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/commissions",
        data={
            "applies_to": "influencer",
            "action": "add",
            "new_min_value": "0",
            "min_sales_value": ["0"],
            "max_sales_value": [""],
            "commission_percentage": ["5"],
        },
    )
    assert resp.status_code == 400
    assert "O valor mínimo deve ser maior" in resp.text


def test_add_tier_rejects_out_of_range_minimum(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/commissions",
        data={
            "applies_to": "influencer",
            "action": "add",
            "new_min_value": "1e30",
            "min_sales_value": ["0"],
            "max_sales_value": [""],
            "commission_percentage": ["5"],
        },
    )
    assert resp.status_code == 400
    assert "insira um valor mínimo positivo" in resp.text
    assert backend.calls == []


def test_remove_middle_tier(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/commissions",
        data={
            "applies_to": "influencer",
            "action": "remove-1",
            "min_sales_value": ["0", "1000.00", "5000.00"],
            "max_sales_value": ["999.99", "4999.99", ""],
            "commission_percentage": ["5", "7", "10"],
        },
    )
    assert resp.status_code == 200
    assert 'value="4999.99"' in resp.text
    assert 'value="999.99"' not in resp.text


def test_save_tiers_posts_bulk_replacement(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/commissions",
        data={
            "applies_to": "manager",
            "action": "save",
            "min_sales_value": ["0", "1000.00"],
            "max_sales_value": ["999.99", ""],
            "commission_percentage": ["2", "3.5"],
        },
    )
    assert resp.status_code == 200
    assert "Faixas de comissão salvas com sucesso." in resp.text
    body = backend.calls_to("POST", BULK)[0].json
    assert body["tiers"] == [
        {"minSalesValue": 0.0, "maxSalesValue": 999.99, "commissionPercentage": 2.0, "appliesTo": "manager"},
        {"minSalesValue": 1000.0, "commissionPercentage": 3.5, "appliesTo": "manager"},
    ]


def test_invalid_tiers_are_not_sent(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/commissions",
        data={
            "applies_to": "influencer",
            "action": "save",
            "min_sales_value": ["0", "1000.00"],
            "max_sales_value": ["999.99", ""],
            "commission_percentage": ["5", "150"],
        },
    )
    assert resp.status_code == 400
    assert backend.calls_to("POST", BULK) == []


def test_concurrent_save_is_refused(client, backend):
    sign_in(client, "admin")
    with tier_submissions.hold(("test-token", "influencer")):
        resp = client.post(
            "/admin/commissions",
            data={
                "applies_to": "influencer",
                "action": "save",
                "min_sales_value": ["0"],
                "max_sales_value": [""],
                "commission_percentage": ["5"],
            },
        )
    assert resp.status_code == 409
    assert backend.calls_to("POST", BULK) == []


def test_create_user_requires_password(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/users",
        data={"name": "Nova", "email": "nova@example.com", "role": "manager"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert _flash(resp, "error") == "Senha é obrigatória para criar usuário."
    assert backend.calls == []


def test_create_influencer_user(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/users",
        data={
            "name": "Bia",
            "email": "bia@example.com",
            "role": "influencer",
            "password": "segredo",
            "manager_id": "m1",
            "coupon_code": "bia10",
            "is_active": "on",
        },
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert _flash(resp, "success") == "Bia foi criado com sucesso."
    body = backend.calls_to("POST", "/api/users")[0].json
    assert body["managerId"] == "m1"
    assert body["couponCode"] == "BIA10"
    assert body["isActive"] is True


def test_admin_cannot_delete_self(client, backend):
    user = sign_in(client, "admin")
    resp = client.post(f"/admin/users/{user['id']}/delete", follow_redirects=False)
    assert resp.status_code == 303
    assert _flash(resp, "error") == "Você não pode excluir sua própria conta."
    assert backend.calls == []


def test_generate_payments_checks_period(client, backend):
    sign_in(client, "admin")
    resp = client.post(
        "/admin/payments/generate",
        data={"start_date": "2024-05-31", "end_date": "2024-05-01"},
        follow_redirects=False,
    )
    assert _flash(resp, "error") == "A data inicial deve ser anterior à data final."
    assert backend.calls == []


def test_payments_page_renders(client, backend):
    sign_in(client, "admin")
    backend.on(
        "GET",
        "/api/commissions/payments",
        FakeResponse(200, {
            "payments": [{"_id": "p1", "user": {"name": "Bia"}, "amount": 250, "status": "pending"}],
            "page": 1,
            "pages": 1,
            "total": 1,
        }),
    )
    resp = client.get("/admin/payments")
    assert resp.status_code == 200
    assert "Bia" in resp.text
    assert "R$ 250,00" in resp.text


def test_sales_export_returns_workbook(client, backend):
    sign_in(client, "admin")
    backend.on(
        "GET",
        "/api/commissions/sales",
        FakeResponse(200, {"sales": [{"_id": "s1", "orderId": "1001", "saleValue": 120.5, "status": "processed"}]}),
    )
    resp = client.get("/admin/sales/export-xlsx?start_date=2024-05-01")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "attachment; filename=sales_" in resp.headers["content-disposition"]
    frame = pd.read_excel(BytesIO(resp.content), sheet_name="Sales")
    assert str(frame.loc[0, "order_id"]) == "1001"
    assert frame.loc[0, "amount"] == 120.5
    params = backend.calls_to("GET", "/api/commissions/sales")[0].params
    assert params["startDate"] == "2024-05-01"
    assert params["limit"] == 5000


def test_performance_page_renders(client, backend):
    sign_in(client, "admin")
    backend.on(
        "GET",
        "/api/dashboard/performance-timeline",
        FakeResponse(200, [{"month": "Jan", "managerSales": 100, "influencersSales": 300}]),
    )
    resp = client.get("/admin/performance?period=quarter")
    assert resp.status_code == 200
    assert "Jan" in resp.text
    overview_params = backend.calls_to("GET", "/api/dashboard/performance-overview")[0].params
    assert overview_params == {"period": "quarter", "userType": "all"}
