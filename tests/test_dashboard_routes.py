from conftest import FakeResponse, sign_in


def test_root_redirects_by_role(client):
    sign_in(client, "manager")
    resp = client.get("/", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/manager/dashboard"


def test_manager_dashboard_uses_selected_series(client, backend):
    sign_in(client, "manager")
    backend.on(
        "GET",
        "/api/manager/sales",
        FakeResponse(200, {
            "totalSales": 5000,
            "totalCommission": 250,
            "growth": -3.5,
            "weekly": [{"date": "seg", "sales": 100, "commission": 5}],
            "monthly": [{"date": "jan", "sales": 2000, "commission": 100}],
        }),
    )
    resp = client.get("/manager/dashboard?period=monthly")
    assert resp.status_code == 200
    assert ">jan<" in resp.text
    assert ">seg<" not in resp.text
    assert "R$ 5.000,00" in resp.text


def test_influencer_dashboard_charts_own_sales(client, backend):
    user = sign_in(client, "influencer")
    backend.on("GET", "/api/dashboard/influencer", FakeResponse(200, {"totalSales": 42}))
    resp = client.get("/influencer/dashboard")
    assert resp.status_code == 200
    assert "R$ 42,00" in resp.text
    params = backend.calls_to("GET", "/api/dashboard/sales-chart")[0].params
    assert params == {"period": "month", "userId": user["id"]}


def test_dashboard_shows_backend_failure(client, backend, connection_error):
    sign_in(client, "influencer")
    backend.on("GET", "/api/dashboard/influencer", connection_error)
    resp = client.get("/influencer/dashboard")
    assert resp.status_code == 200
    assert "Erro ao conectar com o servidor" in resp.text


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
