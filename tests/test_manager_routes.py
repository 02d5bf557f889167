from urllib.parse import parse_qs, urlsplit

from conftest import FakeResponse, sign_in

from app.routers.manager import COUPON_IN_USE_MESSAGE

COUPONS = "/api/coupons/influencer/i1"


def _flash(response, key):
    return parse_qs(urlsplit(response.headers["location"]).query).get(key, [None])[0]


def test_influencer_list_renders(client, backend):
    sign_in(client, "manager")
    backend.on(
        "GET",
        "/api/manager/influencers",
        FakeResponse(200, [{"id": "i1", "name": "Bia", "email": "bia@example.com", "coupon": "BIA10", "sales": 320}]),
    )
    resp = client.get("/manager/influencers")
    assert resp.status_code == 200
    assert "Bia" in resp.text
    assert "R$ 320,00" in resp.text


def test_manager_routes_refuse_influencers(client, backend):
    sign_in(client, "influencer")
    resp = client.get("/manager/influencers", headers={"accept": "application/json"})
    assert resp.status_code == 403
    assert resp.json() == {"detail": "Manager access required"}


def test_create_influencer_refuses_taken_coupon(client, backend):
    sign_in(client, "manager")
    backend.on("GET", "/api/commissions/check", FakeResponse(200, {"available": False}))
    resp = client.post(
        "/manager/influencers",
        data={"name": "Bia", "email": "bia@example.com", "phone": "11999990000", "coupon": "bia10"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert _flash(resp, "error") == COUPON_IN_USE_MESSAGE
    assert backend.calls_to("GET", "/api/commissions/check")[0].params == {"code": "BIA10"}
    assert backend.calls_to("POST", "/api/manager/influencers") == []


def test_create_influencer_sends_whatsapp_number(client, backend):
    sign_in(client, "manager")
    backend.on("GET", "/api/commissions/check", FakeResponse(200, {"available": True}))
    resp = client.post(
        "/manager/influencers",
        data={"name": "Bia", "email": "bia@example.com", "phone": "11999990000", "coupon": "bia10"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert _flash(resp, "success") == "Bia foi adicionado como influencer com o cupom BIA10."
    body = backend.calls_to("POST", "/api/manager/influencers")[0].json
    assert body == {"name": "Bia", "email": "bia@example.com", "whatsappNumber": "11999990000", "coupon": "BIA10"}


def test_notification_settings_checkboxes(client, backend):
    sign_in(client, "manager")
    resp = client.post(
        "/manager/influencers/i1/notifications",
        data={"welcome": "on", "report_frequency": "biweekly", "reminder_threshold": "5days"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    body = backend.calls_to("PUT", "/api/manager/influencers/i1/notifications")[0].json
    assert body == {
        "welcome": True,
        "report": False,
        "reminder": False,
        "reportFrequency": "biweekly",
        "reminderThreshold": "5days",
    }


def test_coupon_toggle_rolls_back_on_failure(client, backend):
    sign_in(client, "manager")
    backend.on("GET", COUPONS, FakeResponse(200, [{"_id": "c1", "code": "BIA10", "isActive": True}]))
    backend.on("PUT", "/api/coupons/c1", FakeResponse(500, {"message": "erro interno"}))

    resp = client.post("/manager/influencers/i1/coupons/c1/toggle")

    assert resp.status_code == 502
    assert "Não foi possível atualizar o status do cupom." in resp.text
    assert "Desativar" in resp.text
    assert backend.calls_to("PUT", "/api/coupons/c1")[0].json == {"isActive": False}


def test_coupon_toggle_success_shows_new_state(client, backend):
    sign_in(client, "manager")
    backend.on("GET", COUPONS, FakeResponse(200, [{"_id": "c1", "code": "BIA10", "isActive": True}]))
    backend.on("PUT", "/api/coupons/c1", FakeResponse(200, {"_id": "c1", "code": "BIA10", "isActive": False}))

    resp = client.post("/manager/influencers/i1/coupons/c1/toggle")

    assert resp.status_code == 200
    assert "desativado" in resp.text
    assert ">Ativar<" in resp.text
    assert len(backend.calls_to("GET", COUPONS)) == 1


def test_coupon_check_endpoint(client, backend):
    sign_in(client, "manager")
    backend.on("GET", "/api/commissions/check", FakeResponse(200, {"available": True}))
    resp = client.get("/manager/coupons/check?code=bia10")
    assert resp.json() == {"available": True}
    assert client.get("/manager/coupons/check?code=").json()["available"] is False
