import pytest
from pydantic import ValidationError

from app.schemas import InfluencerForm, NotificationSettingsForm, PasswordChangeForm, UserForm, first_error


def test_user_form_influencer_body():
    form = UserForm(
        name=" Ana ",
        email="ANA@Example.com",
        role="Influencer",
        password="",
        whatsapp_number="11999999999",
        manager_id="m1",
        coupon_code="ana10",
    )
    assert form.to_api() == {
        "name": "Ana",
        "email": "ana@example.com",
        "role": "influencer",
        "isActive": True,
        "whatsappNumber": "11999999999",
        "managerId": "m1",
        "couponCode": "ANA10",
    }


def test_user_form_manager_ignores_influencer_fields():
    form = UserForm(name="Marcos", email="m@example.com", role="manager", password="secret1", manager_id="m1")
    body = form.to_api()
    assert body["password"] == "secret1"
    assert "managerId" not in body


def test_user_form_rejects_bad_input():
    with pytest.raises(ValidationError) as exc:
        UserForm(name="Ana", email="not-an-email", role="admin")
    assert first_error(exc.value) == "Informe um email válido."
    with pytest.raises(ValidationError):
        UserForm(name="Ana", email="a@example.com", role="owner")
    with pytest.raises(ValidationError):
        UserForm(name="Ana", email="a@example.com", role="admin", password="123")


def test_influencer_form_phone_key_depends_on_operation():
    form = InfluencerForm(name="Ana", email="a@example.com", whatsapp_number="119", coupon="ana-10")
    assert form.coupon == "ANA-10"
    assert form.to_api(creating=True)["whatsappNumber"] == "119"
    assert form.to_api(creating=False)["phone"] == "119"


def test_influencer_form_rejects_bad_coupon():
    with pytest.raises(ValidationError):
        InfluencerForm(name="Ana", email="a@example.com", whatsapp_number="119", coupon="a b")


def test_notification_settings():
    form = NotificationSettingsForm(welcome=True, report_frequency="weekly", reminder_threshold="7days")
    assert form.to_api() == {
        "welcome": True,
        "report": False,
        "reminder": False,
        "reportFrequency": "weekly",
        "reminderThreshold": "7days",
    }
    with pytest.raises(ValidationError):
        NotificationSettingsForm(report_frequency="hourly")


def test_password_change_requires_match():
    with pytest.raises(ValidationError):
        PasswordChangeForm(current_password="old", new_password="abcdef", confirm_password="abcdeg")
    with pytest.raises(ValidationError):
        PasswordChangeForm(current_password="old", new_password="abc", confirm_password="abc")
