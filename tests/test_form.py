"""Tests for the order form state, validation and submit flow."""

import httpx
import pytest
from fastapi.testclient import TestClient

from swag_order.form import FormStatus, REQUIRED_FIELDS, SwagOrderForm, initial_form_data, validate_order
from swag_order.main import create_app
from tests.conftest import ADA, SHEETS_URL, make_settings

ENDPOINT = "https://api.test/api/submit-swag-order"


def form_with(recorder, data=None, **kwargs) -> SwagOrderForm:
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    form = SwagOrderForm(ENDPOINT, client=client, **kwargs)
    for name, value in (data or {}).items():
        form.handle_change(name, value, "checkbox" if isinstance(value, bool) else "text")
    return form


# ---------------------------------------------------------------
# Validation
# ---------------------------------------------------------------
class TestValidation:
    def test_valid_order_has_no_errors(self):
        assert validate_order(dict(ADA)) == {}

    def test_empty_form_flags_every_required_field(self):
        errors = validate_order(initial_form_data())
        assert set(errors) == set(REQUIRED_FIELDS)
        assert "manager" not in errors

    @pytest.mark.parametrize("field", sorted(REQUIRED_FIELDS))
    def test_whitespace_only_counts_as_empty(self, field):
        errors = validate_order({**ADA, field: "   "})
        assert field in errors

    @pytest.mark.parametrize("email", ["ada", "ada@x", "ada x@y.com", "@x.com"])
    def test_bad_email_shape(self, email):
        assert "email" in validate_order({**ADA, "email": email})

    def test_same_choices_fail_on_second_choice(self):
        errors = validate_order({**ADA, "secondChoice": "T-Shirt"})
        assert set(errors) == {"secondChoice"}

    def test_manager_required_for_employees(self):
        errors = validate_order({**ADA, "isEmployee": True, "manager": " "})
        assert set(errors) == {"manager"}

    def test_manager_ignored_for_non_employees(self):
        assert validate_order({**ADA, "isEmployee": False, "manager": ""}) == {}
        assert validate_order({**ADA, "isEmployee": False, "manager": "Grace"}) == {}

    def test_size_outside_catalog(self):
        assert set(validate_order({**ADA, "hoodieSize": "XXXXL"})) == {"hoodieSize"}


# ---------------------------------------------------------------
# Field changes
# ---------------------------------------------------------------
class TestFieldChanges:
    def test_checkbox_stores_boolean(self, recorder):
        form = form_with(recorder)
        form.handle_change("isEmployee", "on", "checkbox")
        assert form.data["isEmployee"] is True
        form.handle_change("isEmployee", False, "checkbox")
        assert form.data["isEmployee"] is False

    def test_text_stores_string(self, recorder):
        form = form_with(recorder)
        form.handle_change("zipCode", 12345)
        assert form.data["zipCode"] == "12345"

    def test_change_clears_that_fields_error(self, recorder):
        form = form_with(recorder)
        form.validate()
        assert "name" in form.errors and "email" in form.errors
        form.handle_change("name", "Ada")
        assert "name" not in form.errors
        assert "email" in form.errors

    def test_unknown_field_is_rejected(self, recorder):
        form = form_with(recorder)
        with pytest.raises(KeyError):
            form.handle_change("favouriteColour", "blue")


# ---------------------------------------------------------------
# Submit
# ---------------------------------------------------------------
class TestSubmit:
    def test_invalid_form_sends_nothing(self, recorder):
        form = form_with(recorder, {"name": "Ada"})
        assert form.submit() == FormStatus.IDLE
        assert "email" in form.errors
        assert recorder.requests == []

    def test_success_resets_persistent_form(self, recorder):
        recorder.respond(ENDPOINT, json_body={"success": True, "message": "Order submitted successfully"})
        form = form_with(recorder, ADA)
        assert form.submit() == FormStatus.SUCCESS
        assert len(recorder.requests) == 1
        assert recorder.json_of(recorder.requests[0]) == ADA
        assert form.data == initial_form_data()
        assert form.is_submitting is False

    def test_success_shows_thank_you_view(self, recorder):
        recorder.respond(ENDPOINT, json_body={"success": True})
        form = form_with(recorder, ADA, thank_you_view=True)
        assert form.submit() == FormStatus.SUCCESS
        assert form.show_thank_you is True
        assert form.data["name"] == "Ada"
        form.start_new_order()
        assert form.show_thank_you is False
        assert form.status == FormStatus.IDLE
        assert form.data == initial_form_data()

    def test_server_error_message_is_surfaced_verbatim(self, recorder):
        recorder.respond(ENDPOINT, status_code=500, json_body={"success": False, "error": "Failed to submit to any service"})
        form = form_with(recorder, ADA)
        assert form.submit() == FormStatus.ERROR
        assert form.error_message == "Failed to submit to any service"
        assert form.data["name"] == "Ada"

    def test_non_json_error_body_is_surfaced(self, recorder):
        recorder.respond(ENDPOINT, status_code=502, text="Bad Gateway")
        form = form_with(recorder, ADA)
        assert form.submit() == FormStatus.ERROR
        assert form.error_message == "Bad Gateway"

    def test_success_false_without_message_uses_fallback(self, recorder):
        recorder.respond(ENDPOINT, json_body={"success": False})
        form = form_with(recorder, ADA)
        assert form.submit() == FormStatus.ERROR
        assert form.error_message == "Failed to submit order"

    def test_transport_error_is_surfaced(self, recorder):
        recorder.fail(ENDPOINT, "Name or service not known")
        form = form_with(recorder, ADA)
        assert form.submit() == FormStatus.ERROR
        assert form.error_message == "Name or service not known"
        assert form.is_submitting is False


class TestFormAgainstHandler:
    def test_round_trip_through_the_api(self, recorder):
        app = create_app(
            make_settings(GOOGLE_SHEETS_WEBHOOK_URL=SHEETS_URL),
            transport=httpx.MockTransport(recorder),
        )
        form = SwagOrderForm("/api/submit-swag-order", client=TestClient(app))
        for name, value in ADA.items():
            form.handle_change(name, value, "checkbox" if isinstance(value, bool) else "text")

        assert form.submit() == FormStatus.SUCCESS
        assert recorder.urls() == [SHEETS_URL]
        assert recorder.json_of(recorder.requests[0])["name"] == "Ada"

    def test_handler_failure_reaches_the_form(self, recorder):
        app = create_app(make_settings(), transport=httpx.MockTransport(recorder))
        form = SwagOrderForm("/api/submit-swag-order", client=TestClient(app))
        for name, value in ADA.items():
            form.handle_change(name, value, "checkbox" if isinstance(value, bool) else "text")

        assert form.submit() == FormStatus.ERROR
        assert form.error_message == "Failed to submit to any service"
