# form.py

import re
from enum import Enum
from typing import Dict, Optional

import httpx

from swag_order.logger import log_error, log_info
from swag_order.schemas import MERCH_OPTIONS, SIZE_OPTIONS

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Always-required fields and the label used in their error message
REQUIRED_FIELDS = {
    "name": "Full name",
    "email": "Email address",
    "address": "Street address",
    "city": "City",
    "stateProvince": "State/Province",
    "zipCode": "ZIP/Postal code",
    "country": "Country",
    "tshirtSize": "T-Shirt size",
    "hoodieSize": "Hoodie size",
    "firstChoice": "First choice",
    "secondChoice": "Second choice",
}

CHECKBOX_FIELDS = {"isEmployee"}


class FormStatus(str, Enum):
    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


def initial_form_data() -> dict:
    """ A fresh, empty order record. """
    data = {field: "" for field in REQUIRED_FIELDS}
    data["isEmployee"] = False
    data["manager"] = ""
    return data


def validate_order(data: dict) -> Dict[str, str]:
    """
    Check an order record before it is sent.

    Returns a field -> message mapping; an empty mapping means the record can be submitted.
    """
    errors: Dict[str, str] = {}

    for field, label in REQUIRED_FIELDS.items():
        if not str(data.get(field) or "").strip():
            errors[field] = f"{label} is required"

    email = str(data.get("email") or "").strip()
    if "email" not in errors and not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"

    for field in ("tshirtSize", "hoodieSize"):
        if field not in errors and data[field] not in SIZE_OPTIONS:
            errors[field] = "Please select a valid size"

    for field in ("firstChoice", "secondChoice"):
        if field not in errors and data[field] not in MERCH_OPTIONS:
            errors[field] = "Please select a valid option"

    if data.get("isEmployee") and not str(data.get("manager") or "").strip():
        errors["manager"] = "Manager name is required for employees"

    if "firstChoice" not in errors and "secondChoice" not in errors and data["firstChoice"] == data["secondChoice"]:
        errors["secondChoice"] = "Second choice must be different from first choice"

    return errors


class SwagOrderForm:
    """
    In-memory state of the swag order form.

    Holds the field values, per-field validation errors and the submit status. A submit
    validates locally first and only then issues a single POST to the handler endpoint.

    With thank_you_view=True a successful submit switches to a thank-you view instead of
    clearing the form in place.
    """

    def __init__(self, endpoint: str, client: Optional[httpx.Client] = None, thank_you_view: bool = False, timeout: float = 30.0):
        self.endpoint = endpoint
        self.client = client
        self.thank_you_view = thank_you_view
        self.timeout = timeout

        self.data = initial_form_data()
        self.errors: Dict[str, str] = {}
        self.status = FormStatus.IDLE
        self.error_message = ""
        self.is_submitting = False
        self.show_thank_you = False

    def handle_change(self, name: str, value, field_type: str = "text"):
        """ Update one field; checkboxes store booleans, everything else strings. """
        if name not in self.data:
            raise KeyError(name)
        if field_type == "checkbox" or name in CHECKBOX_FIELDS:
            self.data[name] = bool(value)
        else:
            self.data[name] = "" if value is None else str(value)
        self.errors.pop(name, None)

    def validate(self) -> Dict[str, str]:
        self.errors = validate_order(self.data)
        return self.errors

    def reset(self):
        self.data = initial_form_data()
        self.errors = {}

    def start_new_order(self):
        """ Leave the thank-you view and start over with an empty form. """
        self.reset()
        self.show_thank_you = False
        self.status = FormStatus.IDLE
        self.error_message = ""

    def submit(self) -> FormStatus:
        """
        Validate and, if the record is valid, send it.

        A record with errors is never sent: status stays idle and self.errors says why.
        """
        self.status = FormStatus.IDLE
        self.error_message = ""
        if self.validate():
            return self.status

        self.is_submitting = True
        try:
            response = self._post()
        except httpx.HTTPError as e:
            log_error(f"Submit error: {e}")
            self._fail(str(e) or "Network error. Please try again.")
            return self.status
        finally:
            self.is_submitting = False

        try:
            result = response.json()
        except ValueError:
            result = {"error": response.text}
        if not isinstance(result, dict):
            result = {}

        if response.is_success and result.get("success"):
            log_info("Order submitted successfully")
            self.status = FormStatus.SUCCESS
            if self.thank_you_view:
                self.show_thank_you = True
            else:
                self.reset()
        else:
            self._fail(result.get("error") or result.get("message") or "Failed to submit order")
        return self.status

    def _post(self) -> httpx.Response:
        if self.client is not None:
            return self.client.post(self.endpoint, json=self.data)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.endpoint, json=self.data)

    def _fail(self, message: str):
        self.status = FormStatus.ERROR
        self.error_message = message
