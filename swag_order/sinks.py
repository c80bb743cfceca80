# sinks.py

import json
from abc import ABC, abstractmethod
from html import escape
from typing import Any, Dict, List

import httpx

from swag_order.config import Settings
from swag_order.schemas import OrderSubmission


class SinkError(Exception):
    """ Base class for notification sink failures. """


class SinkNotConfigured(SinkError):
    """ The sink's destination or credentials are absent; the sink is skipped. """

    def __init__(self, sink: str, reason: str):
        self.sink = sink
        self.reason = reason
        super().__init__(f"{sink} sink not configured: {reason}")


class SinkDeliveryError(SinkError):
    """ The sink answered with a non-success status. """

    def __init__(self, sink: str, status_code: int, body: str):
        self.sink = sink
        self.status_code = status_code
        self.body = body
        super().__init__(f"{sink} sink error: {status_code} - {body}")


def parse_response_body(text: str) -> Any:
    """ Sinks may answer with JSON or with plain text/HTML; carry raw text when it is not JSON. """
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return {"message": text}


def format_submitted_at(order: OrderSubmission) -> str:
    if order.submitted_at is None:
        return ""
    return order.submitted_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


class Sink(ABC):
    """
    One notification destination reached over HTTP.

    Subclasses say whether they are configured and how to build their outbound request;
    delivery, status checking and response parsing are shared.
    """

    name: str = ""

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    def missing_configuration(self) -> str:
        """ Reason the sink cannot run, or an empty string when it is configured. """

    @abstractmethod
    def build_request(self, order: OrderSubmission) -> Dict[str, Any]:
        """ Keyword arguments for httpx.AsyncClient.post. """

    def is_configured(self) -> bool:
        return not self.missing_configuration()

    async def deliver(self, order: OrderSubmission, client: httpx.AsyncClient) -> Any:
        """
        Send one order to this sink.

        Raises SinkNotConfigured when the sink is disabled, SinkDeliveryError on a non-2xx
        answer; transport failures propagate as httpx.HTTPError.
        """
        reason = self.missing_configuration()
        if reason:
            raise SinkNotConfigured(self.name, reason)

        response = await client.post(**self.build_request(order))
        body = response.text
        if not response.is_success:
            raise SinkDeliveryError(self.name, response.status_code, body)
        return parse_response_body(body)


class SheetsSink(Sink):
    """ Appends the submission to a spreadsheet through its webhook. """

    name = "sheets"

    def missing_configuration(self) -> str:
        if not self.settings.GOOGLE_SHEETS_WEBHOOK_URL:
            return "Google Sheets webhook URL not set"
        return ""

    def build_request(self, order: OrderSubmission) -> Dict[str, Any]:
        payload = order.to_wire()
        request: Dict[str, Any] = {"url": self.settings.GOOGLE_SHEETS_WEBHOOK_URL}
        if self.settings.SHEETS_PAYLOAD_FORMAT == "form":
            # URL-encoded, every value a string
            request["data"] = {key: form_value(value) for key, value in payload.items()}
        else:
            request["json"] = payload
        return request


def form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


class EmailSink(Sink):
    """ Sends an order notification email through a Resend-compatible API. """

    name = "email"

    def missing_configuration(self) -> str:
        if not self.settings.RESEND_API_KEY:
            return "Resend API key not set"
        if not self.settings.notification_recipients:
            return "notification emails not set"
        return ""

    def build_request(self, order: OrderSubmission) -> Dict[str, Any]:
        return {
            "url": self.settings.EMAIL_API_URL,
            "headers": {"Authorization": f"Bearer {self.settings.RESEND_API_KEY}"},
            "json": {
                "from": self.settings.EMAIL_FROM,
                "to": self.recipients,
                "subject": f"New Swag Order from {order.name}",
                "html": render_email_html(order),
                "text": render_order_text(order),
            },
        }

    @property
    def recipients(self) -> List[str]:
        return self.settings.notification_recipients


def render_email_html(order: OrderSubmission) -> str:
    e = escape
    manager = f"<p><strong>Manager:</strong> {e(order.manager)}</p>\n" if order.is_employee else ""
    return (
        "<h2>New Swag Order Submitted</h2>\n"
        f"<p><strong>Submitted:</strong> {e(format_submitted_at(order))}</p>\n"
        "<h3>Personal Information</h3>\n"
        f"<p><strong>Name:</strong> {e(order.name)}</p>\n"
        f"<p><strong>Email:</strong> {e(order.email)}</p>\n"
        "<h3>Shipping Address</h3>\n"
        f"<p><strong>Address:</strong> {e(order.address)}</p>\n"
        f"<p><strong>City:</strong> {e(order.city)}</p>\n"
        f"<p><strong>State/Province:</strong> {e(order.state_province)}</p>\n"
        f"<p><strong>ZIP/Postal Code:</strong> {e(order.zip_code)}</p>\n"
        f"<p><strong>Country:</strong> {e(order.country)}</p>\n"
        "<h3>Sizing</h3>\n"
        f"<p><strong>T-Shirt Size:</strong> {e(order.tshirt_size)}</p>\n"
        f"<p><strong>Hoodie Size:</strong> {e(order.hoodie_size)}</p>\n"
        "<h3>Employment</h3>\n"
        f"<p><strong>Employee:</strong> {'Yes' if order.is_employee else 'No'}</p>\n"
        f"{manager}"
        "<h3>Merchandise Preferences</h3>\n"
        f"<p><strong>First Choice:</strong> {e(order.first_choice)}</p>\n"
        f"<p><strong>Second Choice:</strong> {e(order.second_choice)}</p>\n"
    )


def render_order_text(order: OrderSubmission) -> str:
    lines = [
        "Someone submitted a swag order!",
        "",
        f"Name: {order.name}",
        f"Email: {order.email}",
        f"Ship to: {order.address}, {order.city}, {order.state_province} {order.zip_code}, {order.country}",
        f"Sizes: T-Shirt {order.tshirt_size}, Hoodie {order.hoodie_size}",
        f"Employee: {'Yes' if order.is_employee else 'No'}",
    ]
    if order.is_employee:
        lines.append(f"Manager: {order.manager}")
    lines += [
        f"First Choice: {order.first_choice}",
        f"Second Choice: {order.second_choice}",
    ]
    return "\n".join(lines)


class ChatSink(Sink):
    """ Posts a short message to a chat webhook (Discord-style {"content": ...} body). """

    name = "chat"

    def missing_configuration(self) -> str:
        if not self.settings.CHAT_WEBHOOK_URL:
            return "chat webhook URL not set"
        return ""

    def build_request(self, order: OrderSubmission) -> Dict[str, Any]:
        return {
            "url": self.settings.CHAT_WEBHOOK_URL,
            "json": {"content": render_chat_message(order)},
        }


def render_chat_message(order: OrderSubmission) -> str:
    return (
        f"**New swag order** from {order.name} ({order.email})\n"
        f"First choice: {order.first_choice} / Second choice: {order.second_choice}\n"
        f"T-Shirt {order.tshirt_size}, Hoodie {order.hoodie_size}\n"
        f"Ship to {order.city}, {order.state_province}, {order.country}"
    )


SINK_CLASSES = (SheetsSink, EmailSink, ChatSink)


def build_sinks(settings: Settings) -> List[Sink]:
    """ Every known sink in delivery order; unconfigured ones are skipped at dispatch time. """
    return [cls(settings) for cls in SINK_CLASSES]
