# config.py

from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service configuration loaded from the environment and an optional .env file.

    A sink whose destination or credentials are missing is disabled.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Spreadsheet sink
    GOOGLE_SHEETS_WEBHOOK_URL: Optional[str] = None
    SHEETS_PAYLOAD_FORMAT: Literal["json", "form"] = "json"

    # Email sink
    RESEND_API_KEY: Optional[str] = None
    NOTIFICATION_EMAILS: Optional[str] = None
    EMAIL_FROM: str = "Swag Store <noreply@resend.dev>"
    EMAIL_API_URL: str = "https://api.resend.com/emails"

    # Chat sink
    CHAT_WEBHOOK_URL: Optional[str] = None

    # Dispatch
    SINK_TIMEOUT_SECONDS: float = 10.0
    PARALLEL_SINKS: bool = False

    # HTTP surface
    SUBMIT_PATH: str = "/api/submit-swag-order"
    LOG_LEVEL: str = "INFO"

    @property
    def notification_recipients(self) -> List[str]:
        """ NOTIFICATION_EMAILS split on commas, blanks dropped. """
        if not self.NOTIFICATION_EMAILS:
            return []
        return [email.strip() for email in self.NOTIFICATION_EMAILS.split(",") if email.strip()]

    def environment_check(self) -> dict:
        """ Which destinations are set, without their values. """
        return {
            "Google Sheets URL": bool(self.GOOGLE_SHEETS_WEBHOOK_URL),
            "Resend API Key": bool(self.RESEND_API_KEY),
            "Notification Emails": bool(self.notification_recipients),
            "Chat Webhook URL": bool(self.CHAT_WEBHOOK_URL),
        }
