"""ZeptoMail implementation of EmailProvider.

Sends through the ZeptoMail HTTP API with an injected HttpClient; HTML
bodies are rendered from Jinja2 templates, plain-text bodies come from
infrastructure.email.content.
"""

import os
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.email import content
from infrastructure.http_client import HttpClient
from schemas.models.task import Task
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_url: str = "https://garden-planner.app",
        code_ttl_minutes: int = 10,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._code_ttl_minutes = code_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=payload, headers=headers
            )
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_send_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_verification_email(
        self, email: str, user_name: Optional[str], otp_code: str
    ) -> bool:
        template = self._jinja.get_template("verification.html")
        html_body = template.render(
            otp_code=otp_code,
            user_name=user_name,
            app_url=self._app_url,
            ttl_minutes=self._code_ttl_minutes,
        )
        text_body = content.verification_text(
            user_name, otp_code, self._code_ttl_minutes
        )
        return await self._send(
            email, user_name, "Verify your email - Garden Planner", html_body, text_body
        )

    async def send_task_reminder(self, email: str, task: Task) -> bool:
        template = self._jinja.get_template("task_reminder.html")
        html_body = template.render(
            task=task, icon=content.task_icon(task.type), app_url=self._app_url
        )
        return await self._send(
            email,
            None,
            content.reminder_subject(task),
            html_body,
            content.reminder_text(task),
        )

    async def send_garden_summary(
        self, email: str, summary: content.GardenSummary
    ) -> bool:
        template = self._jinja.get_template("garden_summary.html")
        html_body = template.render(
            summary=summary, icon_for=content.task_icon, app_url=self._app_url
        )
        return await self._send(
            email,
            None,
            content.summary_subject(summary),
            html_body,
            content.summary_text(summary),
        )

    async def send_test_notification(self, email: str) -> bool:
        template = self._jinja.get_template("test_notification.html")
        html_body = template.render(app_url=self._app_url)
        return await self._send(
            email, None, content.TEST_SUBJECT, html_body, content.TEST_TEXT
        )
