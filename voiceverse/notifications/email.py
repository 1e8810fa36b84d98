"""
Email Notifications

Transactional email for VoiceVerse: password resets, subscription
lifecycle messages and contact form notifications. Messages are sent
over SMTP with aiosmtplib; without credentials they are logged and
skipped.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

import aiosmtplib


logger = logging.getLogger(__name__)


PLAN_NAMES = {"PRO": "Pro", "PREMIUM": "Premium"}


@dataclass
class EmailConfig:
    """SMTP configuration."""

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    from_address: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True

    @classmethod
    def from_env(cls) -> "EmailConfig":
        return cls(
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("SMTP_PORT", "465")),
            from_address=os.getenv("EMAIL_FROM"),
            password=os.getenv("EMAIL_PASS"),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.from_address and self.password)


def _plan_name(plan_type: Optional[str]) -> str:
    return PLAN_NAMES.get(plan_type or "", "Enterprise")


def _billing_cycle(billing_period: Optional[str]) -> str:
    return "Yearly" if billing_period == "YEARLY" else "Monthly"


def _format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%B %d, %Y").replace(" 0", " ")


def _format_amount(amount: float, currency: Optional[str]) -> str:
    currency = (currency or "usd").upper()
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency}"


def _meeting_label(event_type: Optional[str]) -> str:
    return "Video Call" if event_type == "video_call" else "Demo"


def _layout(title: str, body: str, footer: str) -> str:
    """Wrap a message body in the shared VoiceVerse template."""
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">
      <div style="text-align: center; margin-bottom: 20px;">
        <h1 style="color: #6366f1;">VoiceVerse</h1>
      </div>
      <div style="background-color: #f9fafb; padding: 20px; border-radius: 5px; margin-bottom: 20px;">
        <h2 style="margin-top: 0; color: #111827;">{title}</h2>
        {body}
      </div>
      <div style="color: #6b7280; font-size: 14px; text-align: center;">
        <p>{footer}</p>
        <p>&copy; {datetime.utcnow().year} VoiceVerse. All rights reserved.</p>
      </div>
    </div>
    """


def _button(url: str, label: str) -> str:
    return (
        '<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{url}" style="background-color: #6366f1; color: white; padding: 12px 24px; '
        f'text-decoration: none; border-radius: 5px; font-weight: bold; display: inline-block;">{label}</a>'
        "</div>"
    )


class EmailService:
    """Sends VoiceVerse transactional email."""

    def __init__(self, config: Optional[EmailConfig] = None):
        self.config = config or EmailConfig.from_env()

    async def send(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML message.

        Returns False when SMTP is not configured or delivery failed.
        """
        if not self.config.is_configured:
            logger.info(f"Email not configured, skipping '{subject}' to {to}")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"VoiceVerse <{self.config.from_address}>"
        message["To"] = to
        message.attach(MIMEText(html, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=self.config.from_address,
                password=self.config.password,
                use_tls=self.config.use_tls,
            )
            logger.info(f"Email sent: '{subject}' to {to}")
            return True
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email delivery failed for '{subject}' to {to}: {e}")
            return False

    async def send_password_reset(self, to: str, reset_link: str) -> bool:
        body = f"""
        <p style="color: #4b5563;">We received a request to reset your password. If you didn't make this request, you can safely ignore this email.</p>
        <p style="color: #4b5563;">To reset your password, click the button below:</p>
        {_button(reset_link, "Reset Password")}
        <p style="color: #4b5563;">Or copy and paste this link into your browser:</p>
        <p style="background-color: #e5e7eb; padding: 10px; border-radius: 3px; word-break: break-all; font-size: 14px;">{reset_link}</p>
        <p style="color: #4b5563; margin-bottom: 0;">This link will expire in 1 hour for security reasons.</p>
        """
        html = _layout(
            "Password Reset Request",
            body,
            "If you have any questions, please contact our support team.",
        )
        return await self.send(to, "VoiceVerse - Password Reset", html)

    async def send_subscription_confirmation(self, to: str, subscription: Any) -> bool:
        plan_name = _plan_name(subscription.plan_type)
        body = f"""
        <p style="color: #4b5563;">Thank you for subscribing to VoiceVerse {plan_name}. Your subscription is now active.</p>
        <p style="color: #4b5563;"><strong>Plan:</strong> {plan_name}</p>
        <p style="color: #4b5563;"><strong>Billing cycle:</strong> {_billing_cycle(subscription.billing_period)}</p>
        <p style="color: #4b5563;"><strong>Next billing date:</strong> {_format_date(subscription.current_period_end)}</p>
        """
        html = _layout(
            f"Welcome to VoiceVerse {plan_name}!",
            body,
            "If you have any questions about your subscription, please contact our support team.",
        )
        return await self.send(to, f"Welcome to VoiceVerse {plan_name}!", html)

    async def send_payment_receipt(self, to: str, invoice: Any, subscription: Any) -> bool:
        body = f"""
        <p style="color: #4b5563;">We received your payment. Thank you!</p>
        <p style="color: #4b5563;"><strong>Amount:</strong> {_format_amount(invoice.amount, invoice.currency)}</p>
        <p style="color: #4b5563;"><strong>Date:</strong> {_format_date(invoice.created_at)}</p>
        <p style="color: #4b5563;"><strong>Plan:</strong> {_plan_name(subscription.plan_type)} ({_billing_cycle(subscription.billing_period)})</p>
        {_button(invoice.invoice_url, "View Invoice") if invoice.invoice_url else ""}
        """
        html = _layout(
            "Payment Receipt",
            body,
            "If you have any questions about this payment, please contact our support team.",
        )
        return await self.send(to, "VoiceVerse - Payment Receipt", html)

    async def send_payment_failed(self, to: str, invoice: Any, subscription: Any) -> bool:
        body = f"""
        <p style="color: #4b5563;">We were unable to process your payment of {_format_amount(invoice.amount, invoice.currency)} for your VoiceVerse {_plan_name(subscription.plan_type)} subscription.</p>
        <p style="color: #4b5563;">Please update your payment method to keep access to your subscription features.</p>
        {_button(invoice.invoice_url, "Update Payment") if invoice.invoice_url else ""}
        """
        html = _layout(
            "Payment Failed",
            body,
            "If you have any questions, please contact our support team.",
        )
        return await self.send(to, "VoiceVerse - Payment Failed", html)

    async def send_subscription_canceled(self, to: str, subscription: Any) -> bool:
        body = f"""
        <p style="color: #4b5563;">Your VoiceVerse {_plan_name(subscription.plan_type)} subscription has been cancelled.</p>
        <p style="color: #4b5563;">You will keep access until {_format_date(subscription.current_period_end)}.</p>
        <p style="color: #4b5563;">You can reactivate your subscription at any time before then.</p>
        """
        html = _layout(
            "Subscription Cancelled",
            body,
            "We're sorry to see you go. If you have feedback, please contact our support team.",
        )
        return await self.send(to, "VoiceVerse - Subscription Cancelled", html)

    async def send_contact_notification(
        self,
        to: str,
        contact: Dict[str, Any],
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> bool:
        files = "".join(
            f"<li>{item.get('originalName') or item.get('filename')}</li>"
            for item in attachments or []
        )
        body = f"""
        <p style="color: #4b5563;"><strong>From:</strong> {contact['name']} &lt;{contact['email']}&gt;</p>
        <p style="color: #4b5563;"><strong>Type:</strong> {contact.get('type', 'GENERAL')}</p>
        <p style="color: #4b5563;"><strong>Priority:</strong> {contact.get('priority', 'MEDIUM')}</p>
        <p style="color: #4b5563;"><strong>Subject:</strong> {contact['subject']}</p>
        <p style="color: #4b5563; white-space: pre-wrap;">{contact['message']}</p>
        {f'<p style="color: #4b5563;"><strong>Attachments:</strong></p><ul>{files}</ul>' if files else ""}
        """
        html = _layout("New Contact Message", body, "Sent from the VoiceVerse contact form.")
        return await self.send(to, f"[VoiceVerse Contact] {contact['subject']}", html)

    async def send_meeting_confirmation(self, to: str, event: Any) -> bool:
        label = _meeting_label(event.event_type)
        body = f"""
        <p style="color: #4b5563;">Thank you for scheduling a {label.lower()} with VoiceVerse.</p>
        <div style="background-color: #e5e7eb; padding: 15px; border-radius: 5px; margin: 20px 0;">
          <h3 style="margin-top: 0; color: #111827;">Event Details</h3>
          <p style="margin: 5px 0; color: #4b5563;"><strong>Event:</strong> {event.event_name}</p>
          <p style="margin: 5px 0; color: #4b5563;"><strong>Date:</strong> {_format_date(event.start_time)}</p>
          <p style="margin: 5px 0; color: #4b5563;"><strong>Time:</strong> {event.start_time:%H:%M} - {event.end_time:%H:%M} UTC</p>
        </div>
        <p style="color: #4b5563;">You'll receive a calendar invitation with all the details. If you need to reschedule, please use the link in your confirmation email from Calendly.</p>
        """
        html = _layout(
            f"Your {label} is Scheduled!",
            body,
            "If you have any questions, please contact our support team at support@voiceverse.app.",
        )
        return await self.send(to, f"Your VoiceVerse {label} is Confirmed", html)

    async def send_meeting_notification(self, to: str, event: Any) -> bool:
        html = (
            f"<p>A new {event.event_type} has been scheduled by {event.invitee_name} "
            f"({event.invitee_email}) for {_format_date(event.start_time)} {event.start_time:%H:%M} UTC.</p>"
        )
        return await self.send(to, f"New {_meeting_label(event.event_type)} Scheduled", html)


__all__ = [
    "EmailConfig",
    "EmailService",
]
