"""Email sending via Resend API.

Simple HTTP POST to Resend for the account creation emails. Each message
carries a plain-text body plus minimal HTML; every user-supplied value is
escaped before it goes into the HTML part.
"""

import html
import logging

import httpx

from app.core.config import settings
from app.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def send_email(
    *,
    to_email: str,
    subject: str,
    text: str,
    html_body: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Send one email through Resend.

    Args:
        to_email: Recipient email address.
        subject: Subject line.
        text: Plain-text body.
        html_body: Optional HTML body.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).

    Raises:
        EmailDeliveryError: If Resend rejects the message or is unreachable.
    """
    payload: dict[str, str] = {
        "from": settings.email_from,
        "to": to_email,
        "subject": subject,
        "text": text,
    }
    if html_body is not None:
        payload["html"] = html_body

    try:
        async with httpx.AsyncClient(transport=transport) as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
                },
                json=payload,
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise EmailDeliveryError(
            f"Resend returned {exc.response.status_code} for '{subject}'"
        ) from exc
    except httpx.HTTPError as exc:
        raise EmailDeliveryError(f"Resend request failed for '{subject}': {exc}") from exc

    logger.info("Sent email '%s'", subject)


def _paragraphs(*lines: str) -> str:
    return "".join(f"<p>{line}</p>" for line in lines)


async def send_verification_code_email(
    *,
    to_email: str,
    code: str,
    expires_in_minutes: int,
    recipient_name: str = "there",
) -> None:
    """Send the 6-digit email verification code."""
    subject = "Verify Your Email Address"
    text = (
        f"Hi {recipient_name},\n\n"
        "Please use the verification code below to complete your account setup:\n\n"
        f"{code}\n\n"
        f"This code will expire in {expires_in_minutes} minutes.\n\n"
        "If you didn't request this code, you can safely ignore this email."
    )
    html_body = _paragraphs(
        f"Hi {html.escape(recipient_name)},",
        "Please use the verification code below to complete your account setup:",
        f"<strong style=\"font-size:32px;letter-spacing:8px\">{html.escape(code)}</strong>",
        f"This code will expire in {expires_in_minutes} minutes.",
        "If you didn't request this code, you can safely ignore this email.",
    )
    await send_email(to_email=to_email, subject=subject, text=text, html_body=html_body)


async def send_account_invite_email(
    *,
    to_email: str,
    first_name: str,
    fund_name: str,
    create_account_url: str,
) -> None:
    """Send the account creation invite with the signup link."""
    subject = f"Create Your Investor Account - {fund_name}"
    text = (
        f"Hi {first_name},\n\n"
        "Thank you for taking the time to meet with us. "
        "We're excited to move forward with your investment!\n\n"
        "Next step: create your secure investor account to complete your "
        "profile and upload verification documents.\n\n"
        f"{create_account_url}\n\n"
        "This process takes about 5 minutes. You will need to set a password "
        "and verify your email address."
    )
    safe_url = html.escape(create_account_url, quote=True)
    html_body = _paragraphs(
        f"Hi {html.escape(first_name)},",
        "Thank you for taking the time to meet with us. "
        "We're excited to move forward with your investment!",
        "<strong>Next step:</strong> Create your secure investor account to "
        "complete your profile and upload verification documents.",
        f'<a href="{safe_url}">Create Your Account</a>',
        "This process takes about 5 minutes. You will need to set a password "
        "and verify your email address.",
    )
    await send_email(to_email=to_email, subject=subject, text=text, html_body=html_body)


async def send_account_created_email(
    *,
    to_email: str,
    first_name: str,
    fund_name: str,
    portal_url: str,
) -> None:
    """Send the post-signup confirmation with portal and onboarding links."""
    onboarding_url = f"{portal_url}/onboarding"
    subject = f"Account Created Successfully - {fund_name}"
    text = (
        f"Hi {first_name},\n\n"
        "Your investor account has been successfully created! You can now "
        "complete your investor profile and upload the required verification "
        "documents.\n\n"
        f"Complete your profile: {onboarding_url}\n\n"
        f"Login anytime at: {portal_url}"
    )
    safe_portal = html.escape(portal_url, quote=True)
    safe_onboarding = html.escape(onboarding_url, quote=True)
    html_body = _paragraphs(
        f"Hi {html.escape(first_name)},",
        "Your investor account has been successfully created! You can now "
        "complete your investor profile and upload the required verification "
        "documents.",
        f'<a href="{safe_onboarding}">Complete Your Profile</a>',
        f'Login anytime at: <a href="{safe_portal}">{safe_portal}</a>',
    )
    await send_email(to_email=to_email, subject=subject, text=text, html_body=html_body)


class ResendAccountEmailSender:
    """Account creation emails delivered through Resend.

    Satisfies the orchestrator's ``AccountEmailSender`` protocol.
    """

    async def send_verification_code(
        self, email: str, code: str, expires_in_minutes: int
    ) -> None:
        await send_verification_code_email(
            to_email=email, code=code, expires_in_minutes=expires_in_minutes
        )

    async def send_account_invite(
        self, email: str, first_name: str, fund_name: str, create_account_url: str
    ) -> None:
        await send_account_invite_email(
            to_email=email,
            first_name=first_name,
            fund_name=fund_name,
            create_account_url=create_account_url,
        )

    async def send_account_created(
        self, email: str, first_name: str, fund_name: str, portal_url: str
    ) -> None:
        await send_account_created_email(
            to_email=email,
            first_name=first_name,
            fund_name=fund_name,
            portal_url=portal_url,
        )
