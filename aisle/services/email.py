"""
Email Service for Magic Link Authentication

Sends sign-in links through the Resend API. The link carries a
``magic_link`` JWT that ``/auth/verify`` exchanges for a session cookie.
"""

import resend
from aisle.config import settings
import logging


logger = logging.getLogger(__name__)

resend.api_key = settings.RESEND_API_KEY


def send_magic_link(to_email: str, link: str, new_account: bool = False):
    """
    Send a sign-in link to ``to_email``.

    Args:
        to_email: Recipient address
        link: Full verification URL, https://<host>/auth/verify?token=<jwt>
        new_account: Use the welcome wording instead of the sign-in wording

    Raises:
        Exception: If Resend rejects the request; logged and re-raised so the
                   route can report the failure
    """
    if new_account:
        subject = "Welcome to Bridging the Aisle"
        intro = "Thanks for joining. Confirm your address and sign in:"
    else:
        subject = "Your Bridging the Aisle sign-in link"
        intro = "Click here to sign in:"

    try:
        params = {
            "from": settings.FROM_EMAIL,
            "to": [to_email],
            "subject": subject,
            "html": f'<strong>{intro}</strong> <a href="{link}">{link}</a>'
                    '<p>This link expires in 15 minutes.</p>',
        }
        email = resend.Emails.send(params)
        logger.info(f"Magic link sent to {to_email}: {email}")

    except Exception as e:
        logger.error(f"Error sending magic link to {to_email}: {e}")
        raise e
