"""
Page Guards

``redirect_if_authenticated`` is the gate in front of every page meant for
signed-out visitors (sign-in, sign-up, reset-password). The session user is
resolved before the gate runs and passed in explicitly; the gate then either
redirects or renders, never both.
"""

from fastapi import Request
from fastapi.responses import RedirectResponse

from aisle.config import settings
from aisle.models import User
from aisle.templating import templates


def redirect_if_authenticated(
    request: Request,
    user: User | None,
    template_name: str,
    context: dict | None = None,
    destination: str | None = None
):
    """
    Send signed-in users away, render ``template_name`` for everyone else.

    Args:
        request: Current request, needed for template rendering
        user: Resolved session user, or None
        template_name: Form template for signed-out visitors
        context: Extra template variables
        destination: Redirect target; defaults to settings.DASHBOARD_URL

    Returns:
        RedirectResponse (303) when ``user`` is present, otherwise the
        rendered TemplateResponse
    """
    if user is not None:
        return RedirectResponse(url=destination or settings.DASHBOARD_URL, status_code=303)

    return templates.TemplateResponse(request, template_name, context or {})


def redirect_if_anonymous(user: User | None, destination: str = "/auth/signin") -> RedirectResponse | None:
    """Counterpart for signed-in-only pages: a redirect, or None to carry on."""
    if user is None:
        return RedirectResponse(url=destination, status_code=303)
    return None
