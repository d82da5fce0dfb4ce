# test_auth_pages.py

import asyncio
import pytest
from unittest.mock import AsyncMock, Mock, patch
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from conftest import session_cookie
from aisle.exceptions import SessionLookupError
from aisle.guards import redirect_if_authenticated
from aisle.models import User, AuditLog, BlacklistedEmail
from aisle.services.auth import create_access_token, MAGIC_LINK_PURPOSE
from aisle.services.session import resolve_session_user


AUTH_PAGES = [
    ("/auth/signin", 'id="signin-form"'),
    ("/auth/signup", 'id="signup-form"'),
    ("/auth/reset-password", 'id="reset-password-form"'),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("path, form_marker", AUTH_PAGES)
async def test_auth_page_renders_form_for_anonymous_visitor(client, path, form_marker):
    response = await client.get(path)

    assert response.status_code == 200
    assert form_marker in response.text
    assert "location" not in response.headers


@pytest.mark.asyncio
@pytest.mark.parametrize("path, form_marker", AUTH_PAGES)
async def test_auth_page_redirects_signed_in_member_to_dashboard(auth_client, path, form_marker):
    response = await auth_client.get(path)

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    assert form_marker not in response.text


@pytest.mark.asyncio
@pytest.mark.parametrize("path, form_marker", AUTH_PAGES)
async def test_auth_page_treats_session_lookup_failure_as_anonymous(client, member, path, form_marker):
    async def broken_lookup(request, db):
        raise SessionLookupError("database unavailable")

    client.headers["Cookie"] = session_cookie(member.email)
    with patch("aisle.dependencies.resolve_session_user", broken_lookup):
        response = await client.get(path)

    assert response.status_code == 200
    assert form_marker in response.text


@pytest.mark.asyncio
@pytest.mark.parametrize("path, form_marker", AUTH_PAGES)
@pytest.mark.parametrize("error", [
    ConnectionRefusedError(111, "Connect call failed"),
    asyncio.TimeoutError(),
])
async def test_auth_page_renders_form_when_database_is_unreachable(client, member, path, form_marker, error):
    client.headers["Cookie"] = session_cookie(member.email)
    with patch.object(AsyncSession, "execute", AsyncMock(side_effect=error)):
        response = await client.get(path)

    assert response.status_code == 200
    assert form_marker in response.text


@pytest.mark.asyncio
async def test_resolve_session_user_wraps_connection_errors(member):
    request = Mock(cookies={"access_token": f"Bearer {create_access_token({'sub': member.email})}"})
    db = AsyncMock()
    db.execute.side_effect = ConnectionRefusedError(111, "Connect call failed")

    with pytest.raises(SessionLookupError):
        await resolve_session_user(request, db)


@pytest.mark.asyncio
async def test_auth_page_ignores_invalid_session_cookie(client):
    client.headers["Cookie"] = "access_token=Bearer not-a-jwt"
    response = await client.get("/auth/signin")

    assert response.status_code == 200
    assert 'id="signin-form"' in response.text


@pytest.mark.asyncio
async def test_auth_page_ignores_session_for_deleted_account(client):
    client.headers["Cookie"] = session_cookie("gone@example.com")
    response = await client.get("/auth/signup")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_magic_link_token_is_not_a_session(client, member):
    token = create_access_token({"sub": member.email}, purpose=MAGIC_LINK_PURPOSE)
    client.headers["Cookie"] = f"access_token=Bearer {token}"
    response = await client.get("/auth/signin")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_reset_password_page_reports_expired_link(client):
    response = await client.get("/auth/reset-password", params={"token": "expired-or-bogus"})

    assert response.status_code == 200
    assert "has expired" in response.text


def test_gate_redirect_does_not_render():
    with patch("aisle.guards.templates") as mock_templates:
        response = redirect_if_authenticated(Mock(), User(email="ada@example.com"), "auth/signin.html")

    assert isinstance(response, RedirectResponse)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    mock_templates.TemplateResponse.assert_not_called()


def test_gate_renders_form_without_user():
    request = Mock()
    with patch("aisle.guards.templates") as mock_templates:
        response = redirect_if_authenticated(request, None, "auth/signup.html", {"expired": False})

    mock_templates.TemplateResponse.assert_called_once_with(request, "auth/signup.html", {"expired": False})
    assert response is mock_templates.TemplateResponse.return_value


@pytest.mark.asyncio
async def test_dashboard_redirects_anonymous_visitor(client):
    response = await client.get("/dashboard")

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/signin"


@pytest.mark.asyncio
async def test_root_redirects_signed_in_member(auth_client):
    response = await auth_client.get("/")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


@pytest.mark.asyncio
async def test_verify_sets_session_cookie(client, member):
    token = create_access_token({"sub": member.email}, purpose=MAGIC_LINK_PURPOSE)
    response = await client.get("/auth/verify", params={"token": token})

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    assert "access_token=" in response.headers["set-cookie"]
    assert "HttpOnly" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_verify_rejects_session_token(client, member):
    token = create_access_token({"sub": member.email})
    response = await client.get("/auth/verify", params={"token": token})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_signout_clears_cookie(auth_client):
    response = await auth_client.get("/auth/signout")

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/signin"
    assert "access_token=" in response.headers["set-cookie"]
    assert "Max-Age=0" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_signup_creates_account_and_sends_link(client, session_factory):
    with patch("aisle.routes.auth.send_magic_link") as mock_send:
        response = await client.post("/auth/signup", data={
            "email": "Grace@Example.com",
            "display_name": "Grace",
            "agree_terms": "true",
        })

    assert response.status_code == 200
    assert "grace@example.com" in response.text
    mock_send.assert_called_once()
    args, kwargs = mock_send.call_args
    assert args[0] == "grace@example.com"
    assert "/auth/verify?token=" in args[1]
    assert kwargs["new_account"] is True

    async with session_factory() as session:
        user = (await session.execute(select(User).filter(User.email == "grace@example.com"))).scalars().first()
        audit = (await session.execute(select(AuditLog))).scalars().all()
    assert user.display_name == "Grace"
    assert [entry.action for entry in audit] == ["user_created"]


@pytest.mark.asyncio
async def test_signup_requires_terms(client):
    with patch("aisle.routes.auth.send_magic_link") as mock_send:
        response = await client.post("/auth/signup", data={"email": "grace@example.com"})

    assert response.status_code == 400
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_signup_rejects_existing_email(client, member):
    with patch("aisle.routes.auth.send_magic_link"):
        response = await client.post("/auth/signup", data={
            "email": member.email,
            "agree_terms": "true",
        })

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_signin_sends_link_to_member(client, member):
    with patch("aisle.routes.auth.send_magic_link") as mock_send:
        response = await client.post("/auth/signin", data={"email": member.email})

    assert response.status_code == 200
    assert mock_send.call_args[0][0] == member.email


@pytest.mark.asyncio
async def test_signin_unknown_email(client):
    with patch("aisle.routes.auth.send_magic_link") as mock_send:
        response = await client.post("/auth/signin", data={"email": "nobody@example.com"})

    assert response.status_code == 404
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_signin_blacklisted_email(client, db, member):
    db.add(BlacklistedEmail(email=member.email, reason="repeated violations"))
    await db.commit()

    with patch("aisle.routes.auth.send_magic_link") as mock_send:
        response = await client.post("/auth/signin", data={"email": member.email})

    assert response.status_code == 403
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_signin_reports_email_failure(client, member):
    with patch("aisle.routes.auth.send_magic_link", side_effect=Exception("resend down")):
        response = await client.post("/auth/signin", data={"email": member.email})

    assert response.status_code == 502
