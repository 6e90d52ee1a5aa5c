from datetime import timedelta

from sqlalchemy import select

from conftest import FakeMailer, auth_headers, make_user
from minglz.core.config import settings
from minglz.core.security import create_refresh_token
from minglz.core.timeutils import utcnow
from minglz.integrations.resend_client import get_email_client
from minglz.main import app
from minglz.models.verification_code import VerificationCode


async def test_signup_and_duplicate(client):
    r = await client.post("/api/auth/signup", json={"email": "New@Example.com", "password": "secret123", "name": "Acme"})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "new@example.com"
    assert r.json()["user"]["role"] == "user"

    dup = await client.post("/api/auth/signup", json={"email": "new@example.com", "password": "secret123"})
    assert dup.status_code == 400
    assert dup.json()["error"] == "이미 가입된 이메일입니다."

    short = await client.post("/api/auth/signup", json={"email": "x@example.com", "password": "123"})
    assert short.status_code == 400


async def test_login_sets_cookies_and_session_reads_them(client, owner):
    r = await client.post("/api/auth/login", json={"email": "owner@example.com", "password": "secret123"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["access_token"] and body["refresh_token"]
    assert body["user"]["email"] == "owner@example.com"
    assert "access_token" in r.cookies and "refresh_token" in r.cookies

    session = await client.get("/api/auth/session")
    assert session.status_code == 200
    assert session.json()["user"]["id"] == str(owner.id)

    out = await client.post("/api/auth/logout")
    assert out.status_code == 200
    client.cookies.clear()

    assert (await client.get("/api/auth/session")).status_code == 401


async def test_login_rejects_bad_password(client, owner):
    r = await client.post("/api/auth/login", json={"email": "owner@example.com", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "이메일 또는 비밀번호가 올바르지 않습니다."}


async def test_session_falls_back_to_refresh_cookie(client, owner):
    client.cookies.set("refresh_token", create_refresh_token(user_id=str(owner.id)))

    r = await client.get("/api/auth/session")
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "owner@example.com"
    # a fresh access cookie is issued
    assert "access_token" in r.cookies


async def test_session_with_garbage_tokens(client, owner):
    client.cookies.set("access_token", "garbage")
    client.cookies.set("refresh_token", "garbage")
    assert (await client.get("/api/auth/session")).status_code == 401


async def test_send_and_verify_code(client, db, mailer):
    r = await client.post("/api/auth/send-verification", json={"email": "admin@example.com"})
    assert r.status_code == 200
    assert len(mailer.sent) == 1
    to, code = mailer.sent[0]
    assert to == "admin@example.com"
    assert len(code) == 6 and code.isdigit()

    wrong = await client.post("/api/auth/verify-code", json={"email": "admin@example.com", "code": "000000" if code != "000000" else "111111"})
    assert wrong.status_code == 400

    ok = await client.post("/api/auth/verify-code", json={"email": "admin@example.com", "code": code})
    assert ok.status_code == 200

    reused = await client.post("/api/auth/verify-code", json={"email": "admin@example.com", "code": code})
    assert reused.status_code == 400
    assert reused.json()["error"] == "잘못된 인증 코드이거나 만료되었습니다."


async def test_expired_code_is_rejected(client, db):
    db.add(VerificationCode(email="late@example.com", code="123456", expires_at=utcnow() - timedelta(minutes=1)))
    await db.commit()

    r = await client.post("/api/auth/verify-code", json={"email": "late@example.com", "code": "123456"})
    assert r.status_code == 400


async def test_send_verification_for_registered_email(client, owner, mailer):
    r = await client.post("/api/auth/send-verification", json={"email": "owner@example.com"})
    assert r.status_code == 400
    assert mailer.sent == []


async def test_send_verification_mail_failure(client, db):
    app.dependency_overrides[get_email_client] = lambda: FakeMailer(fail=True)

    r = await client.post("/api/auth/send-verification", json={"email": "admin@example.com"})
    assert r.status_code == 500
    assert r.json()["error"] == "이메일 전송에 실패했습니다."

    stored = (await db.execute(select(VerificationCode))).scalars().all()
    assert stored == []


async def test_admin_user_endpoints(client, db, owner):
    admin = await make_user(db, email="boss@example.com", role="admin")
    other = await make_user(db, email="other@example.com")

    assert (await client.get("/api/users/list", headers=auth_headers(owner))).status_code == 403

    r = await client.get("/api/users/list", headers=auth_headers(admin))
    assert r.status_code == 200
    assert sorted(u["email"] for u in r.json()["data"]) == ["other@example.com", "owner@example.com"]

    r = await client.post(
        "/api/users/emails",
        json={"user_ids": [str(owner.id), "not-a-uuid", str(other.id)]},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["data"] == {str(owner.id): "owner@example.com", str(other.id): "other@example.com"}

    bad = await client.post("/api/users/emails", json={"user_ids": "x"}, headers=auth_headers(admin))
    assert bad.status_code == 400


async def test_admin_emails_setting_grants_admin(client, db, owner, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", ["Owner@Example.com"])

    r = await client.get("/api/users/list", headers=auth_headers(owner))
    assert r.status_code == 200
    assert r.json()["data"] == []


async def test_upload_image(client, owner, storage):
    headers = auth_headers(owner)

    r = await client.post(
        "/api/upload-image",
        files={"file": ("hero.PNG", b"\x89PNG fake", "image/png")},
        headers=headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["path"].startswith(f"landing-pages/{owner.id}/")
    assert body["path"].endswith(".png")
    assert body["url"] == storage.public_url(body["path"])
    assert storage.uploaded[body["path"]] == b"\x89PNG fake"


async def test_upload_rejections(client, owner, monkeypatch):
    headers = auth_headers(owner)

    missing = await client.post("/api/upload-image", headers=headers)
    assert missing.status_code == 400

    text = await client.post(
        "/api/upload-image", files={"file": ("notes.txt", b"hi", "text/plain")}, headers=headers
    )
    assert text.status_code == 400
    assert text.json()["error"] == "이미지 파일만 업로드 가능합니다."

    monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 1024 * 1024)
    big = await client.post(
        "/api/upload-image",
        files={"file": ("big.jpg", b"x" * (1024 * 1024 + 1), "image/jpeg")},
        headers=headers,
    )
    assert big.status_code == 400
    assert big.json()["error"] == "파일 크기는 1MB 이하여야 합니다."

    anon = await client.post("/api/upload-image", files={"file": ("a.png", b"x", "image/png")})
    assert anon.status_code == 401
