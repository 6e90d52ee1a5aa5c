import httpx

from minglz.core.config import settings


class EmailError(Exception):
    pass


VERIFICATION_SUBJECT = "MyMinglz 관리자 계정 인증 코드"


def render_verification_html(code: str, ttl_minutes: int) -> str:
    return f"""
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 40px 20px;">
  <div style="text-align: center; margin-bottom: 40px;">
    <h1 style="color: #000; font-size: 24px; font-weight: 600; margin: 0;">MyMinglz</h1>
  </div>
  <div style="background: #f8f9fa; border-radius: 12px; padding: 32px; text-align: center;">
    <h2 style="color: #000; font-size: 20px; font-weight: 600; margin: 0 0 16px 0;">계정 인증 코드</h2>
    <p style="color: #666; font-size: 14px; margin: 0 0 24px 0;">관리자 계정 생성을 위한 인증 코드입니다.</p>
    <div style="background: #fff; border: 2px solid #e9ecef; border-radius: 8px; padding: 24px; margin: 24px 0;">
      <div style="font-size: 36px; font-weight: 700; letter-spacing: 8px; color: #000;">{code}</div>
    </div>
    <p style="color: #999; font-size: 13px; margin: 24px 0 0 0;">이 코드는 <strong>{ttl_minutes}분간 유효</strong>합니다.</p>
  </div>
  <div style="margin-top: 32px; padding-top: 32px; border-top: 1px solid #e9ecef; text-align: center;">
    <p style="color: #999; font-size: 12px; margin: 0;">본인이 요청하지 않았다면 이 이메일을 무시하세요.</p>
  </div>
</div>
"""


class ResendClient:
    def __init__(self):
        self.base_url = settings.RESEND_API_URL.rstrip("/")
        self.api_key = settings.RESEND_API_KEY
        self.from_email = settings.RESEND_FROM_EMAIL
        self.timeout = 15

    async def send_email(self, *, to: str, subject: str, html: str) -> str | None:
        if not self.api_key:
            raise EmailError("RESEND_API_KEY is not configured")

        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.base_url}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )

        if r.status_code not in (200, 201):
            raise EmailError(f"Resend API error: {r.text}")

        return r.json().get("id")

    async def send_verification_code(self, *, to: str, code: str) -> str | None:
        return await self.send_email(
            to=to,
            subject=VERIFICATION_SUBJECT,
            html=render_verification_html(code, settings.VERIFICATION_CODE_TTL_MINUTES),
        )


def get_email_client() -> ResendClient:
    return ResendClient()
