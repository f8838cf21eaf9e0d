import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from template_market.config import Settings, settings

logger = logging.getLogger(__name__)


# -----------------------------
#  HTML EMAIL TEMPLATES
# -----------------------------
OTP_TEMPLATE = """
<!DOCTYPE html>
<html>
  <body style="margin:0; padding:0; font-family:Arial, Helvetica, sans-serif; background:#f3f3f3;">
    <table width="100%" cellpadding="0" cellspacing="0" style="background:#f3f3f3; padding:40px 0;">
      <tr>
        <td align="center">
          <table width="420" cellpadding="0" cellspacing="0" style="background:#ffffff; border-radius:12px; padding:30px;">
            <tr>
              <td align="center" style="font-size:22px; font-weight:bold; color:#140a38;">
                Your verification code
              </td>
            </tr>

            <tr><td style="height:20px;"></td></tr>

            <tr>
              <td style="font-size:15px; color:#5d5775; line-height:1.6;">
                Use the code below to continue with your Template Market account.
              </td>
            </tr>

            <tr><td style="height:30px;"></td></tr>

            <tr>
              <td align="center">
                <div style="font-size:32px; font-weight:bold; letter-spacing:6px; padding:16px 24px;
                            background:#ad54f2; color:white; border-radius:8px; display:inline-block;">
                  {{OTP}}
                </div>
              </td>
            </tr>

            <tr><td style="height:30px;"></td></tr>

            <tr>
              <td style="font-size:14px; color:#999; line-height:1.5;">
                This code is valid for {{MINUTES}} minutes.<br>
                If you didn't request this, you may ignore this email.
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""

DOWNLOAD_TEMPLATE = """
<!DOCTYPE html>
<html>
  <body style="margin:0; padding:0; font-family:Arial, Helvetica, sans-serif; background:#f3f3f3;">
    <table width="100%" cellpadding="0" cellspacing="0" style="background:#f3f3f3; padding:40px 0;">
      <tr>
        <td align="center">
          <table width="600" cellpadding="0" cellspacing="0" style="background:#ffffff; padding:40px;">
            <tr>
              <td style="font-size:20px; font-weight:600; color:#110833;">
                <span style="color:#5d5775;">Dear -</span> {{NAME}}
              </td>
            </tr>

            <tr><td style="height:20px;"></td></tr>

            <tr>
              <td style="font-size:16px; color:#5d5775; line-height:1.6;">
                Thanks for downloading <strong>{{TITLE}}</strong>. Your file is ready.
              </td>
            </tr>

            <tr><td style="height:30px;"></td></tr>

            <tr>
              <td align="center">
                <a href="{{URL}}" style="background-color:#ad54f2; color:#fff; text-decoration:none;
                                        padding:13px 30px; display:inline-block; font-size:18px;">
                  Download Template
                </a>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""


class EmailDispatcher:
    """Sends OTP and download-link emails over SMTP.

    Both senders return ``True`` on delivery and ``False`` on failure; callers
    decide whether a failed send matters.
    """

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_email: str | None = None,
        timeout: int = 15,
        otp_expire_minutes: int = 5,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.timeout = timeout
        self.otp_expire_minutes = otp_expire_minutes

    @classmethod
    def from_settings(cls, config: Settings) -> "EmailDispatcher":
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USER,
            password=config.SMTP_PASS,
            from_email=config.FROM_EMAIL,
            timeout=config.SMTP_TIMEOUT,
            otp_expire_minutes=config.OTP_EXPIRE_MINUTES,
        )

    def send_code(self, destination: str, code: str) -> bool:
        html = (
            OTP_TEMPLATE
            .replace("{{OTP}}", escape(code))
            .replace("{{MINUTES}}", str(self.otp_expire_minutes))
        )
        text = f"Your verification code is: {code}. It is valid for {self.otp_expire_minutes} minutes."
        return self._send(destination, "Your verification code", html, text)

    def send_download_link(self, destination: str, url: str, title: str, recipient_name: str | None = None) -> bool:
        html = (
            DOWNLOAD_TEMPLATE
            .replace("{{NAME}}", escape(recipient_name or destination))
            .replace("{{TITLE}}", escape(title))
            .replace("{{URL}}", escape(url, quote=True))
        )
        text = f"Download {title}: {url}"
        return self._send(destination, f"Your download: {title}", html, text)

    def _send(self, to_email: str, subject: str, html_message: str, text_message: str) -> bool:
        if not self.host:
            logger.warning("SMTP_HOST not configured; email to %s not sent", to_email)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email or ""
        msg["To"] = to_email
        msg.attach(MIMEText(text_message, "plain"))
        msg.attach(MIMEText(html_message, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email '%s' to %s", subject, to_email)
            return False

        logger.info("Email '%s' sent to %s", subject, to_email)
        return True


email_dispatcher = EmailDispatcher.from_settings(settings)


def get_email_dispatcher() -> EmailDispatcher:
    return email_dispatcher
