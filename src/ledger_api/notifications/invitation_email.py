"""
Invitation Email

Composes the project invitation email and sends it over SMTP. Triggered by the row-insert webhook
of project_invitations (`{"record": {...}}`) or directly after an invitation is issued.
"""

import asyncio
import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from uuid import UUID

from loguru import logger
from pydantic import BaseModel

from ledger_api.errors import NotificationError
from ledger_api.ledger.invitations import build_join_link
from ledger_api.settings import Settings

SUCCESS_MESSAGE = "Invitation email sent successfully"


class InvitationRecord(BaseModel):
    """The inserted project_invitations row, as delivered by the webhook."""

    project_id: UUID
    email: str
    token: str
    role: str


class InvitationEmail(BaseModel):
    to: str
    subject: str
    html: str
    text: str


def compose_invitation_email(
    project_name: str,
    inviter_name: str,
    role: str,
    to: str,
    join_link: str,
    expiry_days: int = 7,
) -> InvitationEmail:
    name = html.escape(project_name)
    inviter = html.escape(inviter_name)
    link = html.escape(join_link, quote=True)

    html_body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563eb;">You've been invited to join {name}</h2>
  <p style="color: #374151; font-size: 16px;">
    {inviter} has invited you to join their project as a {html.escape(role)}.
  </p>
  <div style="margin: 30px 0;">
    <a href="{link}"
       style="background-color: #2563eb; color: white; padding: 12px 24px;
              text-decoration: none; border-radius: 6px; display: inline-block;">
      Accept Invitation
    </a>
  </div>
  <p style="color: #6b7280; font-size: 14px;">This invitation will expire in {expiry_days} days.</p>
  <p style="color: #6b7280; font-size: 14px;">
    If you don't have an account yet, you'll be able to create one when you accept the invitation.
  </p>
  <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 30px 0;" />
  <p style="color: #9ca3af; font-size: 12px;">
    If you weren't expecting this invitation, you can safely ignore this email.
  </p>
</div>
"""

    text_body = (
        f"You've been invited to join {project_name}\n\n"
        f"{inviter_name} has invited you to join their project as a {role}.\n\n"
        "Accept the invitation by visiting this link:\n"
        f"{join_link}\n\n"
        f"This invitation will expire in {expiry_days} days.\n\n"
        "If you don't have an account yet, you'll be able to create one when you accept the invitation."
    )

    return InvitationEmail(
        to=to,
        subject=f"Invitation to join {project_name}",
        html=html_body.strip(),
        text=text_body,
    )


class SmtpMailer:
    """Sends mail through an SMTP relay with STARTTLS."""

    def __init__(
        self,
        host: Optional[str],
        port: int,
        username: Optional[str],
        password: Optional[str],
        from_email: str,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_email=settings.notification_from_email,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def build_message(self, email: InvitationEmail) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_email
        msg["To"] = email.to
        msg["Subject"] = email.subject
        # plain text first; clients show the last alternative they support
        msg.attach(MIMEText(email.text, "plain"))
        msg.attach(MIMEText(email.html, "html"))
        return msg

    def _send_blocking(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            server.send_message(msg)

    async def send(self, email: InvitationEmail) -> None:
        """
        Send one email without blocking the event loop.

        Raises:
            NotificationError: SMTP is not configured or the relay rejected the message
        """
        if not self.configured:
            raise NotificationError("SMTP is not configured")

        msg = self.build_message(email)
        try:
            await asyncio.to_thread(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email error", to=email.to, subject=email.subject, error=str(e))
            raise NotificationError(f"Failed to send email: {e}") from e

        logger.info("Email sent", to=email.to, subject=email.subject)


async def send_invitation_notification(gateway, mailer: SmtpMailer, settings: Settings, record: InvitationRecord) -> None:
    """
    Look up the project and the inviter (the project's creator), then email the invitee.

    Raises:
        NotificationError: "Project not found", "Inviter not found", or a send failure
    """
    project = await gateway.projects.get(record.project_id)
    if project is None:
        raise NotificationError("Project not found")

    inviter = await gateway.profiles.get(project.user_id) if project.user_id else None
    if inviter is None:
        raise NotificationError("Inviter not found")

    email = compose_invitation_email(
        project_name=project.name,
        inviter_name=inviter.display_name,
        role=record.role,
        to=record.email,
        join_link=build_join_link(settings.public_site_url, record.token),
        expiry_days=settings.invitation_expiry_days,
    )
    await mailer.send(email)
