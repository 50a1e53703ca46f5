"""SMTP delivery of candidate emails and their templates."""

import asyncio
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging

from core.config import settings
from core.errors import NotificationError

logger = logging.getLogger(__name__)


class EmailService:
    """
    Sends plain-text mail over SMTP with STARTTLS.

    Unset arguments fall back to the SMTP_* and FROM_* settings.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        html: bool = False,
    ) -> None:
        """
        Send an email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            body: Email body
            html: Whether body is HTML

        Raises:
            NotificationError: If the SMTP exchange fails
        """
        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'html' if html else 'plain'))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=[to_email])
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise NotificationError(f"Failed to send email: {e}") from e

        logger.info(f"Email sent to {to_email}")

    async def send(self, to_email: str, subject: str, body: str, html: bool = False) -> None:
        """Send an email without blocking the event loop."""
        await asyncio.to_thread(self.send_email, to_email, subject, body, html)


class EmailTemplates:
    """Pre-configured email templates."""

    @staticmethod
    def interview_invitation(
        role_title: Optional[str],
        interview_url: str,
        expires_at_text: str,
    ) -> dict:
        """Invitation sent to a candidate with their interview link."""
        position = f" for the {role_title} position" if role_title else ""
        return {
            'subject': 'Interview Invitation - Pre-recorded Interview',
            'body': (
                f"Hello,\n\n"
                f"You have been invited to complete a pre-recorded video interview{position}.\n\n"
                f"Start your interview here:\n{interview_url}\n\n"
                f"This link expires on {expires_at_text} (UTC) and can only be used once.\n"
                f"You will need a working camera and microphone.\n\n"
                f"Best regards,\nThe Hiring Team"
            ),
        }

    @staticmethod
    def interview_completed(
        role_title: Optional[str],
        question_count: int,
        video_url: str,
    ) -> dict:
        """Confirmation sent to a candidate once their interview video is assembled."""
        title = role_title or "Interview"
        return {
            'subject': f'Your Interview Submission - {title}',
            'body': (
                f"Hello,\n\n"
                f"Thank you for completing your interview for {title}.\n"
                f"We received your answers to {question_count} question(s) and combined them "
                f"into a single video.\n\n"
                f"You can watch your submission here:\n{video_url}\n\n"
                f"This link will remain active for 1 year.\n\n"
                f"Best regards,\nThe Hiring Team"
            ),
        }


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
