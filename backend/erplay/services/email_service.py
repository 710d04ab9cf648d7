"""
Email Service for ERPlay
========================
Handles all notification emails:
- Password reset links
- Credentials for students created in batch by a supervisor
- Review notifications for questions and claims
- Weekly goal announcements (students in BCC)

Sends through SMTP with aiosmtplib. When SMTP is not configured, sends are
skipped with a warning and report False.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
import asyncio

from erplay.core.config import settings
from erplay.core.logging_config import logger
from erplay.services.email_templates import (
    answer_chip,
    badge,
    boxed,
    button,
    escape_html,
    render_card_email,
)


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.SMTP_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: Union[str, List[str]],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        bcc: Optional[List[str]] = None,
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning(f"[Email] Email service not configured, skipping email: {subject}")
            return False

        to_list = [to_email] if isinstance(to_email, str) else list(to_email)
        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = ", ".join(to_list)
            message["Subject"] = subject

            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            # BCC recipients go in the envelope only
            await aiosmtplib.send(
                message,
                recipients=to_list + list(bcc or []),
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.use_tls,
            )

            logger.info(f"[Email/SMTP] Sent '{subject}' to {len(to_list) + len(bcc or [])} recipient(s)")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send '{subject}' to {to_list}: {e}")
            return False

    async def send_bulk_email(
        self,
        recipients: List[Dict[str, str]],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send one personalised email per recipient.

        Every ``{{key}}`` placeholder in the bodies is replaced with the
        recipient's value for ``key``; values are HTML-escaped in the HTML body.

        Returns:
            Dict with 'success_count', 'failed_count', 'failed_emails'
        """
        success_count = 0
        failed_count = 0
        failed_emails = []

        for recipient in recipients:
            email = recipient.get("email")
            if not email:
                continue

            personalized_html = html_content
            personalized_text = text_content
            for key, value in recipient.items():
                personalized_html = personalized_html.replace(f"{{{{{key}}}}}", escape_html(value))
                if personalized_text:
                    personalized_text = personalized_text.replace(f"{{{{{key}}}}}", value or "")

            if await self.send_email(email, subject, personalized_html, personalized_text):
                success_count += 1
            else:
                failed_count += 1
                failed_emails.append(email)

            # Small delay to stay under SMTP provider rate limits
            await asyncio.sleep(0.1)

        logger.info(f"[Email] Bulk send complete: {success_count} success, {failed_count} failed")

        return {
            "success_count": success_count,
            "failed_count": failed_count,
            "failed_emails": failed_emails
        }

    # ==================== Account emails ====================

    async def send_password_reset_email(self, to_email: str, user_name: str, reset_token: str) -> bool:
        """Send password reset link"""
        reset_link = f"{self.frontend_url}/reset-password?token={reset_token}"
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <p>Hi {escape_html(user_name) or 'there'},</p>
          <p>We received a request to reset your ERPlay password.</p>
          <p style="margin:20px 0">{button(reset_link, 'Reset password')}</p>
          <p style="color:#6b7280">This link expires in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes.
             If you did not request it, ignore this email.</p>
        </div>
        """
        text = (
            f"Hi {user_name or 'there'},\n\n"
            f"Reset your ERPlay password here: {reset_link}\n\n"
            f"This link expires in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes."
        )
        html = render_card_email("Password reset", body, accent="#E0E7FF")
        return await self.send_email(to_email, "Reset your ERPlay password", html, text)

    async def send_credentials_emails(self, accounts: List[Dict[str, str]]) -> Dict[str, Any]:
        """Send login credentials to students created by a supervisor"""
        login_url = f"{self.frontend_url}/login"
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <p>Hi {{{{name}}}},</p>
          <p>An ERPlay account has been created for you.</p>
          <table role="presentation" style="border-collapse:collapse;margin:12px 0">
            <tr><td style="padding:4px 12px 4px 0;color:#6b7280">Email</td><td><strong>{{{{email}}}}</strong></td></tr>
            <tr><td style="padding:4px 12px 4px 0;color:#6b7280">Password</td><td><code>{{{{password}}}}</code></td></tr>
          </table>
          <p>Please change your password after your first login.</p>
          <p style="margin:20px 0">{button(login_url, 'Go to ERPlay')}</p>
        </div>
        """
        text = (
            "Hi {{name}},\n\nAn ERPlay account has been created for you.\n"
            "Email: {{email}}\nPassword: {{password}}\n\n"
            f"Log in at {login_url} and change your password."
        )
        html = render_card_email("Your ERPlay account", body, accent="#E0E7FF")
        return await self.send_bulk_email(accounts, "Your ERPlay account", html, text)

    async def send_password_updated_email(self, to_email: str, user_name: str, password: str) -> bool:
        """Tell a student a supervisor changed their password"""
        login_url = f"{self.frontend_url}/login"
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <p>Hi {escape_html(user_name or to_email)},</p>
          <p>A supervisor updated the password of your account. Use these details from now on:</p>
          <table role="presentation" style="border-collapse:collapse;margin:12px 0">
            <tr><td style="padding:4px 12px 4px 0;color:#6b7280">Email</td><td><strong>{escape_html(to_email)}</strong></td></tr>
            <tr><td style="padding:4px 12px 4px 0;color:#6b7280">New password</td><td><code>{escape_html(password)}</code></td></tr>
          </table>
          <p>If you do not recognise this change, contact your supervisor.</p>
          <p style="margin:20px 0">{button(login_url, 'Log in')}</p>
        </div>
        """
        text = (
            f"Hi {user_name or to_email},\n\nA supervisor updated the password of your account.\n"
            f"Email: {to_email}\nNew password: {password}\n\nLog in at {login_url}"
        )
        html = render_card_email("Your password was updated", body, accent="#DBEAFE")
        return await self.send_email(to_email, "Your ERPlay password was updated", html, text)

    # ==================== Question review ====================

    async def notify_new_pending_question(
        self,
        recipients: List[str],
        author_name: str,
        author_email: str,
        diagram_title: str,
        prompt: str,
        options: List[str],
        correct_index: int,
    ) -> bool:
        if not recipients:
            return False
        review_url = f"{self.frontend_url}/supervisor/questions"
        correct_style = ' style="font-weight:600"'
        items = "".join(
            f"<li{correct_style if i == correct_index else ''}>{escape_html(o)}</li>"
            for i, o in enumerate(options)
        )
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <div style="margin-bottom:12px">{badge('Pending review', '#FEF3C7', '#92400E', '#FDE68A')}</div>
          <p><strong>{escape_html(author_name)}</strong> ({escape_html(author_email)}) proposed a question
             for <strong>{escape_html(diagram_title)}</strong>.</p>
          {boxed('Question', prompt)}
          <ol type="A" style="margin:0 0 16px 18px;padding:0">{items}</ol>
          {button(review_url, 'Review questions')}
        </div>
        """
        html = render_card_email("New question pending review", body, accent="#FEF3C7")
        return await self.send_email(recipients, "New question pending review", html)

    async def notify_question_reviewed(
        self,
        to_email: str,
        approved: bool,
        diagram_title: str,
        prompt: str,
        comment: Optional[str],
    ) -> bool:
        status = (
            badge('Approved', '#D1FAE5', '#065F46', '#A7F3D0') if approved
            else badge('Rejected', '#FEE2E2', '#991B1B', '#FECACA')
        )
        comment_html = boxed('Reviewer comment', comment, background="#ffffff") if comment else ""
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <div style="margin-bottom:12px">{status}</div>
          <p>Your question for <strong>{escape_html(diagram_title)}</strong> has been reviewed.</p>
          {boxed('Question', prompt)}
          {comment_html}
        </div>
        """
        subject = "Your question has been approved" if approved else "Your question has been reviewed"
        html = render_card_email("Question review", body, accent="#D1FAE5" if approved else "#FEE2E2")
        return await self.send_email(to_email, subject, html)

    # ==================== Claims ====================

    async def notify_new_claim(
        self,
        recipients: List[str],
        student_name: str,
        student_email: str,
        diagram_title: str,
        prompt: str,
        options: List[str],
        chosen_index: int,
        correct_index: int,
        explanation: str,
        submitted_at: datetime,
    ) -> bool:
        if not recipients:
            return False
        chosen_text = options[chosen_index] if 0 <= chosen_index < len(options) else ""
        correct_text = options[correct_index] if 0 <= correct_index < len(options) else ""
        chips = (
            answer_chip("Student's answer", chosen_index, chosen_text)
            + answer_chip("Official answer", correct_index, correct_text)
        )
        reasoning = boxed("Student's reasoning", explanation, border="#FDE68A", background="#FFFBEB")
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <div style="margin-bottom:12px">{badge('Pending review', '#FEF3C7', '#92400E', '#FDE68A')}</div>
          <table role="presentation" style="width:100%;border-collapse:collapse">
            <tr><td style="padding:6px 0;width:120px;color:#6b7280;">Student</td>
                <td style="padding:6px 0;"><strong>{escape_html(student_name)}</strong> ({escape_html(student_email)})</td></tr>
            <tr><td style="padding:6px 0;width:120px;color:#6b7280;">Diagram</td>
                <td style="padding:6px 0;">{escape_html(diagram_title)}</td></tr>
            <tr><td style="padding:6px 0;width:120px;color:#6b7280;">Submitted</td>
                <td style="padding:6px 0;">{escape_html(submitted_at.strftime('%Y-%m-%d %H:%M'))} UTC</td></tr>
          </table>
          {boxed('Question', prompt)}
          <div>{chips}</div>
          {reasoning}
        </div>
        """
        html = render_card_email("New claim pending review", body, accent="#FEF3C7")
        return await self.send_email(recipients, "New claim pending review", html)

    async def notify_claim_decision(
        self,
        to_email: str,
        approved: bool,
        diagram_title: str,
        prompt: str,
        options: List[str],
        chosen_index: int,
        correct_index_now: int,
        reviewer_comment: Optional[str],
    ) -> bool:
        chosen_text = options[chosen_index] if 0 <= chosen_index < len(options) else ""
        correct_text = options[correct_index_now] if 0 <= correct_index_now < len(options) else ""
        status = (
            badge('Approved', '#D1FAE5', '#065F46', '#A7F3D0') if approved
            else badge('Rejected', '#FEE2E2', '#991B1B', '#FECACA')
        )
        comment_html = boxed('Reviewer comment', reviewer_comment, background="#ffffff") if reviewer_comment else ""
        body = f"""
        <div style="font-size:14px;line-height:1.6">
          <div style="margin-bottom:12px">{status}</div>
          <p>Diagram: <strong>{escape_html(diagram_title)}</strong></p>
          {boxed('Question', prompt)}
          <div>{answer_chip('Your answer', chosen_index, chosen_text)}{answer_chip('Official answer after review', correct_index_now, correct_text)}</div>
          {comment_html}
        </div>
        """
        subject = "Your claim has been approved" if approved else "Your claim has been reviewed"
        html = render_card_email("Claim result", body, accent="#D1FAE5" if approved else "#FEE2E2")
        return await self.send_email(to_email, subject, html)

    # ==================== Weekly goal ====================

    async def notify_weekly_goal(self, recipients: List[str], week_start: str, week_end: str, target_tests: int) -> bool:
        """Announce a weekly goal to every student (BCC for privacy)"""
        if not recipients:
            return False
        progress_url = f"{self.frontend_url}/student/progress"
        body = f"""
        <div style="font-size:14px;line-height:1.7">
          <div style="margin-bottom:12px">{badge('WEEKLY GOAL', '#DBEAFE', '#1E3A8A', '#BFDBFE')}</div>
          <p>A new <strong>weekly goal</strong> has been set: <strong>complete {target_tests} tests</strong>.</p>
          <p>Period: <strong>{escape_html(week_start)}</strong> to <strong>{escape_html(week_end)}</strong>.</p>
          <p>Reach it to earn this week's badge.</p>
          {button(progress_url, 'View my progress')}
        </div>
        """
        html = render_card_email("New weekly goal", body, accent="#DBEAFE")
        return await self.send_email(self.from_email, "New weekly goal", html, bcc=recipients)


email_service = EmailService()


async def queue_email(background_tasks, send, *args, **kwargs) -> None:
    """Run an email send after the response when background tasks are available"""
    if background_tasks is not None:
        background_tasks.add_task(send, *args, **kwargs)
        return
    await send(*args, **kwargs)
