"""
TeacherDash - Email Service
===========================
Tell the principal when a lesson plan is published, via the Resend API.

Setup:
1. Add RESEND_API_KEY to .env (or save resend_api_key in Settings)
2. Optionally set RESEND_FROM_EMAIL to a verified sender
3. Save principal_email in Settings
"""

import logging

import resend

from ..config import RESEND_API_KEY, RESEND_FROM_EMAIL
from ..db import get_settings
from .task_helpers import format_week_label

logger = logging.getLogger(__name__)


class PrincipalNotifier:
    """Send lesson-plan notifications via Resend."""

    def __init__(self, db):
        self.db = db
        self.api_key = self._load_api_key()
        self.from_email = RESEND_FROM_EMAIL

    def _load_api_key(self):
        """Environment first, then the settings table."""
        if RESEND_API_KEY:
            return RESEND_API_KEY
        try:
            return get_settings(self.db, ['resend_api_key']).get('resend_api_key', '')
        except Exception as e:
            logger.warning("Could not read resend_api_key from settings: %s", e)
            return ''

    def send_plan_published(self, publish_url, week_of, teacher_name, principal_email):
        """
        Email the principal a link to the published plan.

        Returns:
            dict with success (bool), message, and id when sent
        """
        if not self.api_key:
            return {
                "success": False,
                "message": "Email not sent: No Resend API key configured. "
                           "Set RESEND_API_KEY env var or resend_api_key in settings.",
            }

        week_display = format_week_label(week_of)
        params = {
            "from": self.from_email,
            "to": [principal_email],
            "subject": f"Lesson Plan Published - Week of {week_display}",
            "html": build_email_html(publish_url, week_of, teacher_name, week_display),
        }

        try:
            resend.api_key = self.api_key
            response = resend.Emails.send(params)
        except Exception as e:
            logger.error("Failed to send plan notification to %s: %s", principal_email, e)
            return {"success": False, "message": f"Email failed: {e}"}

        email_id = response.get('id') if isinstance(response, dict) else getattr(response, 'id', None)
        if not email_id:
            logger.error("Failed to send plan notification to %s: no response ID", principal_email)
            return {"success": False, "message": "Email failed: no response ID"}

        logger.info("Sent plan notification to %s (%s)", principal_email, email_id)
        return {"success": True, "message": f"Email sent to {principal_email}", "id": email_id}


def build_email_html(publish_url, week_of, teacher_name, week_display):
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin:0;padding:0;background:#f4f4f5;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="max-width:600px;margin:40px auto;background:#ffffff;border-radius:12px;">
    <tr>
      <td style="background:#1a1a2e;padding:28px 32px;">
        <h1 style="margin:0;color:#4ECDC4;font-size:20px;">Lesson Plan Published</h1>
      </td>
    </tr>
    <tr>
      <td style="padding:32px;">
        <p style="margin:0 0 16px;color:#333;font-size:16px;line-height:1.6;">
          <strong>{teacher_name}</strong> has published a lesson plan for the
          <strong>week of {week_display}</strong>.
        </p>
        <p style="margin:0 0 24px;color:#555;font-size:14px;">
          Open the plan to see each day's activities and leave comments.
        </p>
        <a href="{publish_url}"
           style="display:inline-block;background:#4ECDC4;color:#1a1a2e;padding:12px 28px;border-radius:8px;text-decoration:none;font-weight:600;">
          View Lesson Plan
        </a>
        <p style="margin:24px 0 0;color:#999;font-size:12px;">
          Week: {week_of}<br>
          No login is needed to open this link.
        </p>
      </td>
    </tr>
  </table>
</body>
</html>"""
