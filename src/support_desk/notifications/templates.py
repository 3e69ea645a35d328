"""
HTML email templates for ticket notifications.

All interpolated values are HTML-escaped; only the status badge colours are
trusted constants.
"""

from dataclasses import dataclass
from html import escape
from string import Template
from typing import Dict, Optional

from support_desk.models.ticket import TICKET_TYPE_LABELS, TicketType

HEADER = Template("""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="margin:0;padding:0;background:#f4f4f5;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;">
  <div style="max-width:600px;margin:0 auto;padding:40px 20px;">
    <div style="background:$header_background;padding:24px;border-radius:12px 12px 0 0;text-align:center;">
      <h1 style="margin:0;color:#F7B910;font-size:24px;">$title</h1>
    </div>
    <div style="background:#fff;padding:32px;border-radius:0 0 12px 12px;box-shadow:0 2px 8px rgba(0,0,0,0.1);">
""")

FOOTER = Template("""    </div>
    <div style="text-align:center;padding:24px;">
      <p style="color:#9ca3af;font-size:13px;margin:0;">$footer</p>
    </div>
  </div>
</body>
</html>""")

BUTTON = Template("""      <div style="text-align:center;margin-bottom:24px;">
        <a href="$href" style="display:inline-block;background:$background;color:$color;text-decoration:none;padding:14px 32px;border-radius:8px;font-weight:600;font-size:16px;">$label</a>
      </div>
""")

REPLY_BODY = Template("""      <p style="color:#374151;font-size:16px;margin-bottom:8px;">Hi $customer_name,</p>
      <p style="color:#374151;font-size:16px;margin-bottom:24px;">$replier has replied to your ticket:</p>
      <div style="background:#f9fafb;border-radius:8px;padding:16px;margin-bottom:24px;border-left:4px solid #F7B910;">
        <p style="margin:0 0 8px;font-size:14px;color:#6b7280;"><strong>Ticket #$ticket_number</strong></p>
        <p style="margin:0;font-size:16px;color:#1f2937;font-weight:600;">$ticket_subject</p>
      </div>
      <div style="background:#fefce8;border-radius:8px;padding:20px;margin-bottom:24px;">
        <p style="margin:0;color:#374151;font-size:15px;line-height:1.6;white-space:pre-wrap;">$message</p>
      </div>
""")

STATUS_BODY = Template("""      <p style="color:#374151;font-size:16px;margin-bottom:24px;">Hi $customer_name,</p>
      <p style="color:#374151;font-size:16px;margin-bottom:24px;">Your ticket <strong>#$ticket_number</strong> status has been updated.</p>
      <div style="text-align:center;margin-bottom:24px;">
        <span style="display:inline-block;background:$badge_background;color:$badge_color;padding:8px 24px;border-radius:20px;font-weight:600;font-size:14px;">$new_status</span>
      </div>
      <div style="background:#f9fafb;border-radius:8px;padding:16px;margin-bottom:24px;">
        <p style="margin:0 0 8px;font-size:14px;color:#6b7280;"><strong>Ticket #$ticket_number</strong></p>
        <p style="margin:0;font-size:16px;color:#1f2937;">$ticket_subject</p>
      </div>
""")

CONFIRMATION_BODY = Template("""      <h2 style="text-align:center;color:#1f2937;font-size:20px;margin-bottom:16px;">We've Received Your Request</h2>
      <p style="color:#374151;font-size:16px;margin-bottom:24px;text-align:center;">
        Hi $customer_name, your support ticket has been created. Our team will get back to you shortly.
      </p>
      <div style="background:#f9fafb;border-radius:8px;padding:20px;margin-bottom:24px;border-left:4px solid #F7B910;">
        <p style="margin:0 0 8px;font-size:14px;color:#6b7280;"><strong>Ticket Number</strong></p>
        <p style="margin:0 0 16px;font-size:24px;color:#1f2937;font-weight:700;">#$ticket_number</p>
        <p style="margin:0 0 4px;font-size:14px;color:#6b7280;"><strong>Subject</strong></p>
        <p style="margin:0;font-size:16px;color:#1f2937;">$ticket_subject</p>
      </div>
""")

ADMIN_BODY = Template("""      <div style="background:#fef3c7;border-radius:8px;padding:16px;margin-bottom:24px;border-left:4px solid #F7B910;">
        <p style="margin:0 0 4px;font-size:14px;color:#92400e;font-weight:600;">New ticket submitted</p>
        <p style="margin:0;font-size:24px;color:#1f2937;font-weight:700;">#$ticket_number</p>
      </div>
      <table style="width:100%;border-collapse:collapse;margin-bottom:24px;">
        <tr><td style="padding:8px 0;color:#6b7280;font-size:14px;width:120px;">Customer:</td><td style="padding:8px 0;color:#1f2937;font-size:14px;font-weight:500;">$customer_name</td></tr>
        <tr><td style="padding:8px 0;color:#6b7280;font-size:14px;">Email:</td><td style="padding:8px 0;color:#1f2937;font-size:14px;">$customer_email</td></tr>
        <tr><td style="padding:8px 0;color:#6b7280;font-size:14px;">Type:</td><td style="padding:8px 0;color:#1f2937;font-size:14px;"><span style="background:#F7B910;color:#000;padding:2px 8px;border-radius:4px;font-size:12px;font-weight:600;">$ticket_type</span></td></tr>
        <tr><td style="padding:8px 0;color:#6b7280;font-size:14px;vertical-align:top;">Subject:</td><td style="padding:8px 0;color:#1f2937;font-size:14px;font-weight:600;">$ticket_subject</td></tr>
      </table>
      <div style="background:#f9fafb;border-radius:8px;padding:16px;margin-bottom:24px;">
        <p style="margin:0 0 8px;font-size:12px;color:#6b7280;text-transform:uppercase;font-weight:600;">Message</p>
        <p style="margin:0;color:#374151;font-size:14px;line-height:1.6;white-space:pre-wrap;">$ticket_description</p>
      </div>
""")

STATUS_COLORS: Dict[str, str] = {
    'Open': '#F7B910',
    'Pending': '#3b82f6',
    'Resolved': '#22c55e',
    'Closed': '#6b7280',
}


@dataclass
class Branding:
    store_name: str
    store_url: str = ''

    @property
    def tickets_url(self) -> str:
        return f"{self.store_url.rstrip('/')}/pages/support-tickets"

    @property
    def admin_url(self) -> str:
        return f"{self.store_url.rstrip('/')}/pages/support-admin"


def _e(value: Optional[object], default: str = '') -> str:
    return escape(str(value)) if value not in (None, '') else escape(default)


def _customer_page(branding: Branding, body: str, button_label: str) -> str:
    return (
        HEADER.substitute(header_background='#000', title=_e(branding.store_name))
        + body
        + BUTTON.substitute(href=_e(branding.tickets_url), background='#F7B910', color='#000', label=button_label)
        + FOOTER.substitute(footer=f"{_e(branding.store_name)} Support")
    )


def render_reply_email(
    branding: Branding,
    customer_name: Optional[str],
    ticket_number: int,
    ticket_subject: Optional[str],
    message: Optional[str],
    staff_name: Optional[str],
) -> str:
    replier = f"{_e(staff_name)} from our team" if staff_name else 'Our support team'
    body = REPLY_BODY.substitute(
        customer_name=_e(customer_name, 'there'),
        replier=replier,
        ticket_number=ticket_number,
        ticket_subject=_e(ticket_subject),
        message=_e(message),
    )
    return _customer_page(branding, body, 'View Ticket &amp; Reply')


def render_status_email(
    branding: Branding,
    customer_name: Optional[str],
    ticket_number: int,
    ticket_subject: Optional[str],
    new_status: Optional[str],
) -> str:
    body = STATUS_BODY.substitute(
        customer_name=_e(customer_name, 'there'),
        ticket_number=ticket_number,
        ticket_subject=_e(ticket_subject),
        new_status=_e(new_status),
        badge_background=STATUS_COLORS.get(new_status or '', '#6b7280'),
        badge_color='#000' if new_status == 'Open' else '#fff',
    )
    return _customer_page(branding, body, 'View Ticket')


def render_confirmation_email(
    branding: Branding,
    customer_name: Optional[str],
    ticket_number: int,
    ticket_subject: Optional[str],
) -> str:
    body = CONFIRMATION_BODY.substitute(
        customer_name=_e(customer_name, 'there'),
        ticket_number=ticket_number,
        ticket_subject=_e(ticket_subject),
    )
    return _customer_page(branding, body, 'View Your Tickets')


def render_admin_email(
    branding: Branding,
    customer_name: Optional[str],
    customer_email: Optional[str],
    ticket_number: int,
    ticket_subject: Optional[str],
    ticket_type: Optional[str],
    ticket_description: Optional[str],
) -> str:
    try:
        type_label = TICKET_TYPE_LABELS[TicketType(ticket_type)]
    except ValueError:
        type_label = ticket_type
    body = ADMIN_BODY.substitute(
        ticket_number=ticket_number,
        customer_name=_e(customer_name, 'N/A'),
        customer_email=_e(customer_email, 'N/A'),
        ticket_type=_e(type_label),
        ticket_subject=_e(ticket_subject),
        ticket_description=_e(ticket_description),
    )
    return (
        HEADER.substitute(header_background='#1e293b', title='New Support Ticket')
        + body
        + BUTTON.substitute(href=_e(branding.admin_url), background='#1e293b', color='#fff', label='View in Admin Panel')
        + FOOTER.substitute(footer=f"{_e(branding.store_name)} Support System")
    )
