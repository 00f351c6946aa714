"""
Email Templates

FLOW OVERVIEW
- choose_auto_response_template(payload) → slug
  • newsletter-welcome        when source is newsletter-modal (or interest 'newsletter')
  • booking-request-confirmation when service/message mention a booking keyword
    or an event date was given
  • contact-form-confirmation otherwise
- lead_admin_notification / lead_auto_response → (subject, html)
- FOLLOW_UP_TEMPLATES + follow_up_html / follow_up_fallback_html
- session_notice_html / session_notice_sms → reminder and confirmation notices
"""

from datetime import datetime
from .validators import escape_html


BOOKING_KEYWORDS = ('wedding', 'event', 'portrait', 'session', 'photoshoot', 'commercial')

AUTO_RESPONSE_SUBJECTS = {
    'newsletter-welcome': 'Welcome to the Studio37 Newsletter!',
    'booking-request-confirmation': 'We Received Your Booking Request!',
    'contact-form-confirmation': 'Thanks for Contacting Studio37!',
}

FOLLOW_UP_TEMPLATES = {
    'day1': {
        'subject': 'Thank You for Reaching Out to Studio37! 📸',
        'type': 'thank-you',
        'prompt': ('Generate a warm, personalized welcome email body for a photography lead named {name} '
                   'thanking them for their inquiry. Keep it friendly and brief (3-4 sentences). '
                   'Include a call-to-action to book a consultation. Use HTML format.'),
    },
    'day3': {
        'subject': "Don't Miss Out - Your Session Awaits! ⏰",
        'type': 'reminder',
        'prompt': ('Generate a friendly reminder email body for a photography lead named {name} who '
                   'inquired about our services 3 days ago. Highlight what makes our sessions special '
                   'and encourage them to book. Keep it concise (3-4 sentences). Use HTML format.'),
    },
    'day7': {
        'subject': 'Last Chance - Limited Availability This Month 🔥',
        'type': 'final-offer',
        'prompt': ('Generate an urgent final-offer email body for a photography lead named {name} with '
                   'limited-time availability. Mention special pricing or bonuses for booking this month. '
                   'Keep it persuasive but not pushy (3-4 sentences). Use HTML format.'),
    },
}

BRAND_HEADER = (
    '<tr><td style="padding: 40px 20px; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); '
    'text-align: center;"><h1 style="color: white; margin: 0; font-size: 28px;">Studio37</h1>'
    '<p style="color: rgba(255,255,255,0.8); margin: 8px 0 0 0;">Professional Photography</p></td></tr>'
)


def _or_dash(value):
    return escape_html(value) if value else '—'


def choose_auto_response_template(payload):
    service = (payload.get('service_interest') or '').lower()
    message = (payload.get('message') or '').lower()

    if payload.get('source') == 'newsletter-modal' or service == 'newsletter':
        return 'newsletter-welcome'

    is_booking_request = any(keyword in service or keyword in message for keyword in BOOKING_KEYWORDS)
    if is_booking_request or payload.get('event_date'):
        return 'booking-request-confirmation'

    return 'contact-form-confirmation'


def lead_admin_notification(lead, site_url, submitted_at=None):
    submitted_at = submitted_at or datetime.utcnow()
    message_html = escape_html(lead.message).replace('\n', '<br>') if lead.message else '—'
    html = f"""
        <h2>🔔 New Lead Received</h2>
        <p><strong>Name:</strong> {_or_dash(lead.name)}</p>
        <p><strong>Email:</strong> {_or_dash(lead.email)}</p>
        <p><strong>Phone:</strong> {_or_dash(lead.phone)}</p>
        <p><strong>Service Interest:</strong> {_or_dash(lead.service_interest)}</p>
        <p><strong>Budget:</strong> {_or_dash(lead.budget_range)}</p>
        <p><strong>Event Date:</strong> {_or_dash(lead.event_date.isoformat() if lead.event_date else None)}</p>
        <p><strong>Message:</strong></p>
        <p>{message_html}</p>
        <p><strong>Source:</strong> {_or_dash(lead.source or 'web-form')}</p>
        <p><strong>Submitted:</strong> {submitted_at:%Y-%m-%d %H:%M} UTC</p>
        <p style="margin-top: 20px;"><a href="{site_url}/admin/leads" style="background: #3B82F6; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px; display: inline-block;">View Lead in Admin →</a></p>
    """
    subject = f"🔔 New Lead: {lead.name or lead.email or 'New contact'}"
    return subject, html


def lead_auto_response(lead, payload):
    """Return (template_slug, subject, html) for the visitor's confirmation email"""
    slug = choose_auto_response_template(payload)
    first_name = escape_html((lead.name or '').split(' ')[0])

    if slug == 'newsletter-welcome':
        body = ("<p>Thanks for joining our newsletter! You'll be the first to hear about seasonal "
                "mini-sessions, new galleries and photography tips.</p>")
    elif slug == 'booking-request-confirmation':
        body = f"""
            <p>We received your booking request and will be in touch within one business day.</p>
            <p><strong>Session type:</strong> {escape_html(payload.get('service_interest'))}<br>
            <strong>Preferred date:</strong> {escape_html(payload.get('event_date') or 'To be determined')}<br>
            <strong>Budget:</strong> {escape_html(payload.get('budget_range') or 'Not specified')}</p>
            <p><strong>Details:</strong><br>{escape_html(payload.get('message')).replace(chr(10), '<br>')}</p>
        """
    else:
        body = ("<p>Thanks for reaching out! We read every message personally and will reply "
                "within one business day.</p>")

    html = f"""
        <table cellpadding="0" cellspacing="0" border="0" width="100%">
          {BRAND_HEADER}
          <tr><td style="padding: 40px 20px;">
            <p>Hi {first_name},</p>
            {body}
            <p>Best regards,<br><strong>Studio37 Team</strong></p>
          </td></tr>
        </table>
    """
    return slug, AUTO_RESPONSE_SUBJECTS[slug], html


def follow_up_html(generated_body, lead_name, booking_url):
    return f"""
      <table cellpadding="0" cellspacing="0" border="0" width="100%" style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
        {BRAND_HEADER}
        <tr>
          <td style="padding: 40px 20px; background: white;">
            <div style="max-width: 600px; margin: 0 auto; color: #333;">
              <p>Hi {escape_html(lead_name)},</p>
              {generated_body}
              <div style="margin: 30px 0; text-align: center;">
                <a href="{booking_url}" style="display: inline-block; padding: 12px 30px; background: #667eea; color: white; text-decoration: none; border-radius: 6px; font-weight: 600;">Book Your Session Now</a>
              </div>
              <p style="color: #666; font-size: 14px; margin-top: 30px;">Questions? Reply to this email or call us at (936) 555-7337.</p>
              <p style="color: #999; font-size: 12px;">Studio37 • Pinehurst, TX</p>
            </div>
          </td>
        </tr>
      </table>
    """


def follow_up_fallback_html(lead_name, booking_url):
    return f"""
      <table cellpadding="0" cellspacing="0" border="0" width="100%">
        <tr><td style="padding: 40px 20px; background: #667eea; text-align: center; color: white;"><h1 style="margin: 0;">Studio37</h1></td></tr>
        <tr>
          <td style="padding: 40px 20px;">
            <p>Hi {escape_html(lead_name)},</p>
            <p>We'd love to help you capture your special moments. Book your session today and let's create something amazing together!</p>
            <div style="margin: 30px 0; text-align: center;">
              <a href="{booking_url}" style="display: inline-block; padding: 12px 30px; background: #667eea; color: white; text-decoration: none; border-radius: 6px;">Book Now</a>
            </div>
          </td>
        </tr>
      </table>
    """


def format_session_datetime(starts_at):
    """('Monday, January 5, 2026', '2:30 PM')"""
    date_str = f"{starts_at:%A}, {starts_at:%B} {starts_at.day}, {starts_at.year}"
    time_str = starts_at.strftime('%I:%M %p').lstrip('0')
    return date_str, time_str


def session_notice_subject(notice_type):
    if notice_type == 'reminder':
        return 'Reminder: Your Upcoming Session with Studio37'
    return 'Confirmed: Your Session with Studio37'


def session_notice_html(notice_type, name, starts_at, session_type=None, location=None, notes=None):
    is_reminder = notice_type == 'reminder'
    title = 'Session Reminder' if is_reminder else 'Session Confirmation'
    greeting = ('This is a friendly reminder about your upcoming session.' if is_reminder
                else "We're excited to confirm your upcoming session!")
    closing = ("We're looking forward to seeing you! If you need to reschedule, please let us know as soon as possible."
               if is_reminder else
               "If you have any questions or need to make changes, please don't hesitate to reach out.")
    date_str, time_str = format_session_datetime(starts_at)

    details = [('Date & Time', f"{date_str} at {time_str}")]
    if session_type:
        details.append(('Session Type', session_type))
    if location:
        details.append(('Location', location))
    if notes:
        details.append(('Additional Information', notes))
    detail_html = ''.join(
        f'<div class="detail"><div class="detail-label">{label}</div>'
        f'<div class="detail-value">{escape_html(value)}</div></div>'
        for label, value in details
    )

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="utf-8">
      <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; border-radius: 10px 10px 0 0; text-align: center; }}
        .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }}
        .detail {{ margin: 15px 0; padding: 15px; background: white; border-radius: 8px; }}
        .detail-label {{ font-weight: bold; color: #6b7280; font-size: 12px; text-transform: uppercase; margin-bottom: 5px; }}
        .detail-value {{ font-size: 16px; color: #111827; }}
      </style>
    </head>
    <body>
      <div class="container">
        <div class="header"><h1 style="margin: 0;">{title}</h1></div>
        <div class="content">
          <p>Hi {escape_html(name)},</p>
          <p>{greeting}</p>
          {detail_html}
          <p style="margin-top: 30px;">{closing}</p>
          <p>Best regards,<br><strong>Studio37 Team</strong></p>
        </div>
      </div>
    </body>
    </html>
    """


def session_notice_sms(notice_type, name, starts_at, location=None):
    prefix = 'Reminder' if notice_type == 'reminder' else 'Confirmed'
    date_str = f"{starts_at:%b} {starts_at.day}"
    time_str = starts_at.strftime('%I:%M %p').lstrip('0')
    location_text = f" at {location}" if location else ''
    return f"{prefix}: Hi {name}, your session is on {date_str} at {time_str}{location_text}. See you then! - Studio37"


def configuration_test_html(sent_at=None):
    sent_at = sent_at or datetime.utcnow()
    return f"""
        <h2>Email configuration test</h2>
        <p>If you can read this, outbound email from the Studio37 back office is working.</p>
        <p style="color: #666;">Sent {sent_at:%Y-%m-%d %H:%M} UTC</p>
    """
