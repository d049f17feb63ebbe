"""
Transactional email service - SendGrid-based emails for form notifications,
quiz results, and payment confirmations.

Templates are addressed by name (e.g. "contact-notification") and receive a
plain data dict. User-supplied values are HTML-escaped before interpolation.
"""
import asyncio
import logging
from html import escape
from typing import Callable

from dolo.config import get_settings

logger = logging.getLogger(__name__)

CONSULT_URL = "https://cal.com/dolobuilds/quick-consult"

_WRAPPER = """
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 32px 20px; color: #333;">
  <div style="background: {accent}; padding: 28px; border-radius: 10px 10px 0 0; text-align: center;">
    <h1 style="color: white; margin: 0; font-size: 24px;">{title}</h1>
    {subtitle}
  </div>
  <div style="background: #f8f9fa; padding: 28px; border-radius: 0 0 10px 10px; line-height: 1.6;">
    {body}
  </div>
  <p style="color: #999; font-size: 12px; text-align: center; margin-top: 20px;">Dolo &mdash; Building Digital Excellence</p>
</div>
"""


def _html(title: str, body: str, accent: str = "#ff6b35", subtitle: str = "") -> str:
    sub = f'<p style="color: white; margin: 8px 0 0;">{subtitle}</p>' if subtitle else ""
    return _WRAPPER.format(accent=accent, title=title, subtitle=sub, body=body)


def _button(url: str, label: str, color: str = "#ff6b35") -> str:
    return (
        f'<a href="{escape(url)}" style="background: {color}; color: white; padding: 12px 24px; '
        f'text-decoration: none; border-radius: 6px; display: inline-block;">{escape(label)}</a>'
    )


def _v(data: dict, key: str, default: str = "") -> str:
    """Escaped string value for HTML bodies."""
    value = data.get(key)
    return escape(str(value)) if value not in (None, "") else escape(default)


def _site_url() -> str:
    return get_settings().app_base_url.rstrip("/")


# === TEMPLATES ===
# Each renderer returns (subject, html, text).

def _contact_notification(data: dict) -> tuple[str, str, str]:
    body = (
        "<h2 style=\"color: #ff6b35; margin-top: 0;\">Contact Information</h2>"
        f"<p><strong>Name:</strong> {_v(data, 'name')}</p>"
        f"<p><strong>Email:</strong> {_v(data, 'email')}</p>"
        f"<p><strong>Company:</strong> {_v(data, 'company', 'Not provided')}</p>"
        f"<p><strong>Source:</strong> {_v(data, 'source', 'contact-form')}</p>"
        f"<p><strong>Submission ID:</strong> {_v(data, 'submission_id', 'N/A')}</p>"
        "<h3 style=\"color: #ff6b35;\">Message</h3>"
        f"<p style=\"white-space: pre-wrap;\">{_v(data, 'message')}</p>"
        f"<div style=\"text-align: center; margin-top: 24px;\">{_button('mailto:' + str(data.get('email', '')), 'Reply to ' + str(data.get('name', '')))}</div>"
    )
    text = (
        "New Contact Form Submission\n\n"
        f"Name: {data.get('name', '')}\n"
        f"Email: {data.get('email', '')}\n"
        f"Company: {data.get('company') or 'Not provided'}\n"
        f"Source: {data.get('source') or 'contact-form'}\n\n"
        f"Message:\n{data.get('message', '')}\n\n"
        f"Reply to: {data.get('email', '')}\n"
    )
    subject = f"New Contact Form Submission from {data.get('name', '')}"
    return subject, _html("New Contact Form Submission", body), text


def _welcome(data: dict) -> tuple[str, str, str]:
    name = data.get("customer_name") or data.get("name") or "there"
    token = data.get("chat_access_token")
    portal_url = f"{_site_url()}/customer-portal/{token}" if token else ""

    portal_html = ""
    portal_text = ""
    if token:
        portal_html = (
            "<div style=\"background: #e3f2fd; padding: 20px; border-radius: 8px; margin: 20px 0;\">"
            "<h2 style=\"color: #1976d2; margin-top: 0;\">Your Customer Portal</h2>"
            "<p>Your unique chat access code:</p>"
            f"<p style=\"font-family: monospace; font-size: 16px; font-weight: bold;\">{escape(token)}</p>"
            f"<div style=\"text-align: center;\">{_button(portal_url, 'Access Your Portal', '#2196f3')}</div>"
            "</div>"
        )
        portal_text = f"\nYour chat access code: {token}\nAccess your portal: {portal_url}\n"

    body = (
        f"<p><strong>Project Type:</strong> {_v(data, 'project_type', 'Website Development')}</p>"
        f"{portal_html}"
        "<h3 style=\"color: #ff6b35;\">What's Next?</h3>"
        "<ul>"
        "<li>Our team will review your project details within 24 hours</li>"
        "<li>You'll receive a project timeline and next steps via email</li>"
        "<li>We'll schedule a kickoff call to discuss requirements</li>"
        "</ul>"
    )
    text = (
        f"Welcome to Dolo, {name}!\n\n"
        f"Project Type: {data.get('project_type') or 'Website Development'}\n"
        f"{portal_text}\n"
        "What's next:\n"
        "- Our team will review your project details within 24 hours\n"
        "- You'll receive a project timeline and next steps via email\n"
        "- We'll schedule a kickoff call to discuss requirements\n\n"
        "-- Dolo"
    )
    return (
        "Welcome to Dolo - Your Payment is Confirmed!",
        _html("Payment Confirmed!", body, subtitle=f"Welcome to Dolo, {escape(name)}!"),
        text,
    )


def _payment_confirmation(data: dict) -> tuple[str, str, str]:
    name = data.get("customer_name") or "Valued Customer"
    amount = float(data.get("amount") or 0)
    rush = bool(data.get("rush_delivery"))
    invoice = data.get("invoice_number")

    body = (
        f"<p>Hi {escape(name)}, thank you for your payment.</p>"
        f"<p><strong>Amount Paid:</strong> ${amount:,.2f}</p>"
        + (f"<p><strong>Project Type:</strong> {_v(data, 'project_type')}</p>" if data.get("project_type") else "")
        + (f"<p><strong>Invoice:</strong> {escape(str(invoice))}</p>" if invoice else "")
        + (f"<p><strong>Project ID:</strong> #{_v(data, 'project_id')}</p>" if data.get("project_id") else "")
        + ("<p><strong>Rush Delivery:</strong> Included</p>" if rush else "")
    )
    text = (
        f"Hi {name}, thank you for your payment.\n\n"
        f"Amount Paid: ${amount:,.2f}\n"
        + (f"Project Type: {data['project_type']}\n" if data.get("project_type") else "")
        + (f"Invoice: {invoice}\n" if invoice else "")
        + (f"Project ID: #{data['project_id']}\n" if data.get("project_id") else "")
        + ("Rush Delivery: Included\n" if rush else "")
        + "\n-- Dolo"
    )
    return "Dolo Payment Confirmation", _html("Payment Received", body), text


def _private_build_application(data: dict) -> tuple[str, str, str]:
    body = (
        "<h2 style=\"color: #6366f1; margin-top: 0;\">Client Information</h2>"
        f"<p><strong>Name:</strong> {_v(data, 'name')}</p>"
        f"<p><strong>Email:</strong> {_v(data, 'email')}</p>"
        f"<p><strong>Company:</strong> {_v(data, 'company', 'Not provided')}</p>"
        f"<p><strong>Project Type:</strong> {_v(data, 'project_type')}</p>"
        f"<p><strong>Budget Range:</strong> {_v(data, 'budget')}</p>"
        f"<p><strong>Timeline:</strong> {_v(data, 'timeline')}</p>"
        f"<p><strong>Referral Source:</strong> {_v(data, 'referral_source', 'Not provided')}</p>"
        "<h3 style=\"color: #6366f1;\">Project Vision</h3>"
        f"<p style=\"white-space: pre-wrap;\">{_v(data, 'vision')}</p>"
        f"<div style=\"text-align: center; margin-top: 24px;\">{_button(CONSULT_URL, 'Schedule Consultation', '#6366f1')}</div>"
    )
    text = (
        "New Private Build Application\n\n"
        f"Name: {data.get('name', '')}\n"
        f"Email: {data.get('email', '')}\n"
        f"Company: {data.get('company') or 'Not provided'}\n"
        f"Project Type: {data.get('project_type', '')}\n"
        f"Budget Range: {data.get('budget', '')}\n"
        f"Timeline: {data.get('timeline', '')}\n"
        f"Referral Source: {data.get('referral_source') or 'Not provided'}\n\n"
        f"Project Vision:\n{data.get('vision', '')}\n\n"
        f"Schedule Consultation: {CONSULT_URL}\n"
    )
    subject = f"New Private Build Application from {data.get('name', '')}"
    return subject, _html("New Private Build Application", body, accent="#6366f1"), text


def _private_build_confirmation(data: dict) -> tuple[str, str, str]:
    application_id = data.get("application_id") or "N/A"
    body = (
        "<p>Thank you for your interest in our Private Build service! "
        "We've received your application.</p>"
        f"<p><strong>Project Type:</strong> {_v(data, 'project_type')}</p>"
        f"<p><strong>Budget Range:</strong> {_v(data, 'budget')}</p>"
        f"<p><strong>Timeline:</strong> {_v(data, 'timeline')}</p>"
        f"<p><strong>Application ID:</strong> #{escape(str(application_id))}</p>"
        "<h3 style=\"color: #6366f1;\">What Happens Next?</h3>"
        "<ol>"
        "<li><strong>Application Review (24-48 hours)</strong></li>"
        "<li><strong>Strategy Call</strong></li>"
        "<li><strong>Custom Proposal</strong></li>"
        "</ol>"
        f"<div style=\"text-align: center; margin-top: 24px;\">{_button(CONSULT_URL, 'Schedule a Call', '#6366f1')}</div>"
    )
    text = (
        f"Thank you {data.get('name', '')}!\n\n"
        "Your Private Build application has been received.\n\n"
        f"Project Type: {data.get('project_type', '')}\n"
        f"Budget Range: {data.get('budget', '')}\n"
        f"Timeline: {data.get('timeline', '')}\n"
        f"Application ID: #{application_id}\n\n"
        "Next: application review (24-48 hours), strategy call, custom proposal.\n\n"
        f"Schedule a Call: {CONSULT_URL}\n"
    )
    return (
        "Private Build Application Received - Next Steps",
        _html("Application Received!", body, accent="#6366f1", subtitle=f"Thank you {_v(data, 'name')}!"),
        text,
    )


def _quiz_result(data: dict) -> tuple[str, str, str]:
    plan = data.get("plan", "")
    link = str(data.get("link", ""))
    body = (
        f"<h2 style=\"color: #10b981; margin-top: 0;\">Recommended Plan: {escape(plan)}</h2>"
        f"<p>{_v(data, 'description')}</p>"
        f"<div style=\"text-align: center; margin: 24px 0;\">{_button(link, 'Start My ' + plan + ' Website', '#10b981')}</div>"
        f"<p>Questions? {_button(_site_url() + '/contact', 'Contact Our Team', '#0277bd')}</p>"
    )
    text = (
        f"Hi {data.get('name') or 'there'},\n\n"
        f"YOUR RECOMMENDED PLAN: {plan}\n\n"
        f"{data.get('description', '')}\n\n"
        f"Get started: {link}\n\n"
        f"Questions? {_site_url()}/contact\n\n"
        "-- The Dolo Team"
    )
    return (
        f"Your Personalized Website Plan: {plan}",
        _html("Your Perfect Plan is Ready!", body, accent="#10b981", subtitle=f"Hi {_v(data, 'name', 'there')}!"),
        text,
    )


TEMPLATES: dict[str, Callable[[dict], tuple[str, str, str]]] = {
    "contact-notification": _contact_notification,
    "welcome": _welcome,
    "payment-confirmation": _payment_confirmation,
    "private-build-application": _private_build_application,
    "private-build-confirmation": _private_build_confirmation,
    "quiz-result": _quiz_result,
}


def is_email_configured() -> bool:
    return bool(get_settings().sendgrid_api_key)


def render_template(template: str, data: dict) -> tuple[str, str, str]:
    """Render (subject, html, text). Raises ValueError for unknown templates."""
    renderer = TEMPLATES.get(template)
    if renderer is None:
        raise ValueError(f"Unknown email template: {template}")
    return renderer(data)


async def _send_via_sendgrid(to_email: str, subject: str, html_content: str, text_content: str) -> str:
    """Send through SendGrid and return the provider message id."""
    settings = get_settings()
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail, Email, To, Content

    message = Mail(
        from_email=Email(settings.from_email, settings.from_name),
        to_emails=To(to_email),
        subject=subject,
    )
    message.content = [
        Content("text/plain", text_content),
        Content("text/html", html_content),
    ]

    sg = SendGridAPIClient(api_key=settings.sendgrid_api_key)
    # Offload synchronous SendGrid SDK call to thread pool
    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(None, lambda: sg.send(message))
    return response.headers.get("X-Message-Id", "")


async def send_email(template: str, to: str, data: dict) -> dict:
    """
    Render and send a named template.

    Returns: {"success": bool, "message_id": str|None, "error": str|None}
    """
    if not is_email_configured():
        logger.warning("Email service not configured - skipping %s email", template)
        return {"success": False, "message_id": None, "error": "Email service not configured"}

    try:
        subject, html_content, text_content = render_template(template, data)
        message_id = await _send_via_sendgrid(to, subject, html_content, text_content)
        logger.info(
            "Email sent: template=%s to=%s",
            template, to[:20] + "***",
        )
        return {"success": True, "message_id": message_id, "error": None}
    except Exception as e:
        logger.error(
            "Email failed: template=%s to=%s error=%s",
            template, to[:20] + "***", str(e),
        )
        return {"success": False, "message_id": None, "error": str(e)}


async def send_admin_notification(template: str, data: dict) -> dict:
    """Send a template to the configured admin inbox."""
    return await send_email(template, get_settings().admin_email, data)
