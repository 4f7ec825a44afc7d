# utils/email.py
import requests
import structlog

from config import settings
from utils.exceptions import EmailDeliveryError

logger = structlog.get_logger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"


def render_invoice_html(invoice, organization_name: str, message: str = None) -> str:
     rows = "".join(
          f"<tr><td>{item.description}</td><td>{item.quantity}</td>"
          f"<td>{item.unit_price}</td><td>{item.amount}</td></tr>"
          for item in invoice.line_items
     )
     intro = f"<p>{message}</p>" if message else ""
     return f"""
          <h2>Invoice #{invoice.invoice_number}</h2>
          <p>From {organization_name}</p>
          {intro}
          <table>
               <tr><th>Description</th><th>Qty</th><th>Unit price</th><th>Amount</th></tr>
               {rows}
          </table>
          <p>Subtotal: {invoice.subtotal}</p>
          <p>Tax: {invoice.tax_amount}</p>
          <p>Discount: {invoice.discount_amount}</p>
          <h3 style="color:#F28D35">Total due: {invoice.total_amount}</h3>
          <p>Due date: {invoice.due_date.isoformat()}</p>
     """


def send_invoice_email(to_email: str, subject: str, html_content: str) -> None:
     """Send through the Brevo transactional API; EmailDeliveryError on any failure."""
     if not settings.BREVO_API_KEY:
          raise EmailDeliveryError("Email delivery is not configured")

     try:
          response = requests.post(
               BREVO_URL,
               headers={
                    "api-key": settings.BREVO_API_KEY,
                    "Content-Type": "application/json",
               },
               json={
                    "sender": {"name": settings.MAIL_SENDER_NAME, "email": settings.MAIL_SENDER_EMAIL},
                    "to": [{"email": to_email}],
                    "subject": subject,
                    "htmlContent": html_content,
               },
               timeout=10,
          )
     except requests.RequestException as e:
          logger.error("invoice_email_failed", to=to_email, error=str(e))
          raise EmailDeliveryError("Failed to send invoice email")

     if response.status_code not in (200, 201, 202):
          logger.error("invoice_email_failed", to=to_email, status=response.status_code, body=response.text)
          raise EmailDeliveryError("Failed to send invoice email")

     logger.info("invoice_email_sent", to=to_email, subject=subject)
