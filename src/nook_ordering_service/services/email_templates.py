"""HTML and plain-text bodies for transactional email.

Every value interpolated into HTML goes through ``html.escape``.
"""

from dataclasses import dataclass, field
from html import escape

from nook_ordering_service.models.api_models import CartLine

_STYLE = """
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6;
           margin: 0; padding: 0; background: #f4f4f7; }
    .container { max-width: 600px; margin: 40px auto; background: white; border-radius: 10px;
                 box-shadow: 0 10px 30px rgba(0,0,0,0.1); overflow: hidden; }
    .header { background: %(accent)s; color: white; padding: 30px; text-align: center; }
    .header h1 { margin: 0; font-size: 28px; font-weight: 300; }
    .content { padding: 40px; }
    .content h2 { color: #333; margin-bottom: 20px; font-size: 24px; }
    .content p { color: #666; font-size: 16px; }
    .button { display: inline-block; background: %(accent)s; color: white; padding: 15px 30px;
              text-decoration: none; border-radius: 25px; font-weight: bold; }
    .notice { background: #fff3cd; color: #856404; padding: 15px; border-radius: 5px;
              margin: 20px 0; font-size: 14px; }
    table { width: 100%%; border-collapse: collapse; margin: 20px 0; }
    th, td { text-align: left; padding: 8px; border-bottom: 1px solid #eee; }
    .footer { background: #f8f9fa; padding: 20px; text-align: center; color: #888; font-size: 14px; }
"""

GREEN = "#4CAF50"
BLUE = "#2563eb"
ORANGE = "#d97706"


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


@dataclass
class OrderEmailData:
    """Details of a submitted order shown in confirmation and notification email."""

    order_number: str
    total_amount: float
    delivery_type: str
    requested_date: str
    requested_time: str
    estimated_time: str
    phone_number: str
    email: str
    delivery_address: str | None = None
    special_instructions: str | None = None
    lines: list[CartLine] = field(default_factory=list)


def _page(title: str, business_name: str, accent: str, body: str, footer: str) -> str:
    name = escape(business_name)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)} - {name}</title>
  <style>{_STYLE % {"accent": accent}}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{name}</h1></div>
    <div class="content">{body}</div>
    <div class="footer">{footer}<p>&copy; {name}. All rights reserved.</p></div>
  </div>
</body>
</html>"""


def verification_email(business_name: str, verification_url: str) -> RenderedEmail:
    name = escape(business_name)
    url = escape(verification_url, quote=True)
    body = f"""
      <h2>Verify Your Email Address</h2>
      <p>Welcome to {name}! Please click the button below to verify your email address
      and complete your registration.</p>
      <p style="text-align:center"><a href="{url}" class="button">Verify Email Address</a></p>
      <div class="notice">This verification link will expire in 24 hours for security reasons.</div>
      <p style="font-size: 14px; color: #888;">If the button doesn't work, copy and paste this
      link into your browser:<br><a href="{url}" style="word-break: break-all;">{url}</a></p>"""
    footer = f"<p>If you didn't create an account with {name}, you can safely ignore this email.</p>"

    text = (
        f"Welcome to {business_name}!\n\n"
        f"Please verify your email address by opening the link below:\n{verification_url}\n\n"
        "This verification link will expire in 24 hours for security reasons.\n\n"
        f"If you didn't create an account with {business_name}, you can safely ignore this email.\n"
    )
    return RenderedEmail(
        subject=f"Verify your email address - {business_name}",
        html=_page("Verify Your Email", business_name, GREEN, body, footer),
        text=text,
    )


def password_reset_email(business_name: str, reset_url: str) -> RenderedEmail:
    name = escape(business_name)
    url = escape(reset_url, quote=True)
    body = f"""
      <h2>Reset Your Password</h2>
      <p>We received a request to reset the password for your {name} account.</p>
      <p style="text-align:center"><a href="{url}" class="button">Reset Password</a></p>
      <div class="notice">This password reset link will expire in 1 hour for security reasons.</div>
      <p>If you didn't request this password reset, please ignore this email.
      Your account remains secure.</p>
      <p style="font-size: 14px; color: #888;">If the button doesn't work, copy and paste this
      link into your browser:<br><a href="{url}" style="word-break: break-all;">{url}</a></p>"""
    footer = "<p>This link can only be used once and will expire soon.</p>"

    text = (
        f"Reset Your Password - {business_name}\n\n"
        f"We received a request to reset the password for your {business_name} account.\n\n"
        f"Open the link below to reset your password:\n{reset_url}\n\n"
        "This password reset link will expire in 1 hour for security reasons.\n\n"
        "If you didn't request this password reset, please ignore this email. "
        "Your account remains secure.\n"
    )
    return RenderedEmail(
        subject=f"Reset your password - {business_name}",
        html=_page("Reset Your Password", business_name, BLUE, body, footer),
        text=text,
    )


def _lines_table(lines: list[CartLine]) -> str:
    rows = []
    for line in lines:
        items = ", ".join(escape(item.name or f"Item {item.menu_item_id}") for item in line.included_items)
        label = escape(line.category_name or f"Category {line.category_id}")
        if line.department_label:
            label += f" ({escape(line.department_label)})"
        rows.append(
            f"<tr><td>{label}<br><small>{items}</small></td>"
            f"<td>{line.quantity}</td><td>&pound;{line.total_price:.2f}</td></tr>"
        )
    return (
        "<table><tr><th>Item</th><th>Qty</th><th>Price</th></tr>" + "".join(rows) + "</table>"
    )


def _lines_text(lines: list[CartLine]) -> str:
    return "\n".join(
        f"- {line.category_name or line.category_id} x{line.quantity}: £{line.total_price:.2f}"
        for line in lines
    )


def _fulfilment_html(order: OrderEmailData) -> str:
    parts = [
        f"<p><strong>{'Delivery' if order.delivery_type == 'delivery' else 'Collection'}:</strong> "
        f"{escape(order.requested_date)} at {escape(order.requested_time)}</p>"
    ]
    if order.delivery_address:
        parts.append(f"<p><strong>Address:</strong> {escape(order.delivery_address)}</p>")
    if order.special_instructions:
        parts.append(f"<p><strong>Instructions:</strong> {escape(order.special_instructions)}</p>")
    return "".join(parts)


def order_confirmation_email(business_name: str, order: OrderEmailData) -> RenderedEmail:
    body = f"""
      <h2>Thank you for your order!</h2>
      <p>Your order number is <strong>{escape(order.order_number)}</strong>.</p>
      {_fulfilment_html(order)}
      <p><strong>Estimated preparation time:</strong> {escape(order.estimated_time)}</p>
      {_lines_table(order.lines)}
      <p><strong>Total: &pound;{order.total_amount:.2f}</strong></p>"""
    footer = "<p>Questions about your order? Reply to this email or give us a call.</p>"

    text = (
        f"Thank you for your order with {business_name}!\n\n"
        f"Order number: {order.order_number}\n"
        f"{order.delivery_type.title()}: {order.requested_date} at {order.requested_time}\n"
        + (f"Address: {order.delivery_address}\n" if order.delivery_address else "")
        + f"Estimated preparation time: {order.estimated_time}\n\n"
        f"{_lines_text(order.lines)}\n\n"
        f"Total: £{order.total_amount:.2f}\n"
    )
    return RenderedEmail(
        subject=f"Order confirmation {order.order_number} - {business_name}",
        html=_page("Order Confirmation", business_name, GREEN, body, footer),
        text=text,
    )


def business_notification_email(business_name: str, order: OrderEmailData) -> RenderedEmail:
    body = f"""
      <h2>New order {escape(order.order_number)}</h2>
      <p><strong>Customer email:</strong> {escape(order.email)}<br>
      <strong>Customer phone:</strong> {escape(order.phone_number)}</p>
      {_fulfilment_html(order)}
      {_lines_table(order.lines)}
      <p><strong>Total: &pound;{order.total_amount:.2f}</strong></p>"""

    text = (
        f"New order {order.order_number}\n\n"
        f"Customer email: {order.email}\n"
        f"Customer phone: {order.phone_number}\n"
        f"{order.delivery_type.title()}: {order.requested_date} at {order.requested_time}\n"
        + (f"Address: {order.delivery_address}\n" if order.delivery_address else "")
        + (f"Instructions: {order.special_instructions}\n" if order.special_instructions else "")
        + f"\n{_lines_text(order.lines)}\n\nTotal: £{order.total_amount:.2f}\n"
    )
    return RenderedEmail(
        subject=f"New order {order.order_number} ({order.delivery_type})",
        html=_page("New Order", business_name, ORANGE, body, ""),
        text=text,
    )
