import io

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.models.order import Order


def render_invoice_pdf(order: Order, items: list) -> bytes:
    """Single-page invoice from the order's own snapshot fields."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    width, height = letter
    y = height - 50

    # Title
    c.setFont("Helvetica-Bold", 18)
    c.drawString(100, y, f"Invoice #{order.id}")
    y -= 30

    # Customer Info
    c.setFont("Helvetica", 12)
    c.drawString(100, y, f"Customer: {order.user_name or ''}")
    y -= 18
    c.drawString(100, y, f"Email: {order.user_email or ''}")
    y -= 18
    c.drawString(100, y, f"Date: {order.created_at.strftime('%Y-%m-%d')}")
    y -= 18
    c.drawString(100, y, f"Payment: {order.payment_method} ({order.payment_id})")
    y -= 18

    for line in (order.shipping_address or "").splitlines():
        c.drawString(100, y, line)
        y -= 15
    y -= 10

    # Items Header
    c.setFont("Helvetica-Bold", 12)
    c.drawString(100, y, "Items:")
    y -= 20

    c.setFont("Helvetica", 11)
    for item in items:
        if y < 80:
            c.showPage()
            c.setFont("Helvetica", 11)
            y = height - 50
        line = f"{item['book_name']} - Rs.{item['price_at_order']:.2f} x {item['quantity']} = Rs.{item['total']:.2f}"
        c.drawString(100, y, line)
        y -= 15

    # Totals
    y -= 20
    c.setFont("Helvetica-Bold", 12)
    c.drawString(100, y, f"Total: Rs.{order.total_amount:.2f}")
    y -= 20
    c.drawString(100, y, f"Status: {order.status}")

    c.save()
    return buffer.getvalue()
