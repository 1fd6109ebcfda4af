"""HTML bodies for payment emails. All interpolated values are escaped."""

from html import escape

_ENROLLMENT_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8" /><title>Course Purchase &amp; Enrollment Confirmation - StudyHub</title></head>
<body style="font-family: Arial, sans-serif; color: #333333;">
  <div style="max-width: 600px; margin: 0 auto;">
    <h1 style="color: #2563eb;">Payment Successful!</h1>
    <p>Dear {name},</p>
    <p>Thank you for your purchase! Your payment has been processed and your enrollment is complete.</p>
    <table style="border-collapse: collapse;">
      <tr><td><b>Amount Paid</b></td><td>&#8377;{amount}</td></tr>
      <tr><td><b>Order ID</b></td><td>{order_id}</td></tr>
      <tr><td><b>Payment ID</b></td><td>{payment_id}</td></tr>
    </table>
    <h3>Your Enrolled Courses</h3>
    <ul>{courses}</ul>
    <p><a href="{dashboard_url}">Start Learning Now</a></p>
  </div>
</body>
</html>"""

_PAYMENT_FAILED_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8" /><title>Payment Failed</title></head>
<body style="font-family: Arial, sans-serif; color: #333333;">
  <div style="max-width: 600px; margin: 0 auto;">
    <h1 style="color: #e74c3c;">Payment Failed</h1>
    <p>Dear <b>{name}</b>,</p>
    <p>We're sorry, but your payment could not be processed.</p>
    <p><b>Amount:</b> &#8377;{amount}<br /><b>Order ID:</b> {order_id}<br /><b>Reason:</b> {reason}</p>
    <p><a href="{courses_url}">Try Again</a></p>
    <p>Your cart items are still saved. You can complete the purchase anytime.</p>
  </div>
</body>
</html>"""

ENROLLMENT_SUBJECT = "Course Purchase & Enrollment Confirmation - StudyHub"
PAYMENT_FAILED_SUBJECT = "Payment Failed - StudyHub"


def format_inr(amount: int | float) -> str:
    """Indian digit grouping: 150000 -> 1,50,000."""
    whole = int(amount)
    digits = str(abs(whole))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return ("-" if whole < 0 else "") + digits


def enrollment_email(
    name: str,
    amount: int,
    order_id: str,
    payment_id: str,
    course_titles: list[str],
    frontend_url: str,
) -> tuple[str, str]:
    courses = "".join(f"<li>{escape(t)}</li>" for t in course_titles)
    html = _ENROLLMENT_HTML.format(
        name=escape(name),
        amount=format_inr(amount),
        order_id=escape(order_id),
        payment_id=escape(payment_id),
        courses=courses,
        dashboard_url=escape(f"{frontend_url.rstrip('/')}/dashboard"),
    )
    return ENROLLMENT_SUBJECT, html


def payment_failed_email(
    name: str, amount: int, order_id: str, reason: str, frontend_url: str
) -> tuple[str, str]:
    html = _PAYMENT_FAILED_HTML.format(
        name=escape(name),
        amount=format_inr(amount),
        order_id=escape(order_id),
        reason=escape(reason),
        courses_url=escape(f"{frontend_url.rstrip('/')}/courses"),
    )
    return PAYMENT_FAILED_SUBJECT, html
