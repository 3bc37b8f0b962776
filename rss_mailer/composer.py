"""Message composition for RSS Mailer."""

import base64
import html
from email.message import EmailMessage
from email.utils import formataddr

from .models import FeedItem


def build_html_body(item: FeedItem) -> str:
    """Build the HTML body shared by every recipient of an item."""
    body = "<html><body>"

    if item.summary:
        body += f"<p>{html.escape(item.summary, quote=False)}</p>"

    href = html.escape(item.read_more_link, quote=True)
    body += f'<p><a href="{href}">Read More</a></p>'
    body += "</body></html>"
    return body


def build_message(
    from_name: str,
    from_address: str,
    to_name: str,
    to_address: str,
    subject: str,
    html_body: str,
) -> EmailMessage:
    """Compose a single-part HTML message."""
    message = EmailMessage()
    message["From"] = formataddr((from_name, from_address))
    message["To"] = formataddr((to_name, to_address))
    # Header values must be single-line
    message["Subject"] = " ".join(subject.split())
    message.set_content(html_body, subtype="html", charset="utf-8")
    return message


def encode_raw(message: EmailMessage) -> str:
    """Encode a message as unpadded base64url for the Gmail ``raw`` field."""
    encoded = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")
    return encoded.rstrip("=")
