# qr.py
import base64
from io import BytesIO

import qrcode

SEPARATOR = "|"


def qr_payload(ticket_id, email: str) -> str:
    return f"{ticket_id}{SEPARATOR}{email}"


def parse_payload(data) -> tuple[str, str] | None:
    """Split a scanned payload back into (ticket_id, email); None when malformed."""
    parts = str(data if data is not None else "").split(SEPARATOR)
    if len(parts) != 2:
        return None
    ticket_id, email = parts
    if not ticket_id or not email:
        return None
    return ticket_id, email


def build_qr(payload: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    return qr


def encode(ticket_id, email: str) -> bytes:
    """Deterministic PNG of the "<ticket_id>|<email>" payload."""
    img = build_qr(qr_payload(ticket_id, email)).make_image(fill_color="black", back_color="white")
    buffered = BytesIO()
    img.save(buffered, "PNG")
    return buffered.getvalue()


def encode_data_url(ticket_id, email: str) -> str:
    png = encode(ticket_id, email)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def decode_data_url(data_url: str | None) -> bytes | None:
    """PNG bytes from a stored data URL, or None when it is not an image data URL."""
    if not data_url or not data_url.startswith("data:image"):
        return None
    try:
        _, b64 = data_url.split(",", 1)
        raw = base64.b64decode(b64, validate=True)
    except (ValueError, TypeError):
        return None
    return raw or None
