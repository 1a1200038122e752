# pdf.py
from __future__ import annotations

import logging
import os
from io import BytesIO
from typing import Optional, List

import requests
from django.conf import settings
from django.contrib.staticfiles import finders

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.graphics.barcode import qr
from reportlab.graphics.shapes import Drawing
from reportlab.graphics import renderPDF
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from . import qr as qr_codec
from .storage import resolve_template

log = logging.getLogger("planora.pdf")


# =====================================================================
# DESIGN TOKENS & LAYOUT
# =====================================================================

PAGE_W, PAGE_H = A4
MARGIN = 36            # pt, matches the 0.5in page margin of the pass layout

LEFT = MARGIN
RIGHT = PAGE_W - MARGIN

HEADER_H = 100
FOOTER_H = 80
EVENT_TOP = 120        # distance from the top edge
EVENT_H = 160
ATTENDEE_TOP = 300
QR_CARD_H = 220
QR_SIZE = 180
EVENT_IMG_W, EVENT_IMG_H = 120, 80

R_CARD = 12


def _hex(rgb: str, fallback: str = "#000000") -> colors.Color:
    try:
        rgb = (rgb or "").strip().lstrip("#")
        if len(rgb) == 3:
            rgb = "".join(ch * 2 for ch in rgb)
        r, g, b = tuple(int(rgb[i:i+2], 16) / 255 for i in (0, 2, 4))
        return colors.Color(r, g, b)
    except (ValueError, IndexError):
        return _hex(fallback)


WHITE       = colors.white
TEXT        = _hex("#111827")
MUTE        = _hex("#64748B")
SOFT        = _hex("#6B7280")
RULE        = _hex("#E5E7EB")
RULE_ACCENT = _hex("#FCE7F3")
OK_FILL     = _hex("#ECFDF5")
OK_STROKE   = _hex("#10B981")
OK_TEXT     = _hex("#16A34A")
WARN_FILL   = _hex("#FFFBEB")
WARN_STROKE = _hex("#F59E0B")
WARN_TEXT   = _hex("#B45309")
BAD_FILL    = _hex("#FEF2F2")
BAD_STROKE  = _hex("#EF4444")
BAD_TEXT    = _hex("#B91C1C")
MUTED_FILL  = _hex("#F1F5F9")
MUTED_STROKE = _hex("#94A3B8")
MUTED_TEXT  = _hex("#475569")

# status -> (fill, stroke, text)
BADGE_COLORS = {
    "issued": (OK_FILL, OK_STROKE, OK_TEXT),
    "pending": (WARN_FILL, WARN_STROKE, WARN_TEXT),
    "failed": (BAD_FILL, BAD_STROKE, BAD_TEXT),
    "cancelled": (BAD_FILL, BAD_STROKE, BAD_TEXT),
    "redeemed": (MUTED_FILL, MUTED_STROKE, MUTED_TEXT),
}

T_10 = 10
T_12 = 12
T_16 = 16
T_18 = 18
T_22 = 22
T_26 = 26

_FONT_READY = False
_FONT_BODY = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"


# =====================================================================
# FONT UTILITIES
# =====================================================================

def _find_static(*filenames: str) -> Optional[str]:
    """Try multiple filenames via Django finders and STATIC_ROOT."""
    for name in filenames:
        if not name:
            continue
        if os.path.isabs(name) and os.path.exists(name):
            return name

        p = finders.find(name)
        if p:
            return p if isinstance(p, str) else p[0]

        sroot = getattr(settings, "STATIC_ROOT", None)
        if sroot:
            cand = os.path.join(sroot, name)
            if os.path.exists(cand):
                return cand
    return None


def ensure_unicode_font() -> bool:
    """
    Register DejaVu Sans Regular/Bold if shipped with the static files so
    attendee names outside Latin-1 render. Falls back to Helvetica.
    """
    global _FONT_READY, _FONT_BODY, _FONT_BOLD
    if _FONT_READY:
        return _FONT_BODY.startswith("DejaVu")

    reg = _find_static("fonts/DejaVuSans.ttf", "DejaVuSans.ttf")
    bold = _find_static("fonts/DejaVuSans-Bold.ttf", "DejaVuSans-Bold.ttf")

    ok = False
    try:
        if reg:
            pdfmetrics.registerFont(TTFont("DejaVuSans", reg))
            _FONT_BODY = "DejaVuSans"
            ok = True
        if bold:
            pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", bold))
            _FONT_BOLD = "DejaVuSans-Bold"
        elif ok:
            _FONT_BOLD = "DejaVuSans"
    except Exception as e:
        log.warning("font registration failed, using Helvetica: %s", e)
        ok = False

    _FONT_READY = True
    return ok


# =====================================================================
# TEXT & ASSET HELPERS
# =====================================================================

def _text_width(c: canvas.Canvas, text: str, font: str, size: float) -> float:
    return c.stringWidth(text or "", font, size)


def _wrap_text(c: canvas.Canvas, text: str, max_w: float, font: str, size: float) -> List[str]:
    """Simple word-wrap avoiding mid-word breaks."""
    words = (text or "").split()
    lines, cur = [], ""
    for w in words:
        cand = (cur + " " + w).strip()
        if _text_width(c, cand, font, size) <= max_w or not cur:
            cur = cand
        else:
            lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def _ellipsis(c: canvas.Canvas, text: str, max_w: float, font: str, size: float) -> str:
    """Truncate with ellipsis without mid-word clipping."""
    txt = (text or "").strip()
    if _text_width(c, txt, font, size) <= max_w:
        return txt
    dots = "..."
    words = txt.split()
    if not words:
        return ""
    out = ""
    for w in words:
        cand = (out + " " + w).strip()
        if _text_width(c, cand + dots, font, size) <= max_w:
            out = cand
        else:
            break
    return (out or (txt[:1])) + dots


def _sanitize_colors(node):
    """Force None fill/stroke colors in a Drawing tree to black to avoid errors."""
    if hasattr(node, "fillColor") and node.fillColor is None:
        node.fillColor = colors.black
    if hasattr(node, "strokeColor") and node.strokeColor is None:
        node.strokeColor = colors.black
    for attr in ("contents", "children", "nodes"):
        kids = getattr(node, attr, None)
        if kids:
            for k in kids:
                _sanitize_colors(k)


def _draw_qr(c: canvas.Canvas, data: str, x: float, y: float, size: float = QR_SIZE):
    widget = qr.QrCodeWidget(data or "")
    bx, by, bw, bh = widget.getBounds()
    d = Drawing(size, size, transform=[size/(bw-bx), 0, 0, size/(bh-by), 0, 0])
    d.add(widget)
    _sanitize_colors(d)
    renderPDF.draw(d, c, x, y)


def _safe_img(c: canvas.Canvas, source, x: float, y: float,
              w: float, h: float, keep_aspect: bool = True) -> bool:
    """Draw an image from a path or bytes; False (and nothing drawn) on any failure."""
    if not source:
        return False
    try:
        img = ImageReader(BytesIO(source) if isinstance(source, (bytes, bytearray)) else source)
        if keep_aspect:
            iw, ih = img.getSize()
            r = min(w / iw, h / ih)
            rw, rh = iw * r, ih * r
            c.drawImage(img, x + (w - rw) / 2.0, y + (h - rh) / 2.0, rw, rh, mask='auto')
        else:
            c.drawImage(img, x, y, w, h, mask='auto')
        return True
    except Exception as e:
        log.warning("pdf image error: %s", e)
        return False


def fetch_event_image(url: str | None) -> bytes | None:
    """Download event artwork; any failure means no image, never an error."""
    if not url:
        return None
    timeout = getattr(settings, "EVENT_IMAGE_TIMEOUT", 5)
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp.content or None
    except requests.RequestException as e:
        log.info("event image unavailable url=%s err=%s", url, e)
        return None


def _top(y_from_top: float) -> float:
    """Convert a distance from the top edge to reportlab's bottom-up y."""
    return PAGE_H - y_from_top


# =====================================================================
# PRIMITIVES
# =====================================================================

def draw_card(c: canvas.Canvas, x: float, y_top: float, w: float, h: float,
              stroke: colors.Color, radius: float = R_CARD, fill: colors.Color | None = None):
    """Rounded card positioned by its top edge (distance from page top)."""
    c.saveState()
    c.setLineWidth(1.5)
    c.setStrokeColor(stroke)
    if fill is not None:
        c.setFillColor(fill)
    c.roundRect(x, _top(y_top + h), w, h, radius, stroke=1, fill=1 if fill is not None else 0)
    c.restoreState()


def draw_h_rule(c: canvas.Canvas, x1: float, y_top: float, x2: float, color: colors.Color = RULE):
    c.saveState()
    c.setStrokeColor(color)
    c.setLineWidth(1)
    c.line(x1, _top(y_top), x2, _top(y_top))
    c.restoreState()


# =====================================================================
# PAGE SECTIONS
# =====================================================================

def _header_band(c: canvas.Canvas, *, primary: colors.Color, title: str):
    c.setFillColor(primary)
    c.rect(0, _top(HEADER_H), PAGE_W, HEADER_H, stroke=0, fill=1)
    c.setFillColor(WHITE)
    c.setFont(_FONT_BOLD, T_26)
    c.drawString(LEFT, _top(32 + T_26), _ellipsis(c, title, RIGHT - LEFT, _FONT_BOLD, T_26))
    c.setFont(_FONT_BODY, T_12)
    c.drawString(LEFT, _top(64 + T_12), "Powered by PLANORA")


def _event_block(c: canvas.Canvas, *, event, ticket, primary: colors.Color, dark: colors.Color,
                 image_bytes: bytes | None):
    draw_card(c, LEFT, EVENT_TOP, RIGHT - LEFT, EVENT_H, stroke=primary)
    x = LEFT + 16
    text_w = PAGE_W - 240

    c.setFillColor(dark); c.setFont(_FONT_BOLD, T_18)
    c.drawString(x, _top(EVENT_TOP + 12 + T_18), "Event")

    title = getattr(event, "title", None) or str(ticket.event_id or "Event Ticket")
    c.setFillColor(primary); c.setFont(_FONT_BOLD, T_22)
    c.drawString(x, _top(EVENT_TOP + 36 + T_22), _ellipsis(c, title, text_w, _FONT_BOLD, T_22))

    c.setFillColor(MUTE); c.setFont(_FONT_BODY, T_12)
    c.drawString(x, _top(EVENT_TOP + 68 + T_12), f"Ticket ID: {ticket.id}")

    info = event_info_line(event)
    if info:
        c.setFillColor(SOFT); c.setFont(_FONT_BODY, T_10)
        c.drawString(x, _top(EVENT_TOP + 86 + T_10), _ellipsis(c, info, text_w, _FONT_BODY, T_10))

    desc = (getattr(event, "description", "") or "")[:140]
    if desc:
        c.setFillColor(SOFT); c.setFont(_FONT_BODY, T_10)
        yy = EVENT_TOP + 104 + T_10
        for line in _wrap_text(c, desc, text_w, _FONT_BODY, T_10)[:3]:
            c.drawString(x, _top(yy), line)
            yy += T_10 + 3

    if image_bytes:
        _safe_img(c, image_bytes, RIGHT - EVENT_IMG_W - 16, _top(EVENT_TOP + 12 + EVENT_IMG_H),
                  EVENT_IMG_W, EVENT_IMG_H)


def _attendee_block(c: canvas.Canvas, *, ticket, primary: colors.Color, dark: colors.Color):
    c.setFillColor(dark); c.setFont(_FONT_BOLD, T_16)
    c.drawString(LEFT, _top(ATTENDEE_TOP + T_16), "Attendee")
    draw_h_rule(c, LEFT, ATTENDEE_TOP + 24, RIGHT)

    rows = [("Name", ticket.name or "N/A"), ("Email", ticket.email or "N/A")]
    if ticket.phone:
        rows.append(("Phone", ticket.phone))

    yy = ATTENDEE_TOP + 36
    value_w = RIGHT - 180 - 120 - 12
    for label, value in rows:
        c.setFillColor(TEXT); c.setFont(_FONT_BODY, T_12)
        c.drawString(LEFT, _top(yy + T_12), label)
        c.setFillColor(primary); c.setFont(_FONT_BOLD, T_12)
        c.drawString(120, _top(yy + T_12), _ellipsis(c, str(value), value_w, _FONT_BOLD, T_12))
        yy += 24

    # status badge
    label, (fill, stroke, text) = status_badge(ticket)
    bw, bh = 140, 35
    bx, by_top = RIGHT - bw, ATTENDEE_TOP + 36
    c.saveState()
    c.setFillColor(fill); c.setStrokeColor(stroke); c.setLineWidth(1)
    c.rect(bx, _top(by_top + bh), bw, bh, stroke=1, fill=1)
    c.setFillColor(text); c.setFont(_FONT_BOLD, T_12)
    c.drawCentredString(bx + bw / 2.0, _top(by_top + bh / 2.0 + 4), label)
    c.restoreState()


def status_badge(ticket):
    """Badge label and (fill, stroke, text) colours for the ticket's current status."""
    status = getattr(ticket, "status", "") or ""
    label = ticket.get_status_display() if status else "ISSUED"
    return str(label).upper(), BADGE_COLORS.get(status, BADGE_COLORS["issued"])


def _qr_block(c: canvas.Canvas, *, ticket, accent: colors.Color, dark: colors.Color, qr_top: float):
    draw_card(c, LEFT, qr_top, RIGHT - LEFT, QR_CARD_H, stroke=accent)
    c.setFillColor(dark); c.setFont(_FONT_BOLD, T_16)
    c.drawString(LEFT + 16, _top(qr_top + 16 + T_16), "Scan at Entry")
    draw_h_rule(c, LEFT + 16, qr_top + 40, RIGHT - 16, RULE_ACCENT)

    size = QR_CARD_H - 60
    qx = (PAGE_W - size) / 2.0
    qy = _top(qr_top + 48 + size)
    drawn = _safe_img(c, qr_codec.decode_data_url(ticket.qr), qx, qy, size, size)
    if not drawn:
        _draw_qr(c, qr_codec.qr_payload(ticket.id, ticket.email), qx, qy, size=size)

    c.setFillColor(SOFT); c.setFont(_FONT_BODY, T_10)
    c.drawCentredString(PAGE_W / 2.0, _top(qr_top + QR_CARD_H + 14),
                        "Show this QR at entry. Do not share publicly.")


def _footer_band(c: canvas.Canvas, *, primary: colors.Color):
    c.setFillColor(primary)
    c.rect(0, 0, PAGE_W, FOOTER_H, stroke=0, fill=1)
    support = getattr(settings, "SUPPORT_EMAIL", "support@planora.app")
    c.setFillColor(WHITE); c.setFont(_FONT_BODY, T_12)
    c.drawString(LEFT, FOOTER_H - 26 - T_12, f"Need help? Contact {support}")
    c.setFont(_FONT_BODY, T_10)
    c.drawString(LEFT, FOOTER_H - 46 - T_10, "This pass is valid for one entry. Photo ID may be required.")


def event_info_line(event) -> str:
    """Date and location joined with a bullet; empty when neither is known."""
    parts = []
    date = getattr(event, "date", None)
    if date:
        parts.append(date.strftime("%b %d, %Y"))
    location = getattr(event, "location", None)
    if location:
        parts.append(location)
    return " • ".join(parts)


# =====================================================================
# PUBLIC API
# =====================================================================

def render_ticket_pdf(ticket, event=None, template: dict | None = None) -> bytes:
    """
    Single-page A4 entry pass. Every element sits at fixed coordinates;
    nothing here paginates. `event` and `template` are optional, missing
    branding falls back to the static defaults.
    """
    ensure_unicode_font()
    brand = resolve_template(template)
    primary = _hex(brand["brandPrimary"], "#7C3AED")
    accent = _hex(brand["brandAccent"], "#EC4899")
    dark = _hex(brand["brandDark"], "#0F172A")

    image_bytes = fetch_event_image(getattr(event, "image_url", None))

    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Entry Pass {ticket.id}")
    c.setAuthor("Planora")

    _header_band(c, primary=primary, title=brand["headerTitle"])
    _event_block(c, event=event, ticket=ticket, primary=primary, dark=dark, image_bytes=image_bytes)
    _attendee_block(c, ticket=ticket, primary=primary, dark=dark)
    _qr_block(c, ticket=ticket, accent=accent, dark=dark, qr_top=ATTENDEE_TOP + 120)
    _footer_band(c, primary=primary)

    c.showPage()
    c.save()
    return buf.getvalue()
