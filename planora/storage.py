# storage.py
import json
import logging
import time

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from . import signing

log = logging.getLogger("planora.storage")

TICKETS_PREFIX = "tickets"
TEMPLATES_PREFIX = "ticket-templates/templates"
COVERS_PREFIX = "event-covers/public"

DEFAULT_TEMPLATE = {
    "brandPrimary": "#7C3AED",
    "brandAccent": "#EC4899",
    "brandDark": "#0F172A",
    "headerTitle": "ENTRY PASS",
}
TEMPLATE_KEYS = tuple(DEFAULT_TEMPLATE)


class StorageError(Exception):
    """Persisting an artifact to object storage failed."""


def ticket_pdf_path(ticket_id) -> str:
    return f"{TICKETS_PREFIX}/{ticket_id}.pdf"


def template_path(event_id) -> str:
    return f"{TEMPLATES_PREFIX}/{event_id}.json"


def _put(path: str, content: bytes) -> str:
    """Write bytes under an exact key, replacing whatever was there (upsert)."""
    try:
        if default_storage.exists(path):
            default_storage.delete(path)
        saved = default_storage.save(path, ContentFile(content))
    except OSError as e:
        raise StorageError(f"could not write {path}: {e}") from e
    if saved != path:
        raise StorageError(f"storage renamed {path} to {saved}")
    return saved


def _get(path: str) -> bytes | None:
    if not default_storage.exists(path):
        return None
    with default_storage.open(path, "rb") as f:
        return f.read()


# ---------- Ticket PDFs ----------

def upload_ticket_pdf(ticket_id, pdf_bytes: bytes) -> str:
    return _put(ticket_pdf_path(ticket_id), pdf_bytes)


def signed_pdf_url(ticket_id) -> str | None:
    path = ticket_pdf_path(ticket_id)
    try:
        if not default_storage.exists(path):
            return None
    except OSError as e:
        log.error("signed url err ticket_id=%s err=%s", ticket_id, e)
        return None
    return signing.generate_signed_url(path)


# ---------- Per-event branding ----------

def load_template(event_id) -> dict | None:
    """Raw branding JSON for an event, or None when absent or unreadable."""
    if not event_id:
        return None
    try:
        raw = _get(template_path(event_id))
    except OSError as e:
        log.warning("template read failed event_id=%s err=%s", event_id, e)
        return None
    if raw is None:
        return None
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        log.warning("template is not valid JSON event_id=%s", event_id)
        return None
    return data if isinstance(data, dict) else None


def resolve_template(template: dict | None) -> dict:
    """Merge an optional template over the static defaults, ignoring blanks."""
    merged = dict(DEFAULT_TEMPLATE)
    for key in TEMPLATE_KEYS:
        val = (template or {}).get(key)
        if isinstance(val, str) and val.strip():
            merged[key] = val.strip()
    return merged


def save_template(event_id, content: bytes) -> str:
    """Store a branding blob; content must be a JSON object."""
    data = json.loads(content.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("template must be a JSON object")
    return _put(template_path(event_id), content)


# ---------- Event covers ----------

def upload_cover(filename: str, content: bytes) -> str:
    """Store an event cover image and return its public URL."""
    name = f"{COVERS_PREFIX}/{int(time.time() * 1000)}-{filename or 'cover'}"
    saved = default_storage.save(name, ContentFile(content))
    return default_storage.url(saved)
