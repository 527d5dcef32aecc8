"""
Image handling for editorial content records.

A content record carries its picture in one of two Airtable columns:
  - "image": attachment list, filled by manual uploads
  - "image_url": plain text, filled with DALL-E (or other remote) URLs

Where the picture came from is never stored; it is read back from which
column holds data, attachment first.
"""
from typing import Any, Dict, Optional, Tuple

from seodash.models.content import ImageSource
from seodash.utils.fields import CONTENT_ATTACHMENT, CONTENT_IMAGE_URL, WRITE_NAMES, pick

AI_URL_MARKERS = ("oaidalleapi", "openai.com")
LOCAL_UPLOAD_PREFIX = "/uploads/"

ResolvedImage = Tuple[bool, Optional[str], Optional[ImageSource]]


def resolve_image(fields: Dict[str, Any]) -> ResolvedImage:
    """
    Work out (has_image, image_url, image_source) for a record's fields.

    1. attachment present with a URL on its first entry -> upload
    2. non-blank image_url text -> ai
    3. otherwise no image
    """
    attachments = pick(fields, CONTENT_ATTACHMENT)
    if isinstance(attachments, list) and attachments:
        first = attachments[0]
        if isinstance(first, dict) and first.get("url"):
            return True, first["url"], ImageSource.UPLOAD

    text_url = pick(fields, CONTENT_IMAGE_URL)
    if isinstance(text_url, str) and text_url.strip():
        return True, text_url.strip(), ImageSource.AI

    return False, None, None


def classify_image_url(url: str) -> str:
    """Return "ai", "upload" or "external" for an incoming image URL."""
    if any(marker in url for marker in AI_URL_MARKERS):
        return "ai"
    if url.startswith(LOCAL_UPLOAD_PREFIX):
        return "upload"
    return "external"


def image_fields_for(url: Optional[str], public_base_url: str) -> Dict[str, Any]:
    """
    Airtable fields to write for an image URL.

    Uploads go to the attachment column (Airtable fetches and re-hosts the
    file, so local paths are made absolute). Remote URLs go to the text
    column. DALL-E URLs expire, so they are written to both: the attachment
    keeps a durable copy.

    The column not used is explicitly cleared so a stale value can't win
    the resolution order. url=None clears both.
    """
    attachment_field = WRITE_NAMES["content_attachment"]
    url_field = WRITE_NAMES["content_image_url"]

    if not url:
        return {attachment_field: [], url_field: None}

    kind = classify_image_url(url)
    if kind == "upload":
        absolute = f"{public_base_url.rstrip('/')}{url}"
        return {attachment_field: [{"url": absolute}], url_field: None}
    if kind == "ai":
        return {attachment_field: [{"url": url}], url_field: url}
    return {attachment_field: [], url_field: url}
