# label_reader.py
# Reads a serial number off a label photo with the vision model - Serial Scout

import base64
import json
import logging
import os
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import bleach
import markdown
import openai
from PIL import Image, UnidentifiedImageError

from decoder import normalize_serial
from serial_format import DEFAULT_FORMAT

logger = logging.getLogger(__name__)

_VISION_MODEL = os.getenv("VISION_MODEL", "gpt-4o")
_VISION_MAXTOK = int(os.getenv("VISION_MAXTOK", "200"))
_OCR_MAXTOK = 600
_MAX_EDGE = 1600

_LABEL_PROMPT = (
    "You are a device label expert. "
    "Extract ONLY the following from the label or packaging in this photo: "
    "brand (if shown), model number, and serial number. "
    "Look for fields labeled 'Serial No', 'Serial', 'S/N', '(S)', or similar. "
    "Serial numbers are 12 characters of digits and capital letters. "
    "Ignore barcodes, use only the printed letters/numbers. "
    "Respond ONLY with valid JSON like this: "
    '{"brand": "...", "model": "...", "serial": "..."} '
    "If any value is not found, return an empty string for that field."
)

_OCR_PROMPT = (
    "You are an OCR engine. Extract ALL readable text from the uploaded device label photo, including numbers and letters. "
    "Respond ONLY with a plain text list. Do NOT try to interpret it. Do NOT reply in JSON."
)

_OCR_TAGS = ["p", "ul", "ol", "li", "code", "pre", "strong", "em", "br"]


class LabelReadError(Exception):
    """Raised when a photo cannot be read or the vision call fails."""


@dataclass(frozen=True)
class LabelReading:
    serial: str = ""
    brand: str = ""
    model: str = ""
    ocr_text: Optional[str] = None


_client = None


def _get_client():
    global _client
    if _client is None:
        _client = openai.OpenAI(api_key=os.getenv("OPENAI_API_KEY"))
    return _client


def prepare_image(image_bytes):
    """Re-encode an upload as a bounded-size RGB JPEG."""
    if not image_bytes:
        raise LabelReadError("No image uploaded.")
    try:
        img = Image.open(BytesIO(image_bytes))
        img = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise LabelReadError(f"Unreadable image: {e}") from e
    img.thumbnail((_MAX_EDGE, _MAX_EDGE))
    out = BytesIO()
    img.save(out, format="JPEG", quality=90)
    return out.getvalue()


def _image_message(jpeg_bytes):
    base64_img = base64.b64encode(jpeg_bytes).decode("utf-8")
    return {
        "role": "user",
        "content": [
            {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{base64_img}"}},
        ],
    }


def _ask(client, prompt, jpeg_bytes, max_tokens):
    try:
        resp = client.chat.completions.create(
            model=_VISION_MODEL,
            messages=[{"role": "system", "content": prompt}, _image_message(jpeg_bytes)],
            max_tokens=max_tokens,
        )
    except openai.OpenAIError as e:
        raise LabelReadError(f"Vision model error: {e}") from e
    return (resp.choices[0].message.content or "").strip()


def parse_label_json(raw):
    """Pull the JSON object out of a model reply, tolerating code fences."""
    raw = (raw or "").strip()
    if "```json" in raw:
        raw = raw.split("```json")[-1].split("```")[0].strip()
    elif "```" in raw:
        raw = raw.split("```")[1].strip()
    if not raw.startswith("{"):
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def read_label(image_bytes, client=None, serial_format=DEFAULT_FORMAT):
    """Ask the vision model for brand/model/serial; falls back to raw OCR text when no serial comes back."""
    jpeg = prepare_image(image_bytes)
    client = client or _get_client()

    data = parse_label_json(_ask(client, _LABEL_PROMPT, jpeg, _VISION_MAXTOK))
    if data:
        serial = normalize_serial(str(data.get("serial") or ""), serial_format)
        if serial:
            return LabelReading(
                serial=serial,
                brand=str(data.get("brand") or "").strip(),
                model=str(data.get("model") or "").strip(),
            )

    logger.info({"event": "label_ocr_fallback"})
    return LabelReading(ocr_text=_ask(client, _OCR_PROMPT, jpeg, _OCR_MAXTOK))


def render_ocr_text(text):
    """Markdown to sanitized HTML for showing OCR output."""
    if not text:
        return ""
    html = markdown.markdown(text, extensions=["extra"], output_format="html")
    return bleach.clean(
        html,
        tags=set(bleach.sanitizer.ALLOWED_TAGS) | set(_OCR_TAGS),
        strip=True,
    )
