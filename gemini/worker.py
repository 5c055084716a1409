"""
gemini/worker.py

Background worker for Gemini AI hair detection.
Uses a JSON response schema for structured output.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from PIL import Image, UnidentifiedImageError
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from errors import EmptyResultWarning, ExternalServiceError, InputError
from gemini.detections import parse_detections
from models import Annotation, FeatureKind
from settings import get_settings
from utils import extract_first_json_value

log = logging.getLogger(__name__)

# Labels the model is asked to classify into.  Phase and follicular-unit
# kinds stay manual.
DETECTABLE_KINDS = (FeatureKind.TERMINAL_HAIR, FeatureKind.VELLUS_HAIR)


RESPONSE_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "x": types.Schema(type=types.Type.NUMBER, description="The x-coordinate of the hair's center."),
            "y": types.Schema(type=types.Type.NUMBER, description="The y-coordinate of the hair's center."),
            "type": types.Schema(
                type=types.Type.STRING,
                description="The type of the hair ('Vellus Hair' or 'Terminal Hair').",
            ),
            "radius": types.Schema(type=types.Type.NUMBER, description="A suggested radius for the annotation circle."),
        },
        required=["x", "y", "type", "radius"],
        property_ordering=["x", "y", "type", "radius"],
    ),
)


def build_detection_prompt(width: int, height: int) -> str:
    """Build the trichoscopy detection prompt for a width x height image."""
    labels = " or ".join(f"'{k.value}'" for k in DETECTABLE_KINDS)
    return f"""You are a highly specialized AI assistant for trichoscopy, analyzing dermoscopic images of the human scalp. Your single most important goal is accuracy.

This image is EXACTLY {width} pixels wide and {height} pixels tall.

1. DEFINE THE REGION OF INTEREST: identify the central, brightly-lit, circular area of the scalp. This is your ONLY area of analysis.
2. IGNORE THE BACKGROUND: the dark ring around the center is the instrument's viewport. Do NOT place any annotation there.
3. ANNOTATE EVERY HAIR INSIDE THE REGION. For each hair:
   a. Classify it as {labels}:
      - 'Terminal Hair': thick, coarse, darkly pigmented.
      - 'Vellus Hair': noticeably thinner, shorter and lighter than terminal hairs.
   b. Give the (x, y) pixel coordinates of the hair's center in this {width}x{height} pixel space, origin at the top-left corner.
      Do NOT use normalized coordinates (0-1) or a 0-1000 range.
   c. Suggest a radius between 3 and 8 pixels, matching the hair's thickness.

Return ONLY a JSON array following the provided schema, with no other text."""


def encode_image_payload(image_path: str) -> Tuple[bytes, int, int]:
    """Re-encode the image as JPEG at native resolution.

    Returns:
        (jpeg bytes, width, height)

    Raises:
        InputError: If the image cannot be decoded.
    """
    try:
        with Image.open(image_path) as img:
            w, h = img.size
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InputError(f"Could not decode image for analysis: {e}") from e
    buf = io.BytesIO()
    rgb.save(buf, format="JPEG", quality=92)
    return buf.getvalue(), w, h


@dataclass
class DetectionResult:
    """Outcome of a successful detector call."""
    annotations: List[Annotation]
    warnings: List[str] = field(default_factory=list)
    raw_text: str = ""
    tokens_used: int = 0


def detect_annotations(image_path: str, model: str, client: Optional[Any] = None) -> DetectionResult:
    """
    Ask Gemini for hair annotations on *image_path*.

    Args:
        image_path: Source image path
        model: Gemini model name
        client: Optional pre-built ``genai.Client``; created from the
            configured API key environment variable when omitted

    Raises:
        ExternalServiceError: Missing credentials or a failed request.
        EmptyResultWarning: The request succeeded but yielded no usable annotation.
        InputError: The image cannot be decoded.
    """
    payload, w, h = encode_image_payload(image_path)

    if client is None:
        key_env = get_settings().settings.gemini.api_key_env
        api_key = os.environ.get(key_env, "").strip()
        if not api_key:
            raise ExternalServiceError(f"{key_env} is not set.")
        client = genai.Client(api_key=api_key)

    log.info("Sending %dx%d image to %s", w, h, model)
    try:
        response = client.models.generate_content(
            model=model,
            contents=[
                types.Part.from_bytes(data=payload, mime_type="image/jpeg"),
                build_detection_prompt(w, h),
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
            ),
        )
    except genai_errors.APIError as e:
        raise ExternalServiceError(f"Gemini request failed ({e.code}): {e.message}") from e
    except Exception as e:
        raise ExternalServiceError(f"Gemini request failed: {e}") from e

    text = (getattr(response, "text", None) or "").strip()
    tokens = 0
    usage = getattr(response, "usage_metadata", None)
    if usage:
        tokens = getattr(usage, "total_token_count", 0) or 0

    if not text:
        raise EmptyResultWarning("The model returned an empty response.")

    parsed = extract_first_json_value(text)
    if parsed is None:
        raise EmptyResultWarning("Model response did not contain parseable JSON.")

    annotations, warnings = parse_detections(parsed)
    for msg in warnings:
        log.warning("Detection: %s", msg)
    if not annotations:
        detail = f" ({len(warnings)} record(s) rejected)" if warnings else ""
        raise EmptyResultWarning(f"No usable annotations were returned{detail}.")

    return DetectionResult(annotations=annotations, warnings=warnings, raw_text=text, tokens_used=tokens)


class DetectWorker(QObject):
    """
    Background worker that detects hairs using Gemini AI.

    Signals:
        finished(list): Emitted with the list of Annotations on success
        empty(str): Emitted when the call succeeded without usable annotations
        failed(str): Emitted with an error message on failure
        raw_text(str): Emitted with raw API response text
        tokens_used(int): Emitted with the total token count when reported
    """

    finished = pyqtSignal(list)
    empty = pyqtSignal(str)
    failed = pyqtSignal(str)
    raw_text = pyqtSignal(str)
    tokens_used = pyqtSignal(int)

    def __init__(self, image_path: str, model: str, client: Optional[Any] = None):
        super().__init__()
        self.image_path = image_path
        self.model = model
        self.client = client

    def run(self):
        """Execute the detection request."""
        try:
            result = detect_annotations(self.image_path, self.model, client=self.client)
        except EmptyResultWarning as e:
            log.warning("Detection returned nothing usable: %s", e)
            self.empty.emit(str(e))
            return
        except (ExternalServiceError, InputError) as e:
            log.error("Detection failed: %s", e)
            self.failed.emit(str(e))
            return

        self.raw_text.emit(result.raw_text)
        if result.tokens_used > 0:
            self.tokens_used.emit(result.tokens_used)
        self.finished.emit(result.annotations)
