"""
Car image analysis with Google Gemini.

Sends one photo plus a fixed extraction prompt to the model and turns the
free-text reply into validated ``CarAttributes``. The reply is untrusted:
code fences are stripped, the JSON is parsed, every required key is checked
and the values are schema-validated before anything is returned.
"""
import json
import logging
import re
from typing import List

from google import genai
from google.genai import types
from pydantic import ValidationError

from .models import CarAttributes
from .results import Err, ErrorKind, Ok, Result, ServiceError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = [
    "make",
    "model",
    "year",
    "color",
    "price",
    "mileage",
    "bodyType",
    "fuelType",
    "transmission",
    "description",
    "confidence",
]

CAR_ANALYSIS_PROMPT = """
Analyze this car image and extract the following information:
1. Make (manufacturer)
2. Model
3. Year (approximately)
4. Color
5. Body type (SUV, Sedan, Hatchback, etc.)
6. Mileage
7. Fuel type (your best guess)
8. Transmission type (your best guess)
9. Price (your best guess)
10. Short description to be added to a car listing

Format your response as a clean JSON object with these fields:
{
  "make": "",
  "model": "",
  "year": 0000,
  "color": "",
  "price": "",
  "mileage": "",
  "bodyType": "",
  "fuelType": "",
  "transmission": "",
  "description": "",
  "confidence": 0.0
}

For confidence, provide a value between 0 and 1 representing how confident you are in your overall identification.
Only respond with the JSON object, nothing else.
""".strip()

CODE_FENCE_RE = re.compile(r"```(?:json)?\n?")


class GeminiVisionClient:
    """Thin wrapper over the google-genai client for image + prompt calls."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-pro"):
        self.model_name = model_name
        self._client = genai.Client(api_key=api_key)

    def generate(self, image: bytes, mime_type: str, prompt: str) -> str:
        """Return the model's text reply for an image and a prompt."""
        response = self._client.models.generate_content(
            model=self.model_name,
            contents=[types.Part.from_bytes(data=image, mime_type=mime_type), prompt],
        )
        return (getattr(response, "text", "") or "").strip()


def strip_code_fences(text: str) -> str:
    """Remove ``` / ```json markup the model may wrap its JSON in."""
    return CODE_FENCE_RE.sub("", text or "").strip()


def missing_fields(data: dict) -> List[str]:
    return [name for name in REQUIRED_FIELDS if name not in data]


def parse_car_attributes(text: str) -> CarAttributes:
    """
    Parse and validate a model reply.

    Raises:
        ServiceError: validation kind, if the reply is not one JSON object with
            all required fields and valid values
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise ServiceError(ErrorKind.VALIDATION, f"Failed to parse AI response: {e.msg}") from e

    if not isinstance(data, dict):
        raise ServiceError(ErrorKind.VALIDATION, "Failed to parse AI response: expected a JSON object")

    missing = missing_fields(data)
    if missing:
        raise ServiceError(
            ErrorKind.VALIDATION,
            f"AI response missing required fields: {', '.join(missing)}",
        )

    try:
        return CarAttributes.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ServiceError(
            ErrorKind.VALIDATION,
            f"AI response has invalid values for: {', '.join(fields)}",
        ) from e


def check_image(services, image: bytes, mime_type: str) -> None:
    """Reject empty, oversized or unsupported uploads."""
    if not image:
        raise ServiceError(ErrorKind.VALIDATION, "Image is empty")
    if len(image) > services.max_image_bytes:
        limit_mb = services.max_image_bytes / (1024 * 1024)
        raise ServiceError(ErrorKind.VALIDATION, f"Image size must be less than {limit_mb:g}MB")
    if (mime_type or "").lower() not in services.allowed_image_types:
        raise ServiceError(ErrorKind.VALIDATION, f"Unsupported image type: {mime_type}")


def analyze_car_image(services, image: bytes, mime_type: str) -> Result:
    """Extract car attributes from one photo."""
    if services.vision is None:
        logger.error("Car image analysis requested but GEMINI_API_KEY is not configured")
        return Err(ErrorKind.CONFIGURATION, "Gemini API key is not configured")

    try:
        check_image(services, image, mime_type)
    except ServiceError as e:
        logger.warning(f"Rejected image for analysis: {e.message}")
        return Err(e.kind, e.message)

    try:
        text = services.vision.generate(image, mime_type, CAR_ANALYSIS_PROMPT)
    except Exception as e:
        logger.error(f"Gemini API error: {e}", exc_info=True)
        return Err(ErrorKind.UPSTREAM, f"Gemini API error: {e}")

    try:
        attributes = parse_car_attributes(text)
    except ServiceError as e:
        logger.warning(f"Failed to parse AI response: {e.message}")
        return Err(e.kind, e.message)

    logger.info(
        f"Identified {attributes.year} {attributes.make} {attributes.model} "
        f"(confidence {attributes.confidence:.2f})"
    )
    return Ok(attributes)
