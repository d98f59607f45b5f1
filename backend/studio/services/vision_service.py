"""
Free image analysis: face-shape matching against the hairstyle catalog and
enhancement suggestions for a generated image.
"""
import json
import logging
import re
from typing import List, Dict, Any, Tuple
from urllib.parse import urlparse

import httpx

from studio.ai.factory import get_vision_provider
from studio.ai.prompts import HAIRSTYLES, FACE_ANALYSIS_PROMPT, SUGGESTIONS_PROMPT, FALLBACK_SUGGESTIONS
from studio.config import settings
from studio.storage import get_image_store

logger = logging.getLogger(__name__)

FACE_SHAPE_PATTERN = re.compile(r"^(oval|round|square|rectangular|oblong|heart|diamond)", re.IGNORECASE)
DEFAULT_FACE_SHAPE = "oval"
MAX_RECOMMENDATIONS = 3
MAX_SUGGESTIONS = 4


def detect_face_shape(analysis: str) -> str:
    """Leading face-shape word of the model's answer, "oblong" folded into "rectangular"."""
    match = FACE_SHAPE_PATTERN.match((analysis or "").strip())
    shape = match.group(1).lower() if match else DEFAULT_FACE_SHAPE
    return "rectangular" if shape == "oblong" else shape


def recommend_hairstyles(shape: str) -> List[Dict[str, Any]]:
    """First catalog hairstyles that suit the face shape."""
    matches = [
        (hairstyle_id, style)
        for hairstyle_id, style in HAIRSTYLES.items()
        if shape in style["face_shapes"]
    ]
    return [
        {
            "name": style["name"],
            "description": style["description"],
            "hairstyle_id": hairstyle_id,
            "reason": f"Perfect for {shape} face shapes - enhances your natural features",
        }
        for hairstyle_id, style in matches[:MAX_RECOMMENDATIONS]
    ]


def parse_suggestions(text: str) -> List[str]:
    """
    Parse a JSON array of suggestions, tolerating ```json fences.
    Falls back to a fixed list when the reply is not a JSON array of strings.
    """
    cleaned = re.sub(r"```(?:json)?\n?", "", text or "").strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Failed to parse suggestions, using fallback", extra={"event": "suggestions_fallback"})
        return list(FALLBACK_SUGGESTIONS)

    if not isinstance(parsed, list):
        return list(FALLBACK_SUGGESTIONS)

    suggestions = [str(item) for item in parsed if isinstance(item, str) and item.strip()]
    return suggestions[:MAX_SUGGESTIONS] or list(FALLBACK_SUGGESTIONS)


class VisionService:

    @staticmethod
    async def analyze_face(image_bytes: bytes, mime_type: str) -> Dict[str, Any]:
        """
        Ask the vision model for the face shape and pick matching hairstyles.

        Raises:
            ProviderError: Vision call failed
        """
        provider = get_vision_provider()
        analysis = await provider.analyze_image(image_bytes, mime_type, FACE_ANALYSIS_PROMPT)
        shape = detect_face_shape(analysis)

        return {
            "face_shape": analysis,
            "detected_shape": shape,
            "recommendations": recommend_hairstyles(shape),
        }

    @staticmethod
    def _fetchable(image_url: str) -> bool:
        """Only http(s) URLs on our public bucket host or a configured host."""
        parsed = urlparse(image_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return False

        allowed = {host.lower() for host in settings.image_fetch_allowed_hosts}
        if settings.r2_public_url:
            allowed.add((urlparse(settings.r2_public_url).hostname or "").lower())
        return parsed.hostname.lower() in allowed

    @staticmethod
    async def load_image(image_url: str) -> Tuple[bytes, str]:
        """
        Bytes and MIME type of an image URL: our own store first, then an
        allowed host over HTTP(S), capped at max_upload_bytes.

        Raises:
            ValueError: URL not allowed, not readable or too large
        """
        stored = await get_image_store().read(image_url or "")
        if stored is not None:
            return stored

        if not VisionService._fetchable(image_url or ""):
            logger.warning(
                "Refused to fetch image from a disallowed URL",
                extra={"event": "image_fetch_refused", "image_url": image_url}
            )
            raise ValueError("Image URL not allowed")

        limit = settings.max_upload_bytes
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=False) as client:
            async with client.stream("GET", image_url) as response:
                if response.status_code != 200:
                    raise ValueError("Image not found")

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > limit:
                    raise ValueError("Image too large")

                chunks = []
                size = 0
                async for chunk in response.aiter_bytes():
                    size += len(chunk)
                    if size > limit:
                        raise ValueError("Image too large")
                    chunks.append(chunk)

                content_type = response.headers.get("content-type", "image/png").split(";")[0]

        return b"".join(chunks), content_type

    @staticmethod
    async def enhancement_suggestions(image_url: str) -> List[str]:
        """
        3-4 short refinement ideas for a generated image.

        Raises:
            ValueError: Missing or unreadable image URL
            ProviderError: Vision call failed
        """
        if not image_url:
            raise ValueError("Missing image_url")

        image_bytes, mime_type = await VisionService.load_image(image_url)
        provider = get_vision_provider()
        reply = await provider.analyze_image(image_bytes, mime_type, SUGGESTIONS_PROMPT)
        return parse_suggestions(reply)
