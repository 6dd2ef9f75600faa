"""
Editor-facing backend endpoints: AI image generation and saving memes.

Responses are validated here so the editor only ever sees typed records.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from memeforge.services.api_client import ApiClient, InvalidResponseError
from memeforge.services.logging_service import get_logger

AI_STYLES = ["realistic", "anime", "cartoon", "storybook", "pixel", "cyberpunk"]
AI_MODELS = ["dall-e-2", "dall-e-3"]

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


@dataclass(frozen=True)
class GeneratedImageMetadata:
    """An AI-generated base image as reported by the backend."""
    url: str
    prompt: str
    style: str
    model_used: str
    created_at: Optional[str] = None
    is_public: bool = False

    @classmethod
    def from_response(cls, payload: Any) -> "GeneratedImageMetadata":
        """
        Build from a ``{"image": {...}}`` response body.

        Raises:
            InvalidResponseError: If a required field is missing or blank.
        """
        image = payload.get("image") if isinstance(payload, dict) else None
        if not isinstance(image, dict):
            raise InvalidResponseError("Generation response has no image")

        fields = {}
        for key, wire in (("url", "url"), ("prompt", "prompt"),
                          ("style", "style"), ("model_used", "modelUsed")):
            value = image.get(wire)
            if not isinstance(value, str) or not value.strip():
                raise InvalidResponseError(f"Generated image is missing '{wire}'")
            fields[key] = value

        created_at = image.get("createdAt")
        return cls(
            created_at=str(created_at) if created_at is not None else None,
            is_public=bool(image.get("is_public", False)),
            **fields,
        )


@dataclass
class SaveMemeRequest:
    """Form fields of the save-to-collection upload."""
    title: str = ""
    description: str = ""
    is_public: bool = False

    def validate(self) -> Optional[str]:
        """Return a user-facing problem, or None when the request is fine."""
        if len(self.title.strip()) > MAX_TITLE_LENGTH:
            return f"Title must be {MAX_TITLE_LENGTH} characters or less"
        if len(self.description.strip()) > MAX_DESCRIPTION_LENGTH:
            return f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less"
        return None


class MemeService:
    """Thin typed wrapper over the generation and meme endpoints."""

    def __init__(self, client: ApiClient) -> None:
        self._logger = get_logger(__name__)
        self._client = client

    def generate_image(
        self,
        prompt: str,
        style: str,
        model: str,
        is_public: bool = False,
    ) -> GeneratedImageMetadata:
        self._logger.info(f"Requesting AI image (style={style}, model={model})")
        response = self._client.post(
            "/images/generate",
            {"prompt": prompt, "style": style, "model": model, "is_public": is_public},
        )
        return GeneratedImageMetadata.from_response(response)

    def save_meme(
        self,
        png: bytes,
        overlays: List[Dict[str, Any]],
        request: SaveMemeRequest,
        metadata: Optional[GeneratedImageMetadata] = None,
    ) -> Any:
        """Upload the flattened meme plus its overlay layout."""
        fields: Dict[str, Any] = {
            "overlays": json.dumps(overlays),
            "title": request.title.strip(),
            "description": request.description.strip(),
            "is_public": "true" if request.is_public else "false",
        }
        if metadata is not None:
            fields["prompt"] = metadata.prompt
            fields["style"] = metadata.style
            fields["modelUsed"] = metadata.model_used

        files = {"image": ("meme.png", png, "image/png")}
        self._logger.info(f"Uploading meme ({len(png)} bytes, {len(overlays)} overlays)")
        return self._client.post("/memes", fields, files=files)
