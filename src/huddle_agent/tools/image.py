"""
Image generation and editing tools backed by Stability AI.

https://platform.stability.ai/docs/api-reference#tag/Generate
https://platform.stability.ai/docs/api-reference#tag/Edit
"""

from typing import Any

import httpx
import structlog

from ..chat.formatting import parse_data_uri, to_data_uri
from .base import BaseTool, ToolContext, ToolParameter

logger = structlog.get_logger()

STABILITY_GENERATE_URL = "https://api.stability.ai/v2beta/stable-image/generate/sd3"
STABILITY_EDIT_URL = "https://api.stability.ai/v2beta/stable-image/edit/search-and-replace"

ASPECT_RATIOS = {
    "square": "1:1",
    "portrait": "4:5",
    "portrait extra": "9:16",
    "landscape": "5:4",
    "landscape extra": "16:9",
}

STYLE_PRESETS = [
    "3d-model",
    "analog-film",
    "anime",
    "cinematic",
    "comic-book",
    "digital-art",
    "enhance",
    "fantasy-art",
    "isometric",
    "line-art",
    "low-poly",
    "modeling-compound",
    "neon-punk",
    "origami",
    "photographic",
    "pixel-art",
    "tile-texture",
]


class _StabilityTool(BaseTool):
    def __init__(self, api_key: str = "", timeout: float = 90.0):
        self.api_key = api_key
        self.timeout = timeout

    async def _post(
        self,
        url: str,
        fields: dict[str, str],
        files: dict[str, Any] | None = None,
    ) -> bytes | str:
        """POST a multipart request, returning image bytes or an error text."""
        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                data=fields,
                files=files or {"none": (None, b"")},
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "image/*",
                },
                timeout=self.timeout,
            )

        if response.is_error:
            logger.warning("Stability request failed", status=response.status_code, url=url)
            return f"HTTP error! Status: {response.status_code}"
        return response.content


class ImageGenerationTool(_StabilityTool):
    """Generate one image from a prompt."""

    @property
    def name(self) -> str:
        return "generate_one_image"

    @property
    def description(self) -> str:
        return "Generate an image matches the prompt"

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="prompt",
                param_type="string",
                description="Things to include in the output image. in English. e.g. 1 girl, blue hair, playing game",
            ),
            ToolParameter(
                name="aspect_ratio",
                param_type="string",
                required=False,
                enum=list(ASPECT_RATIOS),
            ),
            ToolParameter(
                name="negative_prompt",
                param_type="string",
                description="Things to exclude in the output image. in English. e.g. ugly, low quality",
                required=False,
            ),
            ToolParameter(
                name="style_preset",
                param_type="string",
                required=False,
                enum=STYLE_PRESETS,
            ),
        ]

    async def execute(
        self,
        context: ToolContext,
        prompt: str,
        aspect_ratio: str | None = None,
        negative_prompt: str | None = None,
        style_preset: str | None = None,
    ) -> str:
        if not self.api_key:
            return "Image generation is not configured."

        fields = {
            "model": "sd3-large-turbo",
            "prompt": prompt,
            "output_format": "png",
        }
        if aspect_ratio:
            fields["aspect_ratio"] = ASPECT_RATIOS.get(aspect_ratio, "1:1")
        if negative_prompt:
            fields["negative_prompt"] = negative_prompt
        if style_preset:
            fields["style_preset"] = style_preset

        result = await self._post(STABILITY_GENERATE_URL, fields)
        if isinstance(result, str):
            return result
        return to_data_uri("image/png", result)


class ImageEditTool(_StabilityTool):
    """Redraw parts of an existing image."""

    @property
    def name(self) -> str:
        return "edit_one_image"

    @property
    def description(self) -> str:
        return "Find specific elements within an image and redraw them to match the prompt"

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="image_id",
                param_type="string",
                description="The original image's ID",
            ),
            ToolParameter(
                name="prompt",
                param_type="string",
                description="Description of the final output image you wish to see. in English",
            ),
            ToolParameter(
                name="search_prompt",
                param_type="string",
                description="Items to redraw in the image. in English",
            ),
            ToolParameter(
                name="negative_prompt",
                param_type="string",
                description="Items you do not wish to see in the output image. in English",
                required=False,
            ),
        ]

    async def execute(
        self,
        context: ToolContext,
        image_id: str,
        prompt: str,
        search_prompt: str,
        negative_prompt: str | None = None,
    ) -> str:
        if not self.api_key:
            return "Image editing is not configured."

        image_url = context.file_store.resolve(image_id)
        if image_url is None:
            return "Image not found!"

        image = await _load_image(image_url)
        if isinstance(image, str):
            return image
        mime_type, data = image

        fields = {
            "prompt": prompt,
            "search_prompt": search_prompt,
            "output_format": "webp",
        }
        if negative_prompt:
            fields["negative_prompt"] = negative_prompt

        result = await self._post(
            STABILITY_EDIT_URL,
            fields,
            files={"image": ("image", data, mime_type)},
        )
        if isinstance(result, str):
            return result
        return to_data_uri("image/webp", result)


async def _load_image(url: str) -> tuple[str, bytes] | str:
    """Read an image from a data URI or download it."""
    decoded = parse_data_uri(url)
    if decoded is not None:
        return decoded

    async with httpx.AsyncClient(follow_redirects=True) as client:
        response = await client.get(url, timeout=30.0)

    if response.is_error:
        return f"HTTP error! Status: {response.status_code}"

    mime_type = response.headers.get("content-type", "image/webp").split(";")[0]
    return mime_type, response.content
