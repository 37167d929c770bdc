"""
Text and image generation steps using the OpenAI REST API.
"""

from typing import Optional

import httpx

from core.config import settings
from core.logging_config import get_logger
from .registry import StepResult

logger = get_logger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1"
DEFAULT_TEXT_MODEL = "gpt-4o-mini"
DEFAULT_IMAGE_MODEL = "dall-e-3"


def _model_name(model: Optional[str], default: str) -> str:
    # Accept "openai/gpt-4o" style ids as well as bare model names
    model = model or default
    return model.split("/", 1)[1] if "/" in model else model


async def generate_text(ai_prompt: str, ai_model: Optional[str] = None,
                        api_key: Optional[str] = None) -> StepResult:
    """Generate a completion for a prompt"""
    if not api_key:
        return StepResult.fail("OPENAI_API_KEY is not configured")
    if not ai_prompt:
        return StepResult.fail("Prompt is required")

    model = _model_name(ai_model, DEFAULT_TEXT_MODEL)
    logger.info(f"Generating text with {model}")
    async with httpx.AsyncClient(timeout=max(settings.step_timeout_seconds, 60.0)) as client:
        try:
            response = await client.post(
                f"{OPENAI_API_URL}/chat/completions",
                json={"model": model, "messages": [{"role": "user", "content": ai_prompt}]},
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            return StepResult.fail(f"Text generation failed: {e}")

    result = response.json()
    text = result["choices"][0]["message"]["content"]
    return StepResult.ok({"text": text, "model": model})


async def generate_image(image_prompt: str, image_model: Optional[str] = None,
                         api_key: Optional[str] = None) -> StepResult:
    """Generate one image for a prompt"""
    if not api_key:
        return StepResult.fail("OPENAI_API_KEY is not configured")
    if not image_prompt:
        return StepResult.fail("Prompt is required")

    model = _model_name(image_model, DEFAULT_IMAGE_MODEL)
    logger.info(f"Generating image with {model}")
    async with httpx.AsyncClient(timeout=max(settings.step_timeout_seconds, 120.0)) as client:
        try:
            response = await client.post(
                f"{OPENAI_API_URL}/images/generations",
                json={"model": model, "prompt": image_prompt, "n": 1, "size": "1024x1024"},
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            return StepResult.fail(f"Image generation failed: {e}")

    image = response.json()["data"][0]
    return StepResult.ok({"url": image.get("url"), "base64": image.get("b64_json"), "model": model})
