"""
LLM provider adapter for the FixDesk classification oracle.

This adapter implements the LLMProvider interface on top of the OpenAI
Responses API.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from openai import AsyncOpenAI, OpenAIError
import logfire

from fixdesk.interfaces.providers.llm import LLMProvider

# Setup logger for this module
logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-5.2"
DEFAULT_VISION_MODEL = "gpt-5.2"

# Image constants
MAX_IMAGE_COUNT = 10


class OpenAIAdapter(LLMProvider):
    """OpenAI implementation of LLMProvider using the Responses API."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        logfire_api_key: Optional[str] = None,
    ):
        self.api_key = api_key
        self.client = AsyncOpenAI(api_key=api_key)

        self.logfire = False
        if logfire_api_key:
            try:
                logfire.configure(token=logfire_api_key)
                self.logfire = True
                # Instrument the main client immediately after configuring logfire
                logfire.instrument_openai(self.client)
                logger.info(
                    "Logfire configured and OpenAI client instrumented successfully."
                )
            except Exception as e:
                logger.error(f"Failed to configure Logfire: {e}")
                self.logfire = False

        # Use provided model or defaults
        if model:
            self.text_model = model
            self.vision_model = model
        else:
            self.text_model = DEFAULT_CHAT_MODEL
            self.vision_model = DEFAULT_VISION_MODEL

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "",
        model: Optional[str] = None,
    ) -> str:
        """Generate text using OpenAI Responses API."""
        request_params: Dict[str, Any] = {
            "model": model or self.text_model,
            "input": prompt,
            "reasoning": {"effort": "low"},
        }

        if system_prompt:
            request_params["instructions"] = system_prompt

        try:
            response = await self.client.responses.create(**request_params)
        except OpenAIError as e:
            logger.error(f"OpenAI API error during text generation: {e}")
            raise

        if hasattr(response, "usage") and response.usage:
            logger.info(
                f"OpenAI API Usage: Input={response.usage.input_tokens}, Output={response.usage.output_tokens}, Total={response.usage.total_tokens}"
            )
        return response.output_text or ""

    async def generate_text_with_images(
        self,
        prompt: str,
        images: List[str],
        system_prompt: str = "",
        detail: Literal["low", "high", "auto"] = "auto",
        model: Optional[str] = None,
    ) -> str:
        """Generate text from OpenAI models using text and image URL inputs."""
        if not images:
            logger.warning(
                "generate_text_with_images called with no images. Falling back to generate_text."
            )
            return await self.generate_text(prompt, system_prompt, model=model)

        if len(images) > MAX_IMAGE_COUNT:
            logger.warning(
                f"Too many images provided ({len(images)}). Only the first {MAX_IMAGE_COUNT} are sent."
            )
            images = images[:MAX_IMAGE_COUNT]

        content_list: List[Dict[str, Any]] = [{"type": "input_text", "text": prompt}]
        for image_url in images:
            if not image_url.startswith(("http://", "https://", "data:image")):
                logger.warning(f"Skipping unsupported image reference: {image_url[:50]}...")
                continue
            content_list.append(
                {"type": "input_image", "image_url": image_url, "detail": detail}
            )

        request_params: Dict[str, Any] = {
            "model": model or self.vision_model,
            "input": [{"role": "user", "content": content_list}],
            "reasoning": {"effort": "low"},
        }

        if system_prompt:
            request_params["instructions"] = system_prompt

        logger.info(
            f"Sending request to '{request_params['model']}' with {len(content_list) - 1} images."
        )

        try:
            response = await self.client.responses.create(**request_params)
        except OpenAIError as e:  # Catch specific OpenAI errors
            logger.error(f"OpenAI API error during vision request: {e}")
            raise

        if not response.output_text:
            logger.warning("Received vision response with no content.")
            return ""
        return response.output_text
