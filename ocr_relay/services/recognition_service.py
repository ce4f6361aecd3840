"""Recognition Service — upload, ask the vision model, normalize the answer.

Flow (all entry points end in recognize_image):
  URL     → fetch_image         → upload_image → recognize_image
  base64  → decode_base64_image → upload_image → recognize_image
  file id →                                      recognize_image

Called by: routers/recognize.py
Depends on: connectors/qwen_client.py, services/prompts.py,
            services/result_formatter.py, services/image_source.py
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from ..connectors.qwen_client import chat_completion, upload_image
from .image_source import ImagePayload, decode_base64_image, fetch_image
from .prompts import select_prompt
from .result_formatter import RecognitionResult, extract_content, format_result


@dataclass(frozen=True)
class RecognitionOptions:
    advanced_mode: bool = False
    custom_prompt: str = ""


async def recognize_image(
    token: str, cookie: str, image_id: str, options: RecognitionOptions
) -> RecognitionResult:
    prompt = select_prompt(options.advanced_mode, options.custom_prompt)
    data = await chat_completion(token, cookie, prompt, image_id)
    result = format_result(extract_content(data), options.advanced_mode)
    logger.info(
        "Recognized image {} as {} ({} chars, advanced={})",
        image_id, result.type, len(result.result), options.advanced_mode,
    )
    return result


async def recognize_payload(
    token: str, cookie: str, payload: ImagePayload, options: RecognitionOptions
) -> RecognitionResult:
    image_id = await upload_image(token, cookie, payload)
    return await recognize_image(token, cookie, image_id, options)


async def recognize_url(
    token: str, cookie: str, url: str, options: RecognitionOptions
) -> RecognitionResult:
    payload = await fetch_image(url)
    return await recognize_payload(token, cookie, payload, options)


async def recognize_base64(
    token: str, cookie: str, value: str, options: RecognitionOptions
) -> RecognitionResult:
    payload = decode_base64_image(value)
    return await recognize_payload(token, cookie, payload, options)
