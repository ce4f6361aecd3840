"""
schemas/recognize.py — Request/response models for the recognition endpoints

Business Rules:
- Request fields use the camelCase names the front-end sends (imageUrl, ...)
- Every request field is optional so a missing value reaches the handler
  and is answered with 400, not a 422 validation error
- Response "type" is "text" or "captcha"

Called by: routers/recognize.py, services/recognition_service.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ImageUrlRequest(_CamelRequest):
    image_url: str | None = Field(default=None, alias="imageUrl")


class Base64ImageRequest(_CamelRequest):
    base64_image: str | None = Field(default=None, alias="base64Image")


class ImageIdRequest(_CamelRequest):
    image_id: str | None = Field(default=None, alias="imageId")


class RecognitionResponse(BaseModel):
    success: bool = True
    result: str
    type: Literal["text", "captcha"] = "text"
