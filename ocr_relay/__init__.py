"""OCR Relay — image recognition proxy for the Qwen vision-chat API."""

__version__ = "1.0.0"
