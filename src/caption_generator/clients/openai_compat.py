from __future__ import annotations

import base64

from ..utils.image_io import detect_mime
from .base import CaptionServiceError, HttpCaptionClient

MAX_TOKENS = 1024


class OpenAICompatibleClient(HttpCaptionClient):
    """Chat-completions style servers: LM Studio, llama.cpp, Oobabooga."""

    path = "/v1/chat/completions"

    def generate_caption(self, image_bytes: bytes, prompt: str) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        image_url = f"data:{detect_mime(image_bytes)};base64,{encoded}"
        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            "max_tokens": MAX_TOKENS,
            "stream": False,
        }
        body = self._post(payload)
        try:
            choices = body["choices"]
            message = choices[0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CaptionServiceError(f"{self.endpoint} returned no choices") from exc
        return message.get("content") or ""
