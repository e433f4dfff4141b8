from __future__ import annotations

import base64

from .base import HttpCaptionClient


class OllamaClient(HttpCaptionClient):
    path = "/api/generate"

    def generate_caption(self, image_bytes: bytes, prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "images": [base64.b64encode(image_bytes).decode("ascii")],
            "stream": False,
        }
        body = self._post(payload)
        if isinstance(body, dict):
            return body.get("response") or ""
        return ""
