"""
Gemini LLM client used by the optional sentiment oracle.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict

import google.generativeai as genai

from config.settings import settings
from utils.logger import get_logger

logger = get_logger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class LLMClient:
    """Wrapper that handles Gemini text generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        generation_config: Dict[str, Any] | None = None,
    ):
        self.api_key = api_key or settings.GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY is not set; cannot initialize LLM client.")

        genai.configure(api_key=self.api_key)

        self.model_name = model or settings.GEMINI_MODEL
        self.generation_config = generation_config or {
            "temperature": 0.1,
            "response_mime_type": "application/json",
        }
        self.model = genai.GenerativeModel(
            model_name=self.model_name,
            generation_config=genai.types.GenerationConfig(**self.generation_config),
        )

    def generate(self, prompt: str) -> str:
        """Generate raw text from the Gemini model."""
        response = self.model.generate_content(prompt)
        return getattr(response, "text", "") or ""

    @staticmethod
    def safe_json_load(text: str) -> Any:
        """Best-effort JSON parsing that ignores Markdown fences and surrounding prose."""
        cleaned = (text or "").strip()
        if "```" in cleaned:
            segments = [segment.strip() for segment in cleaned.split("```") if segment.strip()]
            for segment in segments:
                if segment.startswith("json"):
                    segment = segment[len("json"):].strip()
                if segment.startswith("{") or segment.startswith("["):
                    cleaned = segment
                    break
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

        match = JSON_OBJECT_PATTERN.search(cleaned)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass

        logger.debug("Failed to parse JSON payload: %s", cleaned[:200])
        return None
