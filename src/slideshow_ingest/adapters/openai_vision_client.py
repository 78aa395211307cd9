"""OpenAI Responses API client for image analysis."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from slideshow_ingest.domain.errors import RemoteServiceError
from slideshow_ingest.services.enrichment import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, timeout_seconds: float = 60.0) -> "OpenAIVisionClient":
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds))

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_url: str,
        schema: dict[str, object],
        instructions: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with a strict structured output format."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": instructions,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_image", "image_url": image_url}],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "image_analysis",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except OpenAIError as exc:
            raise RemoteServiceError("openai", str(exc)) from exc
        output_text = response.output_text
        if not output_text:
            raise RemoteServiceError("openai", "empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise RemoteServiceError("openai", f"response is not JSON: {exc}") from exc

    async def close(self) -> None:
        await self.client.close()
