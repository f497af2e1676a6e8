"""One synchronous understanding-service call per request."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from app.extraction.command_spec import CommandSpec
from app.extraction.content import ContentPart, TextPart
from app.extraction.openai_client import UnderstandingClient

logger = logging.getLogger(__name__)

RAW_FALLBACK_KEY = "_raw"


@dataclass(frozen=True, slots=True)
class ExtractionOutcome:
    """Result of an extraction call.

    ``data`` is the parsed JSON object when the service honoured the schema.
    When it did not, ``data`` is ``{"_raw": text}`` and ``raw_fallback`` is
    true; callers always receive an object either way.
    """

    text: str
    data: dict[str, Any]
    raw_fallback: bool = False


def parse_structured_output(text: str) -> tuple[dict[str, Any], bool]:
    """Parse schema-shaped output, degrading to the raw-text wrapper."""

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        return {RAW_FALLBACK_KEY: text}, True
    if not isinstance(decoded, dict):
        return {RAW_FALLBACK_KEY: text}, True
    return decoded, False


class ExtractionInvoker:
    """Combine content parts with a command spec and call the service."""

    def __init__(self, client: UnderstandingClient, *, chat_model: str) -> None:
        self._client = client
        self._chat_model = chat_model

    @property
    def client(self) -> UnderstandingClient:
        return self._client

    def invoke(self, parts: Sequence[ContentPart], spec: CommandSpec) -> ExtractionOutcome:
        """Run a schema-constrained extraction over ``parts``."""

        content = [*parts, TextPart(text=spec.user_prompt)]
        text = self._client.create_response(
            model=spec.model,
            instructions=spec.system_prompt,
            input=[{"role": "user", "content": [part.to_input() for part in content]}],
            text_format={
                "type": "json_schema",
                "name": spec.schema_name,
                "strict": True,
                "schema": spec.schema,
            },
        )
        text = text or "{}"
        data, raw_fallback = parse_structured_output(text)
        if raw_fallback:
            logger.warning(
                "extraction.non_json_output command=%s model=%s chars=%d",
                spec.file_name,
                spec.model,
                len(text),
            )
        return ExtractionOutcome(text=text, data=data, raw_fallback=raw_fallback)

    def complete_text(self, prompt: str) -> str:
        """Plain chat path: return the service's text unmodified."""

        return self._client.create_response(model=self._chat_model, input=prompt)
