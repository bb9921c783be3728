"""Vertex AI text generation through the ``google-genai`` SDK.

Authentication uses Application Default Credentials; the SDK resolves and
refreshes them. Regional locations ("europe-west1", ...) and "global" are both
accepted as ``location``.
"""
from __future__ import annotations

import logging

from google import genai

from geogreet.engine.generator import GenerationError, TextGenerator

logger = logging.getLogger(__name__)


def _extract_text(response) -> str:
    text = response.text
    if text:
        return text

    feedback = response.prompt_feedback
    if feedback is not None and feedback.block_reason:
        raise GenerationError(f"prompt blocked: {feedback.block_reason}")
    candidates = response.candidates or []
    if not candidates:
        raise GenerationError("model returned no candidates")
    raise GenerationError(f"model returned empty text (finish_reason={candidates[0].finish_reason})")


class VertexGenerator(TextGenerator):
    name = "vertex"

    def __init__(self, project_id: str, location: str, model_name: str, *, client=None):
        if not project_id:
            raise ValueError("project_id is required for the vertex backend")
        self.project_id = project_id
        self.location = location
        self.model_name = model_name

        if client is None:
            client = genai.Client(vertexai=True, project=project_id, location=location)
        # one client for the process; shared by every threadpool worker
        self._client = client

    def generate(self, prompt: str) -> str:
        response = self._client.models.generate_content(model=self.model_name, contents=prompt)
        text = _extract_text(response)
        logger.debug("vertex model=%s returned %d chars", self.model_name, len(text))
        return text
