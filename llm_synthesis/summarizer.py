"""Batch-level insight summarizer.

Turns a completed set of audit results into one narrative text artifact.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from app.domain.audit import AuditResult
from app.logging_utils import log_event
from audit_engine.artifacts import ArtifactWriter, generate_timestamp, insight_filename
from llm_synthesis.adapter import AdapterFactory, build_adapter
from llm_synthesis.prompt_builder import InsightPromptBuilder

logger = logging.getLogger(__name__)


class InsightSummaryError(Exception):
    """Raised when no usable insight text could be produced or stored."""


class InsightSummarizer:
    """Generates and persists the narrative summary for one batch."""

    def __init__(
        self,
        artifact_writer: ArtifactWriter,
        adapter_factory: AdapterFactory = build_adapter,
        prompt_builder: Optional[InsightPromptBuilder] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._artifact_writer = artifact_writer
        self._adapter_factory = adapter_factory
        self._prompt_builder = prompt_builder or InsightPromptBuilder()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def summarize(
        self,
        results: Sequence[AuditResult],
        *,
        form_factor: str,
        api_key: str,
    ) -> str:
        """Generate the batch narrative and return its public artifact path.

        Args:
            results: Every per-URL result of the batch, in submission order.
            form_factor: Device class the batch was audited for.
            api_key: Credential for the text-generation service.

        Returns:
            Public path of the written ``.txt`` artifact.

        Raises:
            InsightSummaryError: If the batch is empty, the model returns no
                text or the artifact cannot be written.
        """
        if not results:
            raise InsightSummaryError("Cannot summarize an empty batch.")

        prompt = self._prompt_builder.build_prompt(results, form_factor)
        adapter = self._adapter_factory(api_key)
        text = adapter.generate(prompt).strip()
        if not text:
            raise InsightSummaryError("Text-generation service returned an empty response.")

        filename = insight_filename(form_factor, generate_timestamp(self._clock()))
        try:
            public_path = self._artifact_writer.write_text(filename, text)
        except OSError as exc:
            raise InsightSummaryError(f"Failed to write insight artifact: {exc}") from exc

        log_event(
            logger,
            logging.INFO,
            "insight_summary_written",
            form_factor=form_factor,
            urls=len(results),
            path=public_path,
        )
        return public_path
