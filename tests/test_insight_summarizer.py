from __future__ import annotations

from pathlib import Path

import pytest

from app.config import LLMSettings
from app.domain.audit import (
    ArtifactPaths,
    AuditFailure,
    AuditSuccess,
    CategoryScores,
    FailureCause,
    Opportunity,
)
from audit_engine.artifacts import ArtifactWriter
from conftest import FakeClock
from llm_synthesis.adapter import MockLLMAdapter, build_adapter
from llm_synthesis.prompt_builder import InsightPromptBuilder
from llm_synthesis.summarizer import InsightSummarizer, InsightSummaryError


def _results() -> list:
    return [
        AuditSuccess(
            url="https://a.example",
            scores=CategoryScores(performance=72, accessibility=95, best_practices=100, seo=90),
            opportunities=(
                Opportunity("Largest opportunity", "1.2 s", 1200.0),
                Opportunity("Second opportunity", None, 800.0),
                Opportunity("Third opportunity", "0.4 s", 400.0),
                Opportunity("Fourth opportunity", "0.1 s", 100.0),
            ),
            artifact_paths=ArtifactPaths("/reports/a.json", "/reports/a.html"),
        ),
        AuditFailure(
            url="https://down.example",
            error="Connection refused - unable to connect to the target website.",
            cause=FailureCause.CONNECTION_REFUSED,
        ),
    ]


class TestInsightPromptBuilder:
    def test_prompt_covers_whole_batch_with_top_three_opportunities(self) -> None:
        prompt = InsightPromptBuilder().build_prompt(_results(), "desktop")

        assert "multiple URLs on desktop" in prompt
        assert "URL: https://a.example" in prompt
        assert '"best-practices": 100' in prompt
        assert '"pwa": "N/A"' in prompt
        assert "- Largest opportunity (1.2 s)" in prompt
        assert "- Second opportunity (N/A)" in prompt
        assert "- Third opportunity (0.4 s)" in prompt
        assert "Fourth opportunity" not in prompt
        assert "URL: https://down.example" in prompt
        assert "Audit failed: Connection refused" in prompt

    def test_mobile_batches_mention_mobile_devices(self) -> None:
        prompt = InsightPromptBuilder().build_prompt(_results(), "mobile")

        assert "multiple URLs on mobile devices" in prompt


class TestInsightSummarizer:
    def test_summary_is_written_as_one_text_artifact(self, tmp_path: Path) -> None:
        adapter = MockLLMAdapter(response="  Pages perform well overall.  ")
        keys: list[str] = []

        def factory(api_key: str) -> MockLLMAdapter:
            keys.append(api_key)
            return adapter

        summarizer = InsightSummarizer(ArtifactWriter(tmp_path), adapter_factory=factory, clock=FakeClock())

        public_path = summarizer.summarize(_results(), form_factor="mobile", api_key="sk-test")

        assert public_path == "/reports/lighthouse-ai-insights-mobile-2024-01-01T12-00-00-000Z.txt"
        written = tmp_path / "lighthouse-ai-insights-mobile-2024-01-01T12-00-00-000Z.txt"
        assert written.read_text(encoding="utf-8") == "Pages perform well overall."
        assert keys == ["sk-test"]
        assert len(adapter.prompts) == 1

    def test_empty_response_raises(self, tmp_path: Path) -> None:
        summarizer = InsightSummarizer(
            ArtifactWriter(tmp_path),
            adapter_factory=lambda api_key: MockLLMAdapter(response="   "),
        )

        with pytest.raises(InsightSummaryError):
            summarizer.summarize(_results(), form_factor="desktop", api_key="sk-test")
        assert list(tmp_path.iterdir()) == []

    def test_empty_batch_raises(self, tmp_path: Path) -> None:
        summarizer = InsightSummarizer(ArtifactWriter(tmp_path), adapter_factory=lambda api_key: MockLLMAdapter())

        with pytest.raises(InsightSummaryError):
            summarizer.summarize([], form_factor="desktop", api_key="sk-test")


def test_build_adapter_honours_mock_setting() -> None:
    adapter = build_adapter("sk-ignored", LLMSettings(adapter="mock"))

    assert isinstance(adapter, MockLLMAdapter)
    assert adapter.generate("anything").startswith("Mock insight")
