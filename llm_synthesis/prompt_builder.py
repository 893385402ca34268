"""Prompt builder for batch audit insight summaries."""

import json
from typing import Sequence

from app.domain.audit import AuditFailure, AuditResult, FormFactor, NOT_APPLICABLE

TOP_OPPORTUNITIES = 3

_INSTRUCTIONS = """\
You are a web performance expert. Below is a batch of Lighthouse audit results for multiple URLs on {device}.

For each URL:
- Briefly summarize the strengths based on scores (not more than 2-3 sentences)
- Mention top 2-3 actionable suggestions from opportunities (not more than 1-2 sentences each)
- Note any red flags if present (make this short and concise)

At the end, provide:
- A short overall assessment of this batch (short and concise)
- General performance optimization advice applicable to most pages (focus on important aspects and avoid generic advice)
- Clearly state if the pages are performing well or need significant improvements
"""

_URL_TEMPLATE = """\
URL: {url}
Scores: {scores}
Top Opportunities:
{opportunities}
"""

_FAILED_URL_TEMPLATE = """\
URL: {url}
Audit failed: {error}
"""


class InsightPromptBuilder:
    """Builds one narrative prompt for an entire completed batch.

    Each successful URL contributes its scores and its highest-impact
    opportunities; failed URLs are listed with their error so the model
    can flag them.
    """

    def __init__(self, top_opportunities: int = TOP_OPPORTUNITIES) -> None:
        self._top_opportunities = top_opportunities

    def build_prompt(self, results: Sequence[AuditResult], form_factor: str) -> str:
        """Build the summary prompt.

        Args:
            results: Per-URL results in submission order.
            form_factor: Device class the batch was audited for.

        Returns:
            A fully formatted prompt string ready for LLM consumption.
        """
        device = "mobile devices" if form_factor == FormFactor.MOBILE else "desktop"
        sections = "\n".join(self._format_result(result) for result in results)
        return f"{_INSTRUCTIONS.format(device=device)}\nAudit Data:\n\n{sections}"

    def _format_result(self, result: AuditResult) -> str:
        if isinstance(result, AuditFailure):
            return _FAILED_URL_TEMPLATE.format(url=result.url, error=result.error)

        top = result.opportunities[: self._top_opportunities]
        if top:
            opportunities = "\n".join(
                f"- {item.title} ({item.display_value or NOT_APPLICABLE})" for item in top
            )
        else:
            opportunities = NOT_APPLICABLE
        return _URL_TEMPLATE.format(
            url=result.url,
            scores=json.dumps(result.scores.to_dict()),
            opportunities=opportunities,
        )
