"""Streamlit dashboard for batch Lighthouse audits.

Replaceable UI layer. All display logic lives here.
The audit API is reached over HTTP via frontend.client only.
"""

from __future__ import annotations

import time
from typing import Optional

import streamlit as st

from frontend.client import AuditAPIClient, AuditAPIError, results_to_frame

POLL_INTERVAL_SECONDS = 2.0

# ── Page config (must be first Streamlit call) ─────────────────────────────
st.set_page_config(
    page_title="Lighthouse Batch Audit",
    page_icon="🚦",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource(show_spinner=False)
def _client() -> AuditAPIClient:
    return AuditAPIClient()


# ── Session state defaults ─────────────────────────────────────────────────
_STATE_DEFAULTS: dict = {
    "session_id": None,
    "snapshot": None,
    "uploaded_urls": [],
    "uploaded_key": None,
}

for _key, _val in _STATE_DEFAULTS.items():
    if _key not in st.session_state:
        st.session_state[_key] = _val


def _parse_url_text(text: str) -> list[str]:
    parts = text.replace(",", "\n").splitlines()
    return [part.strip() for part in parts if part.strip()]


# ── Sidebar ────────────────────────────────────────────────────────────────
with st.sidebar:
    st.title("Lighthouse Batch Audit")
    st.caption(f"API: {_client().base_url}")
    st.divider()

    url_text = st.text_area(
        "URLs",
        placeholder="https://example.com\nhttps://example.org",
        height=150,
        help="One URL per line or comma separated.",
    )

    uploaded_file = st.file_uploader(
        "Or upload a CSV (first column)",
        type=["csv"],
    )
    upload_key = (uploaded_file.name, uploaded_file.size) if uploaded_file is not None else None
    if upload_key is not None and upload_key != st.session_state.uploaded_key:
        st.session_state.uploaded_key = upload_key
        try:
            st.session_state.uploaded_urls = _client().upload_csv(
                uploaded_file.name,
                uploaded_file.getvalue(),
            )
            st.success(f"Loaded {len(st.session_state.uploaded_urls)} URLs from CSV")
        except AuditAPIError as exc:
            st.session_state.uploaded_urls = []
            st.error(str(exc))

    form_factor = st.radio("Device", ["desktop", "mobile"], horizontal=True)

    with st.expander("Optional settings"):
        api_key = st.text_input("OpenAI API key (enables AI insights)", type="password")
        bypass_token = st.text_input("Vercel protection bypass token", type="password")

    run = st.button("Run Audit", type="primary", use_container_width=True)

    if st.session_state.snapshot:
        if st.button("Clear", use_container_width=True):
            st.session_state.session_id = None
            st.session_state.snapshot = None
            st.rerun()


# ── Submit ─────────────────────────────────────────────────────────────────
if run:
    urls = _parse_url_text(url_text) + list(st.session_state.uploaded_urls)
    if not urls:
        st.sidebar.warning("Enter at least one URL or upload a CSV before running.")
    else:
        try:
            accepted = _client().submit_audit(
                urls,
                form_factor=form_factor,
                summarizer_api_key=api_key or None,
                bypass_token=bypass_token or None,
            )
            st.session_state.session_id = accepted["session_id"]
            st.session_state.snapshot = None
        except AuditAPIError as exc:
            st.error(str(exc))
            if exc.suggestion:
                st.info(exc.suggestion)


# ── Helper renderers ───────────────────────────────────────────────────────
def _render_progress(snapshot: dict) -> None:
    total = snapshot.get("total") or 1
    progress = snapshot.get("progress", 0)
    status = snapshot.get("status")

    if status == "processing":
        if snapshot.get("phase") == "summarizing":
            label = "Generating AI insights…"
        else:
            label = f"Auditing {snapshot.get('current_url') or '…'} ({progress}/{total})"
        st.progress(min(progress / total, 1.0), text=label)
    elif status == "completed":
        failed = sum(1 for item in snapshot.get("results", []) if item.get("error"))
        st.success(f"Completed {total} URL(s), {failed} failed.")
    else:
        st.error(snapshot.get("error") or "Audit failed.")


def _render_results(snapshot: dict) -> None:
    results = snapshot.get("results") or []
    if not results:
        st.info("No results yet.")
        return

    st.subheader("Results")
    st.dataframe(results_to_frame(results), use_container_width=True, hide_index=True)

    for item in results:
        with st.expander(item.get("url", "N/A")):
            if item.get("error"):
                st.error(item["error"])
                continue
            report_paths = item.get("report_paths") or {}
            links = [
                f"[{label}]({_client().artifact_url(report_paths.get(key))})"
                for key, label in (("html", "HTML report"), ("json", "JSON report"))
                if report_paths.get(key)
            ]
            if links:
                st.markdown(" · ".join(links))
            for opportunity in (item.get("opportunities") or [])[:5]:
                st.markdown(f"- {opportunity.get('title')} ({opportunity.get('display_value') or 'N/A'})")

    insight_url: Optional[str] = _client().artifact_url(snapshot.get("insight_artifact_path"))
    if insight_url:
        st.subheader("AI Insights")
        st.markdown(f"[Download insights]({insight_url})")


# ── Main content area ──────────────────────────────────────────────────────
session_id: Optional[str] = st.session_state.session_id

if not session_id:
    st.info("Enter URLs in the sidebar and run an audit to see results.")
else:
    try:
        st.session_state.snapshot = _client().get_status(session_id)
    except AuditAPIError as exc:
        st.error(str(exc))

    snapshot: Optional[dict] = st.session_state.snapshot
    if snapshot:
        _render_progress(snapshot)
        _render_results(snapshot)
        if snapshot.get("status") == "processing":
            time.sleep(POLL_INTERVAL_SECONDS)
            st.rerun()
