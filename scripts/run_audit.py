"""
Run one batch audit synchronously from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os

from app.domain.audit import FORM_FACTORS, FormFactor, SessionStatus
from app.repositories.audit_session_store import InMemoryAuditSessionStore
from app.schemas.audit import AuditSessionStatusResponse
from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    AuditRequestValidationError,
    InlineTaskExecutor,
    build_default_pipeline,
)
from audit_engine.errors import AutomationRuntimeUnavailableError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run Lighthouse audits for a batch of URLs.")
    parser.add_argument("urls", nargs="+", help="Absolute http(s) URLs to audit, in order.")
    parser.add_argument(
        "--form-factor",
        dest="form_factor",
        choices=sorted(FORM_FACTORS),
        default=FormFactor.DESKTOP,
        help="Device profile to emulate.",
    )
    parser.add_argument(
        "--api-key",
        dest="api_key",
        default=None,
        help="Optional text-generation API key; enables the batch insight summary.",
    )
    parser.add_argument(
        "--bypass-token",
        dest="bypass_token",
        default=None,
        help="Optional deployment-protection bypass token.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    store = InMemoryAuditSessionStore()
    service = AuditOrchestratorService(store=store, pipeline=build_default_pipeline(store))
    try:
        submission = service.submit(
            executor=InlineTaskExecutor(),
            urls=args.urls,
            form_factor=args.form_factor,
            summarizer_api_key=args.api_key,
            bypass_token=args.bypass_token,
        )
    except AuditRequestValidationError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 2
    except AutomationRuntimeUnavailableError as exc:
        print(json.dumps(exc.to_dict(), indent=2))
        return 3

    session = service.get_session(submission.session_id)
    payload = AuditSessionStatusResponse.from_session(session).model_dump(mode="json")
    print(json.dumps(payload, indent=2))
    return 0 if session.status == SessionStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
