"""Run one real extraction against a local file without touching history.

Usage (from repo root):
    python backend/scripts/smoke_extraction.py path/to/report.pdf [command.json]

Usage (from backend/):
    python scripts/smoke_extraction.py path/to/report.pdf [command.json]
"""

from __future__ import annotations

import argparse
import json
import mimetypes
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.config import get_settings
from app.extraction.command_spec import DEFAULT_COMMAND_FILE, resolve_command_spec
from app.extraction.invoker import ExtractionInvoker
from app.extraction.normalizer import InputNormalizer
from app.extraction.openai_client import get_default_understanding_client
from app.services.artifacts import StoredUpload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke-test one file extraction")
    parser.add_argument("path", type=Path)
    parser.add_argument("command", nargs="?", default=DEFAULT_COMMAND_FILE)
    args = parser.parse_args(argv)

    settings = get_settings()
    spec = resolve_command_spec(args.command, settings.commands_dir, default_model=settings.openai_extraction_model)
    upload = StoredUpload(
        path=args.path,
        original_name=args.path.name,
        media_type=mimetypes.guess_type(args.path.name)[0] or "",
        size=args.path.stat().st_size,
    )
    client = get_default_understanding_client()
    normalized = InputNormalizer(client).normalize(upload)
    outcome = ExtractionInvoker(client, chat_model=settings.openai_chat_model).invoke([normalized.part], spec)
    print(
        json.dumps(
            {
                "command": spec.name,
                "kind": normalized.kind.value,
                "external_file_id": normalized.external_file_id,
                "raw_fallback": outcome.raw_fallback,
                "result": outcome.data,
            },
            indent=2,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
