#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

_SRC = Path(__file__).resolve().parents[1] / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))

from intake_wizard.client import RelayClient  # noqa: E402
from intake_wizard.config import WizardSettings, configure_logging, load_env_files  # noqa: E402
from intake_wizard.schemas import default_answers  # noqa: E402


def _load_answers(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise SystemExit(f"{path}: expected a JSON object of answers")
    answers = default_answers()
    answers.update(data)
    return answers


def main() -> int:
    load_env_files()
    settings = WizardSettings.from_env()
    ap = argparse.ArgumentParser(description="Post a JSON answers file to the submission relay.")
    ap.add_argument("answers", type=Path, help="JSON file with form answers (missing keys get defaults)")
    ap.add_argument("--relay-url", default=settings.relay_url)
    ap.add_argument("--timeout", type=float, default=settings.timeout_sec)
    args = ap.parse_args()

    configure_logging()
    client = RelayClient(args.relay_url, timeout_sec=args.timeout)
    try:
        outcome = client.submit(_load_answers(args.answers))
    finally:
        client.close()
    print(json.dumps(outcome.to_wire(), indent=2, ensure_ascii=False))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
