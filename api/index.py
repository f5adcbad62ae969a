"""
Serverless entrypoint for the submission relay.

Exposes `app` for platforms that look for `api/index.py` (e.g. Vercel).
"""

from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    # `api/index.py` lives at `<repo>/api/index.py`
    src = Path(__file__).resolve().parents[1] / "src"
    if src.is_dir() and str(src) not in sys.path:
        sys.path.insert(0, str(src))


_ensure_src_on_path()

from intake_wizard.api.main import create_app  # noqa: E402
from intake_wizard.config import configure_logging  # noqa: E402

configure_logging()
app = create_app()
