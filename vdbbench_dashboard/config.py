"""Environment-driven defaults for the dashboard CLI.

Values come from the process environment, after loading a `.env` file
from the working directory if one exists. Command-line flags override
all of them.

- `RESULTS_PATH`: local directory holding `result_*.json` files.
- `VDBBENCH_HF_REPO`: Hugging Face dataset repo to pull results from instead.
- `VDBBENCH_STATE_FILE`: YAML file remembering filter selections.
- `VDBBENCH_OUTPUT`: where the dashboard HTML is written.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_OUTPUT = Path("dashboard.html")


def _optional_path(name: str) -> Path | None:
    raw = os.getenv(name, "").strip()
    return Path(raw).expanduser() if raw else None


@dataclass(frozen=True)
class Settings:
    results_path: Path | None
    hf_repo: str | None
    state_file: Path | None
    output: Path


def load_settings(dotenv_path: str | Path | None = None) -> Settings:
    """Read settings from the environment (and `.env`)."""
    load_dotenv(dotenv_path=dotenv_path or Path.cwd() / ".env")
    return Settings(
        results_path=_optional_path("RESULTS_PATH"),
        hf_repo=os.getenv("VDBBENCH_HF_REPO") or None,
        state_file=_optional_path("VDBBENCH_STATE_FILE"),
        output=_optional_path("VDBBENCH_OUTPUT") or DEFAULT_OUTPUT,
    )
