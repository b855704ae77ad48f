from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Mapping

PLACEHOLDER_RE = re.compile(r"<<([A-Z_]+)>>")


@lru_cache(maxsize=64)
def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load a prompt template as UTF-8 text and strip BOM if present.
    Inputs/Outputs: Input is a Path to the template; output is the decoded string.
    Side Effects / State: Reads the filesystem once per path; results are cached.
    Dependencies: Uses Path.read_text/read_bytes; used by PromptBuilder.
    Failure Modes: Missing files raise FileNotFoundError. UnicodeDecodeError
        triggers a tolerant decode that drops invalid bytes.
    If Removed: No stage can render its instruction or context text.
    Testing Notes: Validate BOM stripping and that repeated loads hit the cache.
    """
    # Read as UTF-8 and fall back to a tolerant decode if needed.
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = prompt_path.read_bytes()
        return raw.decode("utf-8", errors="ignore").lstrip("\ufeff")


def fill_template(template: str, values: Mapping[str, str]) -> str:
    """Replace each <<KEY>> marker with its value and trim the result."""
    # Single pass, so marker-like text inside owner notes is never expanded.
    return PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), match.group(0)), template).strip()
