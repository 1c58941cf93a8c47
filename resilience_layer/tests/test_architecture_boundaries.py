"""Architecture boundary guardrails for the framework-free core.

``resilience_layer/base`` must stay importable without the HTTP stack or a
concrete store client: it may not import FastAPI/Starlette, Redis, or the
outer ``service``, ``stores``, and ``di`` packages. The scan is static to
avoid import-time side effects.
"""

from __future__ import annotations

import re
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
BASE_DIR = REPO_ROOT / "resilience_layer" / "base"

_FORBIDDEN = re.compile(
    r"^\s*(?:from|import)\s+(?:"
    r"fastapi|starlette|redis"
    r"|resilience_layer\.(?:service|stores|di)"
    r"|\.{2,}(?:service|stores|di)\b"
    r")",
    re.MULTILINE,
)


def _iter_py_files(root: Path) -> list[Path]:
    return [p for p in root.rglob("*.py") if "__pycache__" not in p.parts]


def test_base_has_no_outer_layer_imports():
    offenders = []
    for path in _iter_py_files(BASE_DIR):
        text = path.read_text(encoding="utf-8", errors="replace")
        for match in _FORBIDDEN.finditer(text):
            offenders.append(f"{path.relative_to(REPO_ROOT)}: {match.group(0).strip()}")
    assert not offenders, "Forbidden imports in base:\n" + "\n".join(offenders)  # nosec B101


def test_base_directory_is_scanned():
    assert len(_iter_py_files(BASE_DIR)) > 10  # nosec B101
