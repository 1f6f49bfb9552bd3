"""Utilities for normalising workflow family identifiers.

Corpus configs, command lines and output file names refer to the same
application family in several spellings (`Epigenomics`, `genome`,
`Cybershake.n.1000.3.json`, `VC`).  The registry of topology builders only
knows one canonical key per family, so every lookup goes through
`infer_workflow_family` first.
"""
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable

_KNOWN_WORKFLOW_TOKENS: dict[str, str] = {
    "cybershake": "cybershake",
    "seismology": "cybershake",
    "genome": "genome",
    "epigenomics": "genome",
    "ligo": "ligo",
    "inspiral": "ligo",
    "montage": "montage",
    "sipht": "sipht",
    "vc": "variant_calling",
    "variantcalling": "variant_calling",
    "variant_calling": "variant_calling",
}

_SIZE_SUFFIX_PATTERN = re.compile(r"\.n\.\d+(\.\d+)?(\.r\d+)?$", re.IGNORECASE)
_SPLIT_PATTERN = re.compile(r"[^a-z0-9]+")


def _tokenise(raw: str) -> Iterable[str]:
    for token in _SPLIT_PATTERN.split(raw.lower()):
        token = token.strip()
        if not token or token.isdigit():
            continue
        yield token


@lru_cache(maxsize=None)
def infer_workflow_family(name: str | Path) -> str:
    """Return the canonical family key for a family name or corpus file name.

    Unknown names fall back to their first meaningful token so the caller can
    report them.
    """
    raw = Path(name).name if isinstance(name, Path) else str(name)
    stem = raw.rsplit(".", 1)[0] if raw.lower().endswith((".json", ".dax", ".xml")) else raw
    stem = _SIZE_SUFFIX_PATTERN.sub("", stem)
    compact = stem.lower().replace("-", "_").replace(" ", "_")
    if compact in _KNOWN_WORKFLOW_TOKENS:
        return _KNOWN_WORKFLOW_TOKENS[compact]
    candidates = list(_tokenise(stem))
    if "variant" in candidates and "calling" in candidates:
        return "variant_calling"
    for token in candidates:
        canonical = _KNOWN_WORKFLOW_TOKENS.get(token)
        if canonical:
            return canonical
    return candidates[0] if candidates else "unknown"


__all__ = ["infer_workflow_family"]
