"""Aggregated mini-report for ``pack``.

Determinism note:
Given the same tree, the report is identical across runs. We DO NOT embed
timestamps or absolute paths (root/archive location).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from mdpack.packer import ArchiveResult

SCHEMA = "mdpack.pack_report.v1"


def _safe_int(x: object, default: int = 0) -> int:
    try:
        return int(x)  # type: ignore[arg-type]
    except Exception:
        return default


def _norm_ext(rel: str) -> str:
    suf = Path(rel).suffix.lower()
    return suf if suf else "(none)"


def _bytes_h(n: int) -> str:
    if n < 0:
        return str(n)
    units = ["B", "KiB", "MiB", "GiB"]
    f = float(n)
    u = 0
    while f >= 1024.0 and u < len(units) - 1:
        f /= 1024.0
        u += 1
    return f"{int(f)} {units[u]}" if u == 0 else f"{f:.2f} {units[u]}"


def build_pack_report(result: ArchiveResult, *, top: int = 10) -> dict[str, Any]:
    ext_stats: dict[str, dict[str, int]] = {}
    for e in result.entries:
        es = ext_stats.setdefault(_norm_ext(e.rel), {"files": 0, "bytes": 0})
        es["files"] += 1
        es["bytes"] += e.size

    top_extensions = [
        {"key": k, "files": v["files"], "bytes": v["bytes"]} for k, v in ext_stats.items()
    ]
    top_extensions.sort(key=lambda r: (-_safe_int(r["bytes"]), str(r["key"])))

    encodings: dict[str, int] = {}
    for e in result.entries:
        encodings[e.encoding] = encodings.get(e.encoding, 0) + 1

    skipped_by_reason: dict[str, int] = {}
    for s in result.skipped:
        skipped_by_reason[s.reason] = skipped_by_reason.get(s.reason, 0) + 1

    return {
        "schema": SCHEMA,
        "files_ok": result.files_ok,
        "files_skipped": result.files_skipped,
        "total_in": result.total_bytes,
        "encodings": dict(sorted(encodings.items())),
        "skipped_by_reason": dict(sorted(skipped_by_reason.items())),
        "top_extensions": top_extensions[: max(0, int(top))],
        "skipped": [
            {"rel": s.rel, "reason": s.reason, "detail": s.detail} for s in result.skipped
        ][:200],
        "warnings": list(result.warnings)[:200],
    }


def render_pack_report_text(rep: dict[str, Any]) -> str:
    # Deterministic text: no timestamps, no absolute paths.
    lines: list[str] = []
    lines.append("mdpack pack - mini-report\n")
    lines.append(
        f"files_ok={rep.get('files_ok')} files_skipped={rep.get('files_skipped')} "
        f"total_in={_bytes_h(_safe_int(rep.get('total_in'), 0))}\n\n"
    )

    lines.append("Encodings\n")
    enc = rep.get("encodings") or {}
    if not enc:
        lines.append("  (no data)\n\n")
    else:
        for k, v in enc.items():
            lines.append(f"  {str(k):10s} files={_safe_int(v):4d}\n")
        lines.append("\n")

    lines.append("Top extensions (by size)\n")
    te = rep.get("top_extensions") or []
    if not te:
        lines.append("  (no data)\n\n")
    else:
        for r in te:
            lines.append(
                f"  {str(r.get('key')):10s} files={_safe_int(r.get('files')):4d} size={_bytes_h(_safe_int(r.get('bytes')))}\n"
            )
        lines.append("\n")

    lines.append("Skipped (by reason)\n")
    sr = rep.get("skipped_by_reason") or {}
    if not sr:
        lines.append("  (none)\n\n")
    else:
        for k, v in sr.items():
            lines.append(f"  {str(k):14s} {_safe_int(v)}\n")
        lines.append("\n")

    return "".join(lines)
