"""Write fetched results to local files."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

EXPORT_FORMATS = ("json", "jsonl")


class ResultExporter:
    """Persist a completed run as a JSON array or as JSON Lines records.

    ``json`` writes the decoded values in input order; ``jsonl`` writes one
    ``{"url": ..., "data": ...}`` record per line.
    """

    def __init__(
        self,
        output_dir: Path,
        fmt: str = "json",
        name: str = "results",
        run_tag: str | None = None,
        path: Path | None = None,
    ) -> None:
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")
        self.format = fmt
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        if path is None:
            slug = re.sub(r"[^0-9A-Za-z_-]+", "_", name.strip()) or "results"
            path = output_dir / f"{slug}-{self.run_tag}.{fmt}"
        self.path = path

    def export(self, urls: Sequence[str], results: Sequence[Any]) -> Path:
        if len(urls) != len(results):
            raise ValueError("urls and results must have the same length")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as stream:
            if self.format == "json":
                json.dump(list(results), stream, ensure_ascii=False, indent=2)
                stream.write("\n")
            else:
                for url, value in zip(urls, results):
                    json.dump({"url": url, "data": value}, stream, ensure_ascii=False)
                    stream.write("\n")
        return self.path


__all__ = ["EXPORT_FORMATS", "ResultExporter"]
