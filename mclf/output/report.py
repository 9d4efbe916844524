"""
MCLF Report Generator
=====================

Writes JSON reports of MCLF loads.  The report bundles the run summary,
the decoded header, the memory map, symbols, overlays and diagnostics in
a structured format suitable for machine consumption.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from shared.models import RunResult


class MclfReportGenerator:
    """Generate JSON reports from a :class:`RunResult`.

    Usage::

        gen = MclfReportGenerator()
        path = gen.generate_json(run, "output/trustlet.json")
    """

    def build(self, run: RunResult) -> dict[str, Any]:
        """Return the report as a JSON-serialisable dict."""
        load = run.metadata.get("load", {})
        return {
            "report_type": "mclf_load",
            "version": "1.0.0",
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "target": run.target,
            "success": run.success,
            "summary": run.summary,
            "duration_seconds": run.duration_seconds,
            "error": run.metadata.get("error"),
            "load_spec": load.get("load_spec"),
            "header": load.get("header"),
            "text_header": load.get("text_header"),
            "segments": load.get("segments", []),
            "symbols": load.get("symbols", []),
            "overlays": [
                {
                    "name": o["struct_type"]["name"],
                    "address": o["address"],
                    "fields": [f["name"] for f in o["struct_type"]["fields"]],
                }
                for o in load.get("overlays", [])
            ],
            "diagnostics": [d.model_dump(mode="json") for d in run.diagnostics],
            "severity_counts": run.severity_counts,
        }

    def generate_json(self, run: RunResult, output_path: str | Path) -> str:
        """Write the JSON report for *run* to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.build(run), indent=2, default=str),
            encoding="utf-8",
        )
        return str(path.resolve())
