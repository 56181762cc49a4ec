"""Pass report generation service."""

import json
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from containerrebuild.errors import RebuildError
from containerrebuild.models import PassResult


class ReportService:
    """Collects pass timings and writes the pass report JSON."""

    def __init__(self, report_file: Optional[str], logger):
        self.report_file = report_file
        self.logger = logger
        self.started_at: Optional[datetime] = None

    def start(self):
        self.started_at = datetime.now(timezone.utc)

    def build(self, result: PassResult) -> Dict[str, Any]:
        finished_at = datetime.now(timezone.utc)
        started_at = self.started_at or finished_at
        return {
            "host": result.host_address,
            "status": result.status,
            "started_at": started_at.isoformat(),
            "finished_at": finished_at.isoformat(),
            "duration_seconds": round((finished_at - started_at).total_seconds(), 3),
            "recreated": result.recreated,
            "omitted": result.omitted,
            "parse_failures": result.parse_failures,
            "accounts": [asdict(outcome) for outcome in result.outcomes],
            "error": result.error,
        }

    def write(self, result: PassResult) -> Optional[Dict[str, Any]]:
        if not self.report_file:
            return None

        report = self.build(result)
        directory = os.path.dirname(os.path.abspath(self.report_file))
        temp_path = None

        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix="pass-report-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            raise RebuildError(f"Could not write report file '{self.report_file}': {exc}") from exc
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self.logger.info("Pass report written to %s", self.report_file)
        return report
