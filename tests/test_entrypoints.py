"""
tests/test_entrypoints.py

Worker, planner and scheduler entry points load in a fresh interpreter, in
the order their processes import them.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]


def _run(*args: str) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, *args],
        cwd=ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )


class TestFreshImports:
    @pytest.mark.parametrize(
        "module",
        [
            "app.jobs.factory",
            "app.scheduler.jobs",
            "app.jobs.handlers.ai_report",
            "app.services.analysis_trigger_service",
            "app.main",
        ],
    )
    def test_module_imports_first(self, module: str) -> None:
        completed = _run("-c", f"import {module}")
        assert completed.returncode == 0, completed.stderr

    @pytest.mark.parametrize("script", ["scripts/run_job_worker.py", "scripts/schedule_jobs.py"])
    def test_script_help(self, script: str) -> None:
        completed = _run(script, "--help")
        assert completed.returncode == 0, completed.stderr
        assert "usage:" in completed.stdout
