#!/usr/bin/env python3
"""Launcher for the Finance Tracker dashboard.

Runs Streamlit on ``finance_tracker/dashboard.py`` with the project root on
the import path.  Extra arguments are passed through to ``streamlit run``.
"""

import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()
dashboard = project_root / "finance_tracker" / "dashboard.py"

if __name__ == "__main__":
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(project_root), env.get("PYTHONPATH")]))
    result = subprocess.run(
        [sys.executable, "-m", "streamlit", "run", str(dashboard), *sys.argv[1:]],
        env=env,
    )
    raise SystemExit(result.returncode)
