"""Smoke tests for the square-room localization demo.

Verifies that the demo script runs end to end and that its machine-readable
[MCL_SUMMARY] JSON line is well formed. Uses the Agg backend so no display
is required.

The in-process run also checks that the filter beats dead-reckoned odometry
on the simulated loop.
"""

import json
import os
import re
import subprocess
import sys
import unittest
from pathlib import Path
from typing import Any, Dict, Optional

from demos.example_square_room import build_square_room, run_demo
from vmcl.config import ParticleFilterConfig
from vmcl.maps import save_vector_map


SUMMARY_KEYS = {
    "n_steps",
    "n_particles",
    "n_updates",
    "n_resamples",
    "rmse_odom",
    "rmse_filter",
    "final_error_odom",
    "final_error_filter",
    "max_heading_error_deg",
}


def parse_mcl_summary(stdout: str) -> Optional[Dict[str, Any]]:
    """Parse the [MCL_SUMMARY] JSON line from script output."""
    match = re.search(r"\[MCL_SUMMARY\]\s*(\{.*\})", stdout)
    if not match:
        return None
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed MCL_SUMMARY JSON: {e}")


class TestRunDemo(unittest.TestCase):
    """In-process run of the localization loop."""

    def test_filter_beats_odometry(self):
        config = ParticleFilterConfig(num_particles=100, resample_interval=2)
        result = run_demo(config, build_square_room(), n_steps=60, seed=7)
        s = result["summary"]

        self.assertEqual(set(s), SUMMARY_KEYS)
        self.assertEqual(result["truth"].shape, (61, 3))
        self.assertEqual(result["estimates"].shape, (61, 3))
        self.assertGreater(s["n_updates"], 0)
        self.assertGreater(s["n_resamples"], 0)
        self.assertLess(s["rmse_filter"], s["rmse_odom"])
        self.assertLess(s["final_error_filter"], 0.5)


class TestExampleSquareRoomRuns(unittest.TestCase):
    """Run the demo as a script."""

    def setUp(self):
        self.python_exe = sys.executable
        self.workspace_root = Path(__file__).parent.parent.parent
        self.env = os.environ.copy()
        self.env.update({
            "MPLBACKEND": "Agg",
            "PYTHONPATH": str(self.workspace_root),
        })

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.python_exe, "-m", "demos.example_square_room", *args],
            cwd=str(self.workspace_root),
            env=self.env,
            capture_output=True,
            text=True,
            timeout=300,
        )

    def test_runs_and_saves_figure(self):
        import tempfile

        with tempfile.TemporaryDirectory() as tmp:
            figure = Path(tmp) / "figs" / "mcl.png"
            result = self._run("--steps", "20", "--particles", "30", "--save", str(figure))

            self.assertEqual(result.returncode, 0,
                             f"Demo failed:\nSTDOUT:\n{result.stdout}\nSTDERR:\n{result.stderr}")
            summary = parse_mcl_summary(result.stdout)
            self.assertIsNotNone(summary, "[MCL_SUMMARY] line not found")
            self.assertEqual(summary["n_steps"], 20)
            self.assertEqual(summary["n_particles"], 30)
            self.assertTrue(figure.exists())

    def test_runs_with_map_and_config_files(self):
        import tempfile

        with tempfile.TemporaryDirectory() as tmp:
            map_path = Path(tmp) / "room.txt"
            save_vector_map(build_square_room(), map_path)
            config_path = Path(tmp) / "pf.json"
            config_path.write_text(json.dumps({
                "num_particles": 25,
                "resample_interval": 1,
                "observation": {"ray_stride": 20},
            }))

            result = self._run("--steps", "15", "--map", str(map_path),
                               "--config", str(config_path))

            self.assertEqual(result.returncode, 0,
                             f"Demo failed:\nSTDOUT:\n{result.stdout}\nSTDERR:\n{result.stderr}")
            summary = parse_mcl_summary(result.stdout)
            self.assertIsNotNone(summary)
            self.assertEqual(summary["n_particles"], 25)
            self.assertIn("room (5 segments, 42.1 m of wall)", result.stdout)


if __name__ == "__main__":
    unittest.main()
