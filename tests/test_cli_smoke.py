import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
PYTHON = sys.executable


class TestCliSmoke(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.state = os.path.join(self.tmp.name, "state.json")
        with open(self.state, "w", encoding="utf-8") as f:
            json.dump({
                "urlPatterns": [{"id": "p1", "name": "Casino", "pattern": "casino", "type": "contains",
                                 "enabled": True, "action": "block"}],
            }, f)

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *args):
        return subprocess.run(
            [PYTHON, str(ROOT / "src" / "main.py"), "--state", self.state, "--quiet", *args],
            cwd=str(ROOT),
            capture_output=True,
            text=True,
            timeout=30,
        )

    def test_check_prints_decisions(self):
        proc = self.run_cli("--check", "https://megacasino.example/", "--check", "https://example.com/")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        lines = [json.loads(line) for line in proc.stdout.splitlines() if line.strip()]
        self.assertEqual([d["blocked"] for d in lines], [True, False])
        self.assertEqual(lines[0]["reason"], "Blocked by URL pattern: Casino")

    def test_snooze_then_check(self):
        proc = self.run_cli("--snooze", "5", "--check", "https://megacasino.example/")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        decision = json.loads(proc.stdout.strip().splitlines()[-1])
        self.assertFalse(decision["blocked"])
        self.assertEqual(decision["source"], "snooze")

    def test_block_set(self):
        proc = self.run_cli("--block-set")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["domains"], [])
        self.assertEqual(payload["directives"], [])

    def test_serve_needs_directives_file(self):
        proc = self.run_cli("--serve")
        self.assertEqual(proc.returncode, 2)


if __name__ == "__main__":
    unittest.main()
