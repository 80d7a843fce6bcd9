from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path

from sched_harness.config import HarnessConfig, load_harness_config, parse_env_file
from sched_harness.constants import DEFAULT_BASE_NUM_ITERS, DEFAULT_CGROUP_ROOT


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.env_path = Path(self._tmp.name) / ".env"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _load(self, text: str) -> tuple[HarnessConfig, str]:
        self.env_path.write_text(text, encoding="utf-8")
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            config = load_harness_config(str(self.env_path))
        return config, err.getvalue()

    def test_missing_file_gives_defaults(self) -> None:
        config = load_harness_config(str(Path(self._tmp.name) / "nope.env"))
        self.assertEqual(config, HarnessConfig(env_file=str(Path(self._tmp.name) / "nope.env")))

    def test_parses_values(self) -> None:
        config, warnings = self._load(
            "# trial settings\n"
            "export BASE_NUM_ITERS=1_500_000\n"
            "SETTLE_SECONDS=0.5\n"
            "BUCKET_ASSIGNER='syscall'\n"
            "SET_BUCKET_SYSCALL=0x1c3\n"
            "PIN_CPU=2\n"
            "ROUNDS=3\n"
            'SIMULATE="on"\n'
            "SIM_POLICY=process\n"
        )

        self.assertEqual(warnings, "")
        self.assertEqual(config.base_iters, 1_500_000)
        self.assertEqual(config.settle_seconds, 0.5)
        self.assertEqual(config.assigner, "syscall")
        self.assertEqual(config.syscall_nr, 451)
        self.assertEqual(config.cpu, 2)
        self.assertEqual(config.rounds, 3)
        self.assertTrue(config.simulate)
        self.assertEqual(config.sim_policy, "process")
        self.assertEqual(config.cgroup_root, DEFAULT_CGROUP_ROOT)

    def test_invalid_values_warn_and_fall_back(self) -> None:
        config, warnings = self._load(
            "BASE_NUM_ITERS=lots\n"
            "ROUNDS=0\n"
            "BUCKET_ASSIGNER=magic\n"
            "SIMULATE=maybe\n"
            "PIN_CPU=-1\n"
            "not a setting\n"
        )

        self.assertEqual(config.base_iters, DEFAULT_BASE_NUM_ITERS)
        self.assertEqual(config.rounds, 1)
        self.assertEqual(config.assigner, "none")
        self.assertFalse(config.simulate)
        self.assertIsNone(config.cpu)
        for key in ("BASE_NUM_ITERS", "ROUNDS", "BUCKET_ASSIGNER", "SIMULATE", "PIN_CPU"):
            self.assertIn(key, warnings)
        self.assertIn("Ignoring invalid env line 6", warnings)

    def test_parse_env_file_strips_quotes(self) -> None:
        self.env_path.write_text("A='x'\nB=\"y\"\n", encoding="utf-8")
        self.assertEqual(parse_env_file(str(self.env_path)), {"A": "x", "B": "y"})

    def test_empty_key_is_skipped_with_warning(self) -> None:
        self.env_path.write_text("A=1\n =skipped\n", encoding="utf-8")
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            env = parse_env_file(str(self.env_path))

        self.assertEqual(env, {"A": "1"})
        self.assertIn("Ignoring empty key on env line 2", err.getvalue())


if __name__ == "__main__":
    unittest.main()
