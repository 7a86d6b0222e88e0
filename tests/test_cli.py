"""
Tests for CLI entry points.

These tests build a dataset from the sample classes into a temporary
directory, so they never touch the real package data.
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from sample_data import sample_classes

from colles.cli import main
from colles.interactive import GENERIC_ERROR
from colles.storage import DATA_URL_ENV


def _run(argv: list[str]) -> tuple[int, str]:
    buf = io.StringIO()
    with redirect_stdout(buf), mock.patch.dict(os.environ, {DATA_URL_ENV: ""}):
        try:
            main(argv)
        except SystemExit as e:
            return e.code, buf.getvalue()
    raise AssertionError("main() did not exit")


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.classes_dir = root / "classes"
        self.classes_dir.mkdir()
        for name, record in zip(["mpsi", "pcsi"], sample_classes()):
            (self.classes_dir / f"{name}.json").write_text(
                json.dumps(record, ensure_ascii=False), encoding="utf-8"
            )
        self.data = root / "processed" / "data.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _build(self, *extra: str) -> tuple[int, str]:
        return _run(["build", "--data-dir", str(self.classes_dir), "--out", str(self.data), *extra])

    def test_show_requires_text(self) -> None:
        code, out = _run(["show", "", "--data", str(self.data)])
        self.assertNotEqual(code, 0)

    def test_build_then_show(self) -> None:
        code, out = self._build()
        self.assertEqual(code, 0)
        self.assertTrue(self.data.exists())

        code, out = _run(["show", "alice", "--data", str(self.data), "--at", "2024-09-12T12:00"])
        self.assertEqual(code, 0)
        self.assertIn("Alice Durand | MPSI | group 1", out)
        self.assertIn("Week 2 (16/09/2024)", out)
        self.assertNotIn("Week 1 ", out)
        self.assertIn("Mon 17:00 | Maths | M. Dupont | room B12 | normal", out)

    def test_show_no_match(self) -> None:
        self._build()
        code, out = _run(["show", "nobody", "--data", str(self.data)])
        self.assertEqual(code, 0)
        self.assertIn("No match.", out)

    def test_missing_data_is_an_error(self) -> None:
        code, out = _run(["show", "alice", "--data", str(self.data)])
        self.assertEqual(code, 1)
        self.assertIn(GENERIC_ERROR, out)

    def test_build_check(self) -> None:
        self._build()
        code, out = self._build("--check")
        self.assertEqual(code, 0)
        self.assertIn("up to date", out)

        record = json.loads((self.classes_dir / "pcsi.json").read_text(encoding="utf-8"))
        record["teachers"] = ["M. Fourier"]
        (self.classes_dir / "pcsi.json").write_text(json.dumps(record), encoding="utf-8")
        code, out = self._build("--check")
        self.assertEqual(code, 1)
        self.assertIn("out of date", out)

    def test_build_failure(self) -> None:
        (self.classes_dir / "broken.json").write_text("{", encoding="utf-8")
        code, out = self._build()
        self.assertEqual(code, 1)
        self.assertIn("Build failed", out)

    def test_export(self) -> None:
        self._build()
        out_path = Path(self._tmp.name) / "alice.ics"
        code, out = _run(["export", "zoe", str(out_path), "--data", str(self.data)])
        self.assertEqual(code, 0)
        self.assertTrue(out_path.exists())
        self.assertIn("Zoé Martin", out)

    def test_template_out_of_range_is_generic_error(self) -> None:
        self._build()
        raw = json.loads(self.data.read_text(encoding="utf-8"))
        raw[1][0][2] = "5"  # MPSI group 1 only has templates 0 and 1
        self.data.write_text(json.dumps(raw, ensure_ascii=False), encoding="utf-8")

        ics = str(Path(self._tmp.name) / "alice.ics")
        for argv in (["show", "alice"], ["export", "alice", ics]):
            code, out = _run([*argv, "--data", str(self.data)])
            self.assertEqual(code, 1)
            self.assertIn(GENERIC_ERROR, out)

    def test_short_row_is_generic_error(self) -> None:
        self.data.parent.mkdir(parents=True)
        self.data.write_text('[[["MPSI"]],[],[],[],[],[],[],[],{}]', encoding="utf-8")
        code, out = _run(["show", "alice", "--data", str(self.data)])
        self.assertEqual(code, 1)
        self.assertIn(GENERIC_ERROR, out)


if __name__ == "__main__":
    unittest.main()
