import json
import os
import tempfile
import unittest

from click.testing import CliRunner
from store_case import point_store_at

from main import cli


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = point_store_at(self.temp_dir.name)
        self.runner = CliRunner()

    def tearDown(self):
        self.temp_dir.cleanup()

    def invoke(self, *args):
        result = self.runner.invoke(cli, ["--db", self.db_path, *args])
        return result

    def test_init_alerts_report(self):
        result = self.invoke("init")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Seeded", result.output)

        result = self.invoke("init")
        self.assertIn("nothing seeded", result.output)

        result = self.invoke("alerts")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("above their minimum", result.output)

        result = self.invoke("report", "--start", "2024-01-01")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Sales Report", result.output)

        out = os.path.join(self.temp_dir.name, "report.json")
        result = self.invoke("report", "--start", "2024-01-01", "--end", "2024-01-31", "--out", out)
        self.assertEqual(result.exit_code, 0, result.output)
        with open(out, encoding="utf-8") as f:
            written = json.load(f)
        self.assertEqual(written["reportPeriod"], "2024-01-01 to 2024-01-31")
        self.assertEqual(written["summary"]["totalTransactions"], 0)

        result = self.invoke("report", "--end", "2024-01-01")
        self.assertNotEqual(result.exit_code, 0)

    def test_export_import_clear(self):
        self.invoke("init")
        path = os.path.join(self.temp_dir.name, "out.json")
        result = self.invoke("export", path)
        self.assertEqual(result.exit_code, 0, result.output)
        with open(path, encoding="utf-8") as f:
            self.assertEqual(len(json.load(f)["products"]), 5)

        result = self.invoke("clear", "--yes")
        self.assertEqual(result.exit_code, 0, result.output)

        result = self.invoke("import", path)
        self.assertEqual(result.exit_code, 0, result.output)

        bad = os.path.join(self.temp_dir.name, "bad.json")
        with open(bad, "w", encoding="utf-8") as f:
            f.write("{oops")
        result = self.invoke("import", bad)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("not a valid backup", result.output)
