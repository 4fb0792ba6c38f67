import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import date

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from burndown.__main__ import main
from burndown.examples.simple_project import create_sample_project


class ExampleProjectTestCase(unittest.TestCase):
    def tearDown(self):
        plt.close("all")

    def test_sample_project_report(self):
        output = io.StringIO()
        with redirect_stdout(output):
            forecaster = create_sample_project(output=None)

        text = output.getvalue()
        self.assertIn("Burndown Forecast Report", text)
        self.assertIn("Status date: 2025-04-10", text)
        self.assertIn("T2: Build", text)
        self.assertEqual(len(forecaster.get_project_tasks("P1")), 4)

    def test_cli_runs_example(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, "out.png")
            with redirect_stdout(io.StringIO()):
                code = main(["--example", "--output", filename, "--today", "2025-04-14"])
            self.assertEqual(code, 0)
            self.assertTrue(os.path.exists(filename))

    def test_cli_without_example_prints_help(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(main([]), 1)

    def test_today_argument_is_a_date(self):
        output = io.StringIO()
        with redirect_stdout(output):
            create_sample_project(today=date(2025, 4, 14), output=None)
        self.assertIn("Status date: 2025-04-14", output.getvalue())


if __name__ == "__main__":
    unittest.main()
