from pathlib import Path
import io
import unittest
from unittest import mock

from gal import diagnostics, front_end, cmdline
from gal.adapters.python_adapter import PythonBridge
from gal.bridge import Linkage, TraceBridge
from gal.evaluator import Evaluation
from gal.primitive import PRIMITIVES
from gal.preamble import standard_table

base_folder = Path(__file__).parent.parent
examples = base_folder/"examples"

def _good(which) -> front_end.Program:
	report = diagnostics.Report(verbose=False)
	program = front_end.parse_file(examples/(which+".gal"), report, table=standard_table(), predefined=PRIMITIVES)
	report.assert_no_issues("Ostensibly-good example failed to parse.")
	return program

class ExampleSmokeTests(unittest.TestCase):
	""" Run all the examples; Test for no smoke. """

	def test_pure_examples(self):
		for name, expect in [
			("church", True),
			("forward", 2),
			("conditional", True),
		]:
			with self.subTest(name):
				outcome = Evaluation(_good(name), TraceBridge(), diagnostics.Report()).run()
				self.assertIsNone(outcome.failure)
				self.assertEqual(expect, outcome.value)

	def test_python_example(self):
		with Linkage().register("python", PythonBridge()) as bridge:
			outcome = Evaluation(_good("python_math"), bridge, diagnostics.Report()).run()
		self.assertEqual(5.0, outcome.value)

	def test_nested_functions_with_real_print(self):
		with Linkage().register("python", PythonBridge()) as bridge:
			with mock.patch("sys.stdout", new_callable=io.StringIO) as out:
				Evaluation(_good("nested_functions"), bridge, diagnostics.Report()).run()
		self.assertEqual("hello world\n", out.getvalue())

class CommandLineTests(unittest.TestCase):
	def run_command(self, *argv):
		args = cmdline.parser.parse_args([*argv])
		with mock.patch("sys.stdout", new_callable=io.StringIO) as out:
			with mock.patch("sys.stderr", new_callable=io.StringIO):
				status = cmdline.run(args)
		return status, out.getvalue()

	def test_runs_a_program(self):
		status, text = self.run_command(str(examples/"church.gal"))
		self.assertFalse(status)
		self.assertEqual("true\n", text)

	def test_no_link(self):
		status, text = self.run_command("--no-link", str(examples/"nested_functions.gal"))
		self.assertFalse(status)
		self.assertEqual(["CALL python.print('hello world')", "<traced>"], text.splitlines())

	def test_parse_only(self):
		status, text = self.run_command("-p", str(examples/"forward.gal"))
		self.assertFalse(status)
		self.assertIn("g = fun(y) { ?add(y, 1) }", text)

	def test_workers(self):
		status, text = self.run_command("--workers", "3", str(examples/"conditional.gal"))
		self.assertEqual("true\n", text)

	def test_no_preamble(self):
		status, _ = self.run_command("--no-preamble", str(examples/"forward.gal"))
		self.assertEqual(1, status)

	def test_missing_file(self):
		status, _ = self.run_command(str(examples/"no_such_example.gal"))
		self.assertEqual(1, status)

if __name__ == '__main__':
	unittest.main()
