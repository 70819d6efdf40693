"""
This is an interpreter for the Gal programming language.

{0}

For example:

    gal program.gal

will run program.gal if possible, or else try to explain why not.

    gal --no-link program.gal

will run it without calling any foreign code, and show each call it would have made.

    gal -h

will explain all the arguments.
"""
import sys, argparse
from pathlib import Path

parser = argparse.ArgumentParser(
	prog="gal",
	description="Interpreter for the Gal programming language.",
)
parser.add_argument("program", help="try examples/church.gal for example.")
parser.add_argument('-v', "--verbose", action="count", help="Say more about what is going on. Twice shows every function call.")
parser.add_argument('-p', "--parse", action="store_true", help="Print the program as core terms, and stop there.")
parser.add_argument("--no-link", action="store_true", help="Trace foreign calls instead of making them.")
parser.add_argument("--no-preamble", action="store_true", help="Start with no notation at all, not even + and -.")
parser.add_argument("--timeout", type=float, default=None, help="Seconds any one foreign call may take.")
parser.add_argument("--workers", type=int, default=0, help="Threads to step the program on. Zero means just this one.")

def _bridge(args):
	from .bridge import Linkage, TraceBridge
	if args.no_link: return TraceBridge.to_console()
	from .adapters.python_adapter import PythonBridge
	return Linkage().register("python", PythonBridge())

def run(args):
	from .diagnostics import Report, TooManyIssues
	from .front_end import parse_file
	from .notation import NotationTable
	from .primitive import PRIMITIVES
	from .values import render
	report = Report(verbose=args.verbose)
	try:
		if args.no_preamble: table = NotationTable()
		else:
			from .preamble import standard_table
			table = standard_table()
		program = parse_file(Path.cwd() / args.program, report, table=table, predefined=PRIMITIVES)
		if program is None:
			report.complain_to_console()
			return 1
		if args.parse:
			print(program)
			return
		from .evaluator import run_program
		with _bridge(args) as bridge:
			outcome = run_program(program, bridge, report, nr_workers=args.workers, timeout=args.timeout)
		if report.sick():
			report.complain_to_console()
			return 1
	except TooManyIssues:
		report.complain_to_console()
		print(" *"*35, file=sys.stderr)
		print("Giving up after a few issues. One crisis at a time, eh?", file=sys.stderr)
		return 1
	print(render(outcome.value))

def main():
	if len(sys.argv) > 1:
		exit(run(parser.parse_args()))
	else:
		print(__doc__.strip().format(parser.format_usage()))
