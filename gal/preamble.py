"""
The standard notations live in preamble.gal, right next to this file.
It gets parsed once, the first time anyone asks for it.
"""
from pathlib import Path
from . import diagnostics, front_end
from .notation import NotationTable
from .primitive import PRIMITIVES

PREAMBLE_PATH = Path(__file__).parent/"preamble.gal"

_standard = None

def _init() -> NotationTable:
	report = diagnostics.Report()
	program = front_end.parse_file(PREAMBLE_PATH, report, predefined=PRIMITIVES)
	report.assert_no_issues("The preamble is broken.")
	assert not program.declarations, "The preamble only declares notation."
	program.table.freeze()
	return program.table

def standard_table() -> NotationTable:
	""" A fresh, unfrozen table holding the preamble's rules. """
	global _standard
	if _standard is None: _standard = _init()
	return _standard.copy()
