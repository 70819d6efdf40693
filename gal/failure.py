"""
Things that go wrong while a program reduces.

These are exception classes because that is the natural shape for
"a reason plus some particulars" in Python, but the evaluator never
raises them. A Failure sits in a node exactly the way a value would,
and whatever depends on that node becomes the same Failure.

UnresolvedBinding is different: it means the whole evaluation is stuck,
so it really is raised.
"""
from typing import Iterable

class Failure(Exception):
	""" Base class of failures-as-data. """
	def describe(self) -> str:
		return "%s: %s"%(type(self).__name__, self.args[0] if self.args else "")

class ReductionError(Failure):
	pass

class ArityMismatch(ReductionError):
	def __init__(self, callee:str, need:int, got:int):
		plural = '' if need == 1 else 's'
		super().__init__("%s takes %d argument%s, but got %d."%(callee, need, plural, got))
		self.callee, self.need, self.got = callee, need, got

class NotCallable(ReductionError):
	def __init__(self, what:str):
		super().__init__("Dunno how to call %s as a function."%what)
		self.what = what

class PrimitiveFailed(ReductionError):
	""" A primitive operation went pear-shaped, e.g. division by zero. """

TIMEOUT = "timeout"
CANCELLED = "cancelled"
RAISED = "raised"

class ForeignError(Failure):
	def __init__(self, kind:str, reason:str):
		assert kind in (TIMEOUT, CANCELLED, RAISED), kind
		super().__init__(reason)
		self.kind = kind
		self.reason = reason
	def describe(self) -> str:
		return "ForeignError(%s): %s"%(self.kind, self.reason)

class UnresolvedBinding(Exception):
	"""
	Nothing can make progress, and some things still wait on names.
	`names` are the identifiers waited upon; `unready` are the
	top-level declarations which never finished.
	"""
	def __init__(self, names:Iterable[str], unready:Iterable[str]=()):
		self.names = tuple(sorted(set(names)))
		self.unready = tuple(unready)
		super().__init__("Unresolved: "+", ".join(self.names))
