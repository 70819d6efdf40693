"""
Build the primitive namespace.

These are the pure operations every program gets for free.
They work on plain Python values and never go near a foreign bridge.
The preamble puts the familiar operator syntax on top of them.
"""
import operator
from .values import Primitive

def _flag(x, what):
	if not isinstance(x, bool): raise TypeError("%s wants true or false, not %r"%(what, x))
	return x

def _choose(test, when_true, when_false):
	return when_true if _flag(test, "choose") else when_false

def _not(x): return not _flag(x, "not")
def _and(a, b): return _flag(a, "and") and _flag(b, "and")
def _or(a, b): return _flag(a, "or") or _flag(b, "or")

def _concat(a, b):
	if not (isinstance(a, str) and isinstance(b, str)):
		raise TypeError("concat wants two strings")
	return a + b

def _div(a, b):
	# Integer operands divide exactly when they can.
	if isinstance(a, int) and isinstance(b, int) and b and not a % b: return a // b
	return operator.truediv(a, b)

PRIMITIVES = {}

def _define(name, fn, nr_params):
	PRIMITIVES[name] = Primitive(name, fn, nr_params)

for _name, _fn in [
	("add", operator.add), ("sub", operator.sub), ("mul", operator.mul),
	("div", _div), ("mod", operator.mod),
	("eq", operator.eq), ("ne", operator.ne),
	("lt", operator.lt), ("le", operator.le), ("gt", operator.gt), ("ge", operator.ge),
	("and", _and), ("or", _or), ("concat", _concat),
]:
	_define(_name, _fn, 2)

_define("neg", operator.neg, 1)
_define("not", _not, 1)
_define("choose", _choose, 3)
