"""
Run-time values.

Numbers, strings, and booleans play themselves. Functions of the various
kinds need a bit of help, and so does anything a foreign runtime hands back.
"""
from threading import Lock
from typing import NamedTuple, Optional, Any
from . import calculus

class Function:
	""" A run-time object that can be applied to arguments. """
	def arity(self) -> Optional[int]: raise NotImplementedError(type(self))
	def name(self) -> str: raise NotImplementedError(type(self))

class Closure(Function):
	"""
	A lambda tied to its natal environment.

	Applying a nullary closure always means the same thing, so the first
	application's body node is kept and later applications share it.
	"""
	def __init__(self, lam:calculus.Lambda, env, label:str="<lambda>"):
		self.lam = lam
		self.env = env
		self.label = label
		self._mutex = Lock()
		self._memo = None

	def arity(self): return len(self.lam.params)
	def name(self): return self.label
	def __repr__(self): return "<closure %s/%d>"%(self.label, self.arity())

	def shared_body(self, build):
		""" For nullary closures: build the body node at most once. """
		with self._mutex:
			if self._memo is None:
				self._memo = build()
			return self._memo

class Primitive(Function):
	""" Pure Python function of strict arguments. Never crosses the bridge. """
	def __init__(self, label:str, fn:callable, nr_params:int):
		self.label = label
		self.fn = fn
		self._arity = nr_params
	def arity(self): return self._arity
	def name(self): return self.label
	def __repr__(self): return "<primitive %s>"%self.label

class ForeignFunction(Function):
	""" The value of a `use` declaration. Applying it makes a foreign call. """
	def __init__(self, module:str, symbol:str, nr_params:Optional[int]):
		self.module = module
		self.symbol = symbol
		self._arity = nr_params
	def arity(self): return self._arity
	def name(self): return self.module+"."+self.symbol
	def __repr__(self): return "<foreign %s>"%self.name()

class OpaqueRef(NamedTuple):
	"""
	Stands in for a value owned by some foreign runtime.
	The evaluator only ever passes these around; it never looks inside.
	"""
	token: int
	module: str
	def __repr__(self): return "<opaque %s#%d>"%(self.module, self.token)

class _Traced:
	""" What a no-link foreign call evaluates to. """
	def __repr__(self): return "<traced>"

TRACED = _Traced()

def render(value:Any) -> str:
	""" How a program result looks when shown to a person. """
	if isinstance(value, bool): return "true" if value else "false"
	if isinstance(value, str): return value
	return repr(value)
