"""
The foreign bridge: the one seam between a running program and anything
outside it.

A bridge takes (module, symbol, args) and promptly hands back a Future.
The future eventually holds a value (perhaps an OpaqueRef) or raises.
Nothing here knows what a term or a node is; values go in, values come out.
"""
import sys
from concurrent.futures import Future
from threading import Lock
from typing import NamedTuple, Optional, Sequence, Any
from .failure import ForeignError, RAISED
from .values import TRACED

class Bridge:
	def dispatch(self, module:str, symbol:str, args:Sequence) -> Future:
		raise NotImplementedError(type(self))

	def arity(self, module:str, symbol:str) -> Optional[int]:
		""" How many arguments, if the bridge can tell without calling. """
		return None

	def forget(self):
		""" The evaluation that held this bridge's opaque references is over. """
		pass

	def close(self):
		pass

	def __enter__(self): return self
	def __exit__(self, *exc): self.close()

def resolved(value:Any) -> Future:
	future = Future()
	future.set_result(value)
	return future

def failed(error:BaseException) -> Future:
	future = Future()
	future.set_exception(error)
	return future

###############################################################################

class TraceRecord(NamedTuple):
	module: str
	symbol: str
	args: tuple

	def __str__(self):
		return "CALL %s.%s(%s)"%(self.module, self.symbol, ", ".join(map(repr, self.args)))

class TraceBridge(Bridge):
	"""
	For running with no foreign linkage at all: every call is written down,
	and promptly comes back as the TRACED marker.
	"""
	def __init__(self, stream=None):
		self._stream = stream
		self._mutex = Lock()
		self.records : list[TraceRecord] = []

	def dispatch(self, module, symbol, args):
		record = TraceRecord(module, symbol, tuple(args))
		with self._mutex:
			self.records.append(record)
		if self._stream is not None:
			print(record, file=self._stream)
		return resolved(TRACED)

	@classmethod
	def to_console(cls): return cls(sys.stdout)

###############################################################################

class Linkage(Bridge):
	"""
	Routes each call by module name to whichever bridge was registered
	for the longest matching prefix. The prefix comes off before the
	call goes through, so `python.math` reaches the Python bridge as `math`.
	"""
	def __init__(self):
		self._routes : dict[str, Bridge] = {}

	def register(self, prefix:str, bridge:Bridge):
		self._routes[prefix] = bridge
		return self

	def _route(self, module:str):
		best = None
		for prefix in self._routes:
			if module == prefix or module.startswith(prefix+"."):
				if best is None or len(prefix) > len(best): best = prefix
		if best is None: return None, module
		return self._routes[best], module[len(best)+1:]

	def dispatch(self, module, symbol, args):
		bridge, rest = self._route(module)
		if bridge is None:
			return failed(ForeignError(RAISED, "Nothing is linked for module %r."%module))
		return bridge.dispatch(rest, symbol, args)

	def arity(self, module, symbol):
		bridge, rest = self._route(module)
		if bridge is None: return None
		return bridge.arity(rest, symbol)

	def forget(self):
		for bridge in self._routes.values(): bridge.forget()

	def close(self):
		for bridge in self._routes.values(): bridge.close()
