"""
Foreign calls into ordinary Python modules.

Calls run on a thread pool, so a slow one never holds up the rest of the
program. Numbers, strings, and flags cross over as themselves.
Anything else Python hands back stays on this side, in the object table,
and the program only ever sees an OpaqueRef standing in for it.
The table lasts as long as the evaluation: when it ends, so do they.
"""
import builtins
from concurrent.futures import ThreadPoolExecutor, Future
from importlib import import_module
from inspect import signature
from threading import Lock
from traceback import TracebackException
from ..bridge import Bridge, failed
from ..failure import ForeignError, RAISED
from ..values import OpaqueRef, Function

PLAIN = (bool, int, float, str)

class PythonBridge(Bridge):
	def __init__(self, max_workers:int=4):
		self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="gal foreign")
		self._mutex = Lock()
		self._objects = {}
		self._modules = {}

	def _module(self, name:str):
		if not name: return builtins
		try: return self._modules[name]
		except KeyError: pass
		try: module = import_module(name)
		except ModuleNotFoundError:
			raise ForeignError(RAISED, "There is no Python module called %r."%name)
		except ImportError as ex:
			tbx = TracebackException.from_exception(ex)
			raise ForeignError(RAISED, "".join(tbx.format_exception_only()).strip())
		self._modules[name] = module
		return module

	def _function(self, module:str, symbol:str):
		fn = getattr(self._module(module), symbol, None)
		if not callable(fn):
			raise ForeignError(RAISED, "%s.%s is not a Python callable."%(module or "builtins", symbol))
		return fn

	def arity(self, module, symbol):
		try: fn = self._function(module, symbol)
		except ForeignError: return None
		try: params = signature(fn).parameters.values()
		except (TypeError, ValueError): return None
		if any(p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD) for p in params): return None
		return sum(1 for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty)

	def dispatch(self, module, symbol, args) -> Future:
		try:
			fn = self._function(module, symbol)
			args = [self._outbound(a) for a in args]
		except ForeignError as ex:
			return failed(ex)
		tag = module or "builtins"
		return self._executor.submit(lambda: self._inbound(fn(*args), tag))

	def _outbound(self, value):
		if isinstance(value, PLAIN): return value
		if isinstance(value, OpaqueRef):
			with self._mutex:
				try: return self._objects[value.token]
				except KeyError: pass
			raise ForeignError(RAISED, "%r does not belong to the Python bridge."%(value,))
		if isinstance(value, Function):
			raise ForeignError(RAISED, "Functions cannot be passed to Python, and %r is one."%(value,))
		raise ForeignError(RAISED, "Python cannot take %r."%(value,))

	def _inbound(self, value, tag:str):
		if isinstance(value, PLAIN): return value
		token = id(value)
		with self._mutex:
			self._objects[token] = value
		return OpaqueRef(token, tag)

	def forget(self):
		with self._mutex: self._objects.clear()

	def close(self):
		self._executor.shutdown(wait=False, cancel_futures=True)
		self.forget()
