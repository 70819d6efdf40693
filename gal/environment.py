"""
The binding environment: name-indexed slots, chained by lexical scope.

Each slot is written at most once. Until then, whoever wants the name
leaves a callback with the slot. Once written, the slot refers to the node
that produces the name's value, and the slot's apparent state follows
that node: pending while it reduces, pending-foreign while it waits on
the bridge, resolved when it is done.

Closures keep their natal environment alive; nothing else does,
so an environment goes away with the last closure or node that needs it.
"""
from threading import Lock
from typing import Optional, Any

UNRESOLVED = "unresolved"
PENDING = "pending"
PENDING_FOREIGN = "pending-foreign"
RESOLVED = "resolved"

class Slot:
	def __init__(self, name:str):
		self.name = name
		self._mutex = Lock()
		self._node = None
		self._waiting = []

	@property
	def state(self) -> str:
		node = self._node
		if node is None: return UNRESOLVED
		if node.is_reduced(): return RESOLVED
		if node.awaiting_foreign(): return PENDING_FOREIGN
		return PENDING

	@property
	def node(self): return self._node

	def bind(self, node):
		with self._mutex:
			if self._node is not None:
				raise RuntimeError("Slot %r is written twice."%self.name)
			self._node = node
			waiting, self._waiting = self._waiting, None
		for callback in waiting: node.subscribe(callback)

	def subscribe(self, callback):
		""" The callback gets the producing node, once that node is reduced. """
		with self._mutex:
			if self._node is None:
				self._waiting.append(callback)
				return
		self._node.subscribe(callback)

class Environment:
	def __init__(self, parent:Optional["Environment"]=None, *, takes_holes=False):
		self.parent = parent
		self.takes_holes = takes_holes
		self._slots = {}
		self._mutex = Lock()

	def bind(self, name:str, node):
		self.slot(name).bind(node)

	def slot(self, name:str) -> Slot:
		""" This environment's own slot for the name, made on demand. """
		with self._mutex:
			try: return self._slots[name]
			except KeyError:
				slot = self._slots[name] = Slot(name)
				return slot

	def lookup(self, name:str) -> Optional[Slot]:
		env = self
		while env is not None:
			slot = env._slots.get(name)
			if slot is not None: return slot
			env = env.parent
		return None

	def hole_scope(self) -> "Environment":
		""" Where a name nobody has bound yet waits to be bound. """
		env = self
		while not env.takes_holes:
			if env.parent is None: return env
			env = env.parent
		return env

	def find(self, name:str) -> Slot:
		""" The slot a reference to this name should wait on. """
		slot = self.lookup(name)
		if slot is None: slot = self.hole_scope().slot(name)
		return slot

	def find_global(self, name:str) -> Slot:
		""" Like find, but passing over every local binding on the way. """
		return self.hole_scope().find(name)

###############################################################################

class Unrestricted:
	"""
	Resource discipline is an extension point: every read of a binding
	passes through `read`, which may return the value or a Failure.
	This one imposes nothing.
	"""
	def read(self, name:str, value:Any) -> Any:
		return value
