"""
The term graph: core terms elaborated into nodes, one node per subterm
instance, each with the four-state life cycle

	Unready -> Ready -> Stepping -> Reduced

A node waits on other nodes by leaving a callback with them. Callbacks
never run inside `settle`; they go through the evaluation's notice queue,
so a long chain of dependents never turns into a deep Python stack.

A node whose input fails becomes that same failure at once, without
ever being scheduled.
"""
from threading import Lock
from typing import Any
from boozetools.support.foundation import Visitor
from . import calculus
from .calculus import Lambda
from .environment import Environment, Slot
from .failure import Failure, ArityMismatch, NotCallable, PrimitiveFailed
from .scheduler import Task
from .values import Function, Closure, Primitive, ForeignFunction, render

UNREADY = "Unready"
READY = "Ready"
STEPPING = "Stepping"
REDUCED = "Reduced"

class Node(Task):
	def __init__(self, evaluation):
		self._evaluation = evaluation
		self._mutex = Lock()
		self.state = UNREADY
		self.value = None
		self._listeners = []

	def is_reduced(self) -> bool: return self.state is REDUCED
	def failed(self) -> bool: return self.state is REDUCED and isinstance(self.value, Failure)
	def awaiting_foreign(self) -> bool: return False

	def subscribe(self, callback):
		""" Arrange for callback(self) once this node is reduced. """
		with self._mutex:
			if self.state is not REDUCED:
				self._listeners.append(callback)
				return
		self._evaluation.notify(callback, self)

	def settle(self, value:Any) -> bool:
		""" Reduced at last. Settling a second time changes nothing. """
		with self._mutex:
			if self.state is REDUCED: return False
			self.state = REDUCED
			self.value = value
			listeners, self._listeners = self._listeners, None
		self._evaluation.settled(self)
		for callback in listeners:
			self._evaluation.notify(callback, self)
		return True

	def make_ready(self):
		with self._mutex:
			if self.state is not UNREADY: return
			self.state = READY
		self._evaluation.enqueue(self)

	def _claim(self) -> bool:
		with self._mutex:
			if self.state is not READY: return False
			self.state = STEPPING
			return True

	def _park(self):
		with self._mutex:
			if self.state is STEPPING: self.state = UNREADY

	def proceed(self):
		if self._claim(): self.step()

	def step(self):
		raise NotImplementedError(type(self))

class ValueNode(Node):
	""" Born reduced: literals, lambdas, primitives, arguments already in hand. """
	def __init__(self, evaluation, value):
		super().__init__(evaluation)
		self.state = REDUCED
		self.value = value
		self._listeners = None

class Forwarding(Node):
	""" A node whose value turns out to be some other node's value. """
	_target = None

	def _follow(self, target:Node):
		self._target = target
		self._park()
		target.subscribe(self._relay)

	def _relay(self, target:Node):
		self.settle(target.value)

	def awaiting_foreign(self) -> bool:
		target = self._target
		return target is not None and not self.is_reduced() and target.awaiting_foreign()

class Joining(Node):
	""" A node that needs all of some other nodes reduced before it can step. """
	def _join(self, inputs:list[Node]):
		self._inputs = inputs
		self._nr_waiting = len(inputs)
		if not inputs: self.make_ready()
		for node in inputs: node.subscribe(self._input_done)

	def _input_done(self, node:Node):
		if node.failed():
			self.settle(node.value)
			return
		with self._mutex:
			self._nr_waiting -= 1
			done = self._nr_waiting == 0
		if done: self.make_ready()

class LookupNode(Node):
	""" Var and Hole alike: ready once the binding's node is reduced. """
	def __init__(self, evaluation, name:str, slot:Slot):
		super().__init__(evaluation)
		self.name = name
		self._source = None
		self.slot = slot
		evaluation.park_lookup(self)
		self.slot.subscribe(self._found)

	def _found(self, source:Node):
		self._source = source
		self._evaluation.unpark_lookup(self)
		if source.failed(): self.settle(source.value)
		else: self.make_ready()

	def step(self):
		self.settle(self._evaluation.discipline.read(self.name, self._source.value))

class ApplyNode(Joining, Forwarding):
	def __init__(self, evaluation, callee:Node, args:list[Node]):
		super().__init__(evaluation)
		self._join([callee, *args])

	def step(self):
		callee, *args = [node.value for node in self._inputs]
		if not isinstance(callee, Function):
			self.settle(NotCallable(render(callee)))
			return
		need = callee.arity()
		if need is not None and need != len(args):
			self.settle(ArityMismatch(callee.name(), need, len(args)))
			return
		if isinstance(callee, Primitive):
			try: value = callee.fn(*args)
			except (ArithmeticError, TypeError, ValueError) as ex:
				value = PrimitiveFailed("%s: %s"%(callee.name(), ex))
			self.settle(value)
		elif isinstance(callee, Closure):
			self._evaluation.report.entering(callee.name(), args)
			self._label = callee.name()
			self._follow(self._evaluation.enter(callee, args))
		elif isinstance(callee, ForeignFunction):
			values = [ValueNode(self._evaluation, a) for a in args]
			self._follow(ForeignCallNode(self._evaluation, callee.module, callee.symbol, values))
		else:
			raise AssertionError(type(callee))

	def _relay(self, target:Node):
		if self.settle(target.value):
			self._evaluation.report.leaving(self._label, target.value)

class ForeignCallNode(Joining):
	def __init__(self, evaluation, module:str, symbol:str, args:list[Node]):
		super().__init__(evaluation)
		self.module = module
		self.symbol = symbol
		self._dispatched = False
		self._join(args)

	def step(self):
		values = tuple(node.value for node in self._inputs)
		self._dispatched = True
		self._park()
		self._evaluation.dispatch(self, values)

	def awaiting_foreign(self) -> bool:
		return self._dispatched and not self.is_reduced()

	def describe(self) -> str:
		return "%s.%s"%(self.module, self.symbol)

###############################################################################

class Builder(Visitor):
	"""
	Elaborates a term, within an environment, into nodes.
	Lambda bodies wait until application; everything else is built now,
	which is what lets independent branches start reducing right away.
	"""
	def __init__(self, evaluation):
		self._evaluation = evaluation

	def visit_Literal(self, t:calculus.Literal, env):
		return ValueNode(self._evaluation, t.value)

	def visit_Var(self, t:calculus.Var, env):
		return LookupNode(self._evaluation, t.name, env.find(t.name))

	def visit_Hole(self, t:calculus.Hole, env):
		return LookupNode(self._evaluation, t.name, env.find_global(t.name))

	def visit_Lambda(self, t:Lambda, env, label="<lambda>"):
		return ValueNode(self._evaluation, Closure(t, env, label))

	def visit_Apply(self, t:calculus.Apply, env):
		callee = self.visit(t.callee, env)
		return ApplyNode(self._evaluation, callee, [self.visit(a, env) for a in t.args])

	def visit_Let(self, t:calculus.Let, env):
		""" One environment for the whole block, with every slot made before any statement is built. """
		bindings, body = calculus.unfold_block(t)
		inner = Environment(env)
		for name in calculus.block_names(bindings): inner.slot(name)
		for name, bound in bindings:
			if isinstance(bound, Lambda): node = self.visit_Lambda(bound, inner, name)
			else: node = self.visit(bound, inner)
			if name != calculus.DISCARD: inner.bind(name, node)
		return self.visit(body, inner)

	def visit_ForeignCall(self, t:calculus.ForeignCall, env):
		args = [self.visit(a, env) for a in t.args]
		return ForeignCallNode(self._evaluation, t.module, t.symbol, args)

	def visit_ForeignDecl(self, t:calculus.ForeignDecl, env):
		arity = t.arity
		if arity is None: arity = self._evaluation.bridge.arity(t.module, t.symbol)
		return ValueNode(self._evaluation, ForeignFunction(t.module, t.symbol, arity))
