"""
Runs a parsed program: elaborate every declaration into the term graph,
then step whatever is ready, round after round, until nothing is.

Everything a node might want from its surroundings comes through the
Evaluation object: the ready queue, the notice queue, the foreign bridge,
and the table of dispatches still in flight. One Evaluation per program run.
"""
import queue, time
from collections import deque
from threading import Event, Lock
from typing import NamedTuple, Any, Optional
from .bridge import Bridge
from .calculus import Lambda, DISCARD
from .diagnostics import Report
from .environment import Environment, Unrestricted
from .failure import Failure, ForeignError, UnresolvedBinding, TIMEOUT, CANCELLED, RAISED
from .front_end import Program
from .graph import Builder, ValueNode, ForeignCallNode
from .primitive import PRIMITIVES
from .scheduler import WorkerPool
from .values import Closure

class Outcome(NamedTuple):
	value: Any
	results: dict
	failure: Optional[Failure]
	unready: tuple

class Evaluation:
	def __init__(self, program:Program, bridge:Bridge, report:Report, *, nr_workers:int=0, timeout:float=None, interleaving=None, discipline=None):
		program.table.freeze()
		self.program = program
		self.bridge = bridge
		self.report = report
		self.discipline = discipline or Unrestricted()
		self._nr_workers = nr_workers
		self._timeout = timeout
		self._interleaving = interleaving
		self._builder = Builder(self)
		self._mutex = Lock()
		self._ready = deque()
		self._notices = deque()
		self._channel = queue.Queue()
		self._outstanding = {}
		self._parked = set()
		self._failure_order = {}
		self._cancelled = Event()
		self._roots = []
		self.globals = None
		self.nr_steps = 0
		self.nr_dispatches = 0

	# The graph calls these:

	def enqueue(self, node): self._ready.append(node)
	def notify(self, callback, node): self._notices.append((callback, node))

	def settled(self, node):
		if isinstance(node.value, Failure):
			with self._mutex:
				if id(node.value) in self._failure_order: return
				self._failure_order[id(node.value)] = len(self._failure_order)
			self.report.info("-- failure:", node.value.describe())

	def park_lookup(self, node):
		with self._mutex: self._parked.add(node)

	def unpark_lookup(self, node):
		with self._mutex: self._parked.discard(node)

	def enter(self, closure:Closure, args):
		""" The body of a closure, applied to these arguments, as a node. """
		def build():
			env = Environment(closure.env)
			for name, value in zip(closure.lam.params, args):
				if name != DISCARD: env.bind(name, ValueNode(self, value))
			return self._builder.visit(closure.lam.body, env)
		if args: return build()
		return closure.shared_body(build)

	def dispatch(self, node:ForeignCallNode, args:tuple):
		self.report.dispatching(node.module, node.symbol, args)
		deadline = None if self._timeout is None else time.monotonic() + self._timeout
		future = self.bridge.dispatch(node.module, node.symbol, args)
		with self._mutex:
			self.nr_dispatches += 1
			self._outstanding[node] = (future, deadline)
		future.add_done_callback(lambda f: self._channel.put((node, f)))

	# The runner calls these:

	def cancel(self):
		""" Safe from any thread. Outstanding foreign calls become CANCELLED failures. """
		self._cancelled.set()
		self._channel.put(None)

	def run(self) -> Outcome:
		""" Opaque references the bridge handed out are good only until this returns. """
		try: return self._run()
		finally: self.bridge.forget()

	def _run(self) -> Outcome:
		self._elaborate()
		pool = WorkerPool(self._nr_workers) if self._nr_workers > 0 else None
		try: self._loop(pool)
		finally:
			if pool is not None: pool.close()
		self.report.info("-- %d steps, %d foreign calls"%(self.nr_steps, self.nr_dispatches))
		if self._cancelled.is_set():
			self._abandon()
		else:
			unready = self._unready()
			with self._mutex: parked = list(self._parked)
			if parked or unready:
				missing = [node.name for node in parked if node.slot.node is None]
				raise UnresolvedBinding(missing or [node.name for node in parked] or unready, unready)
		return self._outcome()

	def _elaborate(self):
		primitives = Environment()
		for name, fn in PRIMITIVES.items(): primitives.bind(name, ValueNode(self, fn))
		self.globals = Environment(primitives, takes_holes=True)
		# Declared names shadow primitives even where the reference comes first.
		for decl in self.program.declarations:
			if decl.name is not None: self.globals.slot(decl.name)
		for decl in self.program.declarations:
			if isinstance(decl.term, Lambda):
				node = self._builder.visit_Lambda(decl.term, self.globals, decl.name or "<lambda>")
			else:
				node = self._builder.visit(decl.term, self.globals)
			if decl.name is not None: self.globals.bind(decl.name, node)
			self._roots.append((decl, node))

	def _loop(self, pool:Optional[WorkerPool]):
		while not self._cancelled.is_set():
			self._collect(block=False)
			self._expire()
			self._deliver()
			if self._cancelled.is_set(): return
			frontier = self._frontier()
			if frontier:
				self.nr_steps += len(frontier)
				if pool is None:
					for node in frontier: node.proceed()
				else:
					pool.run_round(frontier)
			elif self._outstanding:
				self._collect(block=True)
			else:
				return

	def _frontier(self) -> list:
		frontier = []
		while self._ready: frontier.append(self._ready.popleft())
		if self._interleaving is not None: self._interleaving.shuffle(frontier)
		return frontier

	def _deliver(self):
		while self._notices:
			callback, node = self._notices.popleft()
			callback(node)

	def _collect(self, block:bool):
		if block:
			try: item = self._channel.get(timeout=self._time_to_deadline())
			except queue.Empty: return
			if item is not None: self._receive(*item)
		while True:
			try: item = self._channel.get_nowait()
			except queue.Empty: return
			if item is not None: self._receive(*item)

	def _time_to_deadline(self) -> Optional[float]:
		with self._mutex:
			deadlines = [d for _, d in self._outstanding.values() if d is not None]
		if not deadlines: return None
		return max(0.0, min(deadlines) - time.monotonic())

	def _receive(self, node:ForeignCallNode, future):
		with self._mutex: entry = self._outstanding.pop(node, None)
		if entry is None:
			self.report.late_result(node.module, node.symbol)
			return
		if future.cancelled():
			value = ForeignError(CANCELLED, "%s was cancelled."%node.describe())
		else:
			ex = future.exception()
			if ex is None: value = future.result()
			elif isinstance(ex, ForeignError): value = ex
			else: value = ForeignError(RAISED, "%s raised %s: %s"%(node.describe(), type(ex).__name__, ex))
		self.report.info("-- result %s = %r"%(node.describe(), value))
		node.settle(value)

	def _expire(self):
		if self._timeout is None: return
		now = time.monotonic()
		with self._mutex:
			overdue = [node for node, (_, deadline) in self._outstanding.items() if deadline <= now]
			entries = [self._outstanding.pop(node) for node in overdue]
		for node, (future, _) in zip(overdue, entries):
			future.cancel()
			node.settle(ForeignError(TIMEOUT, "%s took longer than %g seconds."%(node.describe(), self._timeout)))

	def _abandon(self):
		with self._mutex:
			abandoned = list(self._outstanding.items())
			self._outstanding.clear()
		for node, (future, _) in abandoned:
			future.cancel()
			node.settle(ForeignError(CANCELLED, "%s was cancelled."%node.describe()))
		self._deliver()

	def _unready(self) -> tuple:
		return tuple(
			decl.name or "<entry %d>"%i
			for i, (decl, node) in enumerate(self._roots)
			if not node.is_reduced()
		)

	def _outcome(self) -> Outcome:
		results = {decl.name: node.value for decl, node in self._roots if decl.name is not None and node.is_reduced()}
		entries = [node for decl, node in self._roots if decl.name is None]
		main = entries[-1] if entries else (self._roots[-1][1] if self._roots else None)
		value = main.value if main is not None and main.is_reduced() else None
		failed = [node.value for _, node in self._roots if node.failed()]
		failure = min(failed, key=lambda f: self._failure_order.get(id(f), len(self._failure_order)), default=None)
		if failure is None and main is not None and not main.is_reduced():
			failure = ForeignError(CANCELLED, "The evaluation was cancelled.")
		return Outcome(value, results, failure, self._unready())

###############################################################################

def run_program(program:Program, bridge:Bridge, report:Report, **kwargs) -> Optional[Outcome]:
	"""
	Evaluate, and tell the report about anything that went wrong.
	A stuck program comes back as None.
	"""
	evaluation = Evaluation(program, bridge, report, **kwargs)
	try: outcome = evaluation.run()
	except UnresolvedBinding as ex:
		report.unresolved(ex)
		return None
	if outcome.failure is not None:
		report.evaluation_failed(outcome.failure, outcome.unready)
	return outcome
