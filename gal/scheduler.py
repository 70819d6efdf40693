"""
This is the simple task-queue version of a worker pool.

The evaluator hands over one scheduling round at a time: every node in the
frontier is a task. The pool steps them on however many threads it has,
and the evaluator waits for the round to drain before taking stock.
Pure steps commute, so it does not matter which thread gets which node.
"""
from collections import deque
from threading import Lock, Thread
from typing import Optional, Iterable

POOL_SIZE = 3

class Task:
	def proceed(self):
		raise NotImplementedError(type(self))

class WorkerPool:
	"""
	Responsible for a task queue and a pool of worker threads.
	An exception escaping a task is carried back to whoever runs the round.
	"""

	def __init__(self, nr_workers:int=POOL_SIZE):
		assert nr_workers > 0
		self._mutex = Lock()
		self._tasks = deque()
		self._idle = deque()
		self._nr_pending = 0
		self._round_done = Lock()
		self._round_done.acquire()
		self._failure : Optional[BaseException] = None
		self._is_shutting_down = False
		for i in range(nr_workers):
			Thread(target=self._worker, args=[i], daemon=True, name="gal worker " + str(i)).start()

	def run_round(self, tasks:Iterable[Task]):
		""" Step every task, and come back when they have all finished. """
		tasks = list(tasks)
		if not tasks: return
		with self._mutex:
			assert not self._nr_pending
			self._nr_pending = len(tasks)
			self._tasks.extend(tasks)
			# Let's wake workers LIFO rather than round-robin:
			for _ in range(min(len(tasks), len(self._idle))):
				self._idle.pop().release()
		self._round_done.acquire()
		failure, self._failure = self._failure, None
		if failure is not None:
			raise failure

	def _worker(self, i):
		notify_me = Lock()
		notify_me.acquire()
		while True:
			self._mutex.acquire()
			while not self._tasks:
				if self._is_shutting_down:
					self._mutex.release()
					return
				self._idle.append(notify_me)
				self._mutex.release()
				notify_me.acquire()
				self._mutex.acquire()
			task = self._tasks.popleft()
			self._mutex.release()
			try: task.proceed()
			except BaseException as ex:
				with self._mutex:
					if self._failure is None: self._failure = ex
			with self._mutex:
				self._nr_pending -= 1
				if 0 == self._nr_pending:
					self._round_done.release()

	def close(self):
		""" Idle workers exit; busy ones exit after their current task. """
		with self._mutex:
			self._is_shutting_down = True
			while self._idle:
				self._idle.pop().release()

class SimpleTask(Task):
	def __init__(self, job, *args, **kwargs):
		assert callable(job)
		self._job = job
		self._args = args
		self._kwargs = kwargs
	def proceed(self):
		self._job(*self._args, **self._kwargs)
