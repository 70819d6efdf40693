"""
These functions just exist as a support scaffolding for various test cases,
mainly of the foreign-call scheme.
"""
import time
from threading import Lock

LOG = []
_log_mutex = Lock()

def identity(x):
	return x

def slow(x, seconds):
	time.sleep(seconds)
	return x

def explode(message):
	raise ValueError(message)

def make_box(x):
	# Comes back across the bridge as an opaque reference.
	return [x]

def unbox(box):
	return box[0]

def record(x):
	with _log_mutex:
		LOG.append(x)
	return x
