import unittest
from unittest import mock

from gal.environment import Environment, Slot, UNRESOLVED, PENDING, PENDING_FOREIGN, RESOLVED

def _node(reduced=False, foreign=False):
	node = mock.Mock()
	node.is_reduced.return_value = reduced
	node.awaiting_foreign.return_value = foreign
	return node

class SlotTests(unittest.TestCase):
	def test_state_follows_the_node(self):
		for node, state in [
			(None, UNRESOLVED),
			(_node(), PENDING),
			(_node(foreign=True), PENDING_FOREIGN),
			(_node(reduced=True), RESOLVED),
		]:
			with self.subTest(state):
				slot = Slot("x")
				if node is not None: slot.bind(node)
				self.assertEqual(state, slot.state)

	def test_write_once(self):
		slot = Slot("x")
		slot.bind(_node())
		with self.assertRaises(RuntimeError):
			slot.bind(_node())

	def test_waiters_move_to_the_node(self):
		slot = Slot("x")
		callback = mock.Mock()
		slot.subscribe(callback)
		node = _node()
		slot.bind(node)
		node.subscribe.assert_called_once_with(callback)
		later = mock.Mock()
		slot.subscribe(later)
		node.subscribe.assert_called_with(later)

class EnvironmentTests(unittest.TestCase):
	def setUp(self):
		self.primitives = Environment()
		self.primitives.bind("add", _node(reduced=True))
		self.root = Environment(self.primitives, takes_holes=True)
		self.inner = Environment(Environment(self.root))

	def test_lexical_lookup(self):
		self.root.bind("x", _node())
		self.assertIs(self.root.lookup("x"), self.inner.lookup("x"))
		self.assertIs(self.primitives.lookup("add"), self.inner.lookup("add"))
		self.assertIsNone(self.inner.lookup("y"))

	def test_shadowing(self):
		self.root.bind("add", _node())
		self.assertIsNot(self.primitives.lookup("add"), self.inner.lookup("add"))

	def test_unknown_names_wait_at_the_root(self):
		slot = self.inner.find("later")
		self.assertEqual(UNRESOLVED, slot.state)
		self.assertIs(slot, self.root.lookup("later"))
		self.assertIsNone(self.primitives.lookup("later"))
		self.root.bind("later", _node(reduced=True))
		self.assertEqual(RESOLVED, slot.state)

	def test_global_lookup_passes_over_locals(self):
		self.inner.bind("add", _node())
		self.assertIs(self.primitives.lookup("add"), self.inner.find_global("add"))
		slot = self.inner.find_global("later")
		self.assertIs(slot, self.root.lookup("later"))

	def test_without_a_hole_scope_the_outermost_takes_them(self):
		top = Environment()
		slot = Environment(top).find("z")
		self.assertIs(slot, top.lookup("z"))

if __name__ == '__main__':
	unittest.main()
