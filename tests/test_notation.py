import unittest

from gal.calculus import Var, Hole, Apply, Literal, Lambda
from gal.lexicon import tokenize
from gal.front_end import Parser
from gal.notation import (
	NotationTable, NotationRule, Fragment, LEFT, RIGHT, NONE,
	ConflictingNotation, ArityMismatch, MalformedNotation, UnknownSymbol, NonAssociative,
)
from gal.preamble import standard_table
from gal.primitive import PRIMITIVES

def _declare(table:NotationTable, text:str):
	""" Run notation declarations through the parser, which registers them. """
	parser = Parser(table, PRIMITIVES)
	found = parser.declarations(tokenize(text), on_error=_raise)
	assert not found, found

def _raise(ex): raise ex

def _parse(table, text):
	return Parser(table).parse(tokenize(text))

def add(a, b): return Apply(Hole("add"), [a, b])

a, b, c = Var("a"), Var("b"), Var("c")

class AssociativityTests(unittest.TestCase):
	def test_left_nests_to_the_left(self):
		table = NotationTable()
		_declare(table, 'notation "$x + $y" precedence 10 left := add(x, y)')
		self.assertEqual(add(add(a, b), c), _parse(table, "a + b + c"))

	def test_right_nests_to_the_right(self):
		table = NotationTable()
		_declare(table, 'notation "$x + $y" precedence 10 right := add(x, y)')
		self.assertEqual(add(a, add(b, c)), _parse(table, "a + b + c"))

	def test_bare_associativity_word(self):
		table = NotationTable()
		_declare(table, 'notation "$x ^ $y" with x, y precedence 30 right := mul(x, y)')
		mul = lambda p, q: Apply(Hole("mul"), [p, q])
		self.assertEqual(mul(a, mul(b, c)), _parse(table, "a ^ b ^ c"))

	def test_none_refuses_to_chain(self):
		table = NotationTable()
		_declare(table, 'notation "$x < $y" precedence 4 none := lt(x, y)')
		self.assertEqual(Apply(Hole("lt"), [a, b]), _parse(table, "a < b"))
		with self.assertRaises(NonAssociative):
			_parse(table, "a < b < c")

class PrecedenceTests(unittest.TestCase):
	def setUp(self):
		self.table = standard_table()

	def test_tighter_binds_first(self):
		expect = add(a, Apply(Hole("mul"), [b, c]))
		self.assertEqual(expect, _parse(self.table, "a + b * c"))

	def test_parentheses(self):
		expect = Apply(Hole("mul"), [add(a, b), c])
		self.assertEqual(expect, _parse(self.table, "(a + b) * c"))

	def test_prefix_and_infix_share_a_symbol(self):
		expect = Apply(Hole("sub"), [Apply(Hole("neg"), [a]), b])
		self.assertEqual(expect, _parse(self.table, "- a - b"))

	def test_calls_bind_tightest(self):
		expect = add(Apply(Var("f"), [a]), Apply(Apply(Var("g"), [b]), [c]))
		self.assertEqual(expect, _parse(self.table, "f(a) + g(b)(c)"))

	def test_mixfix(self):
		term = _parse(self.table, "if a then b else c + 1")
		self.assertIsInstance(term, Apply)
		choose = term.callee
		self.assertEqual(Hole("choose"), choose.callee)
		test, yes, no = choose.args
		self.assertEqual(a, test)
		self.assertEqual(Lambda([], b), yes)
		self.assertEqual(Lambda([], add(c, Literal(1))), no)

	def test_template_substitution_avoids_capture(self):
		table = NotationTable()
		_declare(table, 'notation "twice $f at $x" precedence 5 := (fun(y) { f(f(y)) })(x)')
		term = _parse(table, "twice y at z")
		lam = term.callee
		self.assertNotEqual("y", lam.params[0])
		self.assertEqual(Apply(Var("y"), [Apply(Var("y"), [Var(lam.params[0])])]), lam.body)

	def test_the_preamble_is_not_shared(self):
		mine = standard_table()
		_declare(mine, 'notation "$x <> $y" precedence 4 none := ne(x, y)')
		self.assertEqual(len(mine), len(self.table) + 1)

class RegistryTests(unittest.TestCase):
	def rule(self, assoc, prec=10, template=None, referenced=("x", "y")):
		fragments = [Fragment("x", True), Fragment("+", False), Fragment("y", True)]
		return NotationRule(fragments, prec, assoc, template or add(Var("x"), Var("y")), referenced=referenced)

	def test_opposite_associativity_conflicts(self):
		table = NotationTable()
		table.register(self.rule(LEFT))
		with self.assertRaises(ConflictingNotation):
			table.register(self.rule(RIGHT))

	def test_same_rule_replaces(self):
		table = NotationTable()
		table.register(self.rule(LEFT))
		table.register(self.rule(LEFT, template=Apply(Hole("plus"), [Var("x"), Var("y")])))
		self.assertEqual(1, len(table))
		self.assertEqual(Apply(Hole("plus"), [a, b]), _parse(table, "a + b"))

	def test_different_precedence_coexists(self):
		table = NotationTable()
		table.register(self.rule(LEFT, 10))
		table.register(self.rule(NONE, 5))
		self.assertEqual(2, len(table))

	def test_template_mentions_missing_placeholder(self):
		with self.assertRaises(ArityMismatch):
			self.rule(LEFT, referenced=("x", "z"))

	def test_declared_arity_mismatch(self):
		with self.assertRaises(ArityMismatch):
			_declare(NotationTable(), 'notation "$x + $y" with x, z := add(x, z)')

	def test_malformed(self):
		for text in [
			'notation "$x $y" := add(x, y)',
			'notation "$x" := x',
			'notation "$x + $y" associativity sideways := add(x, y)',
		]:
			with self.subTest(text):
				with self.assertRaises(MalformedNotation):
					_declare(NotationTable(), text)

	def test_frozen_table_refuses(self):
		table = NotationTable()
		table.freeze()
		with self.assertRaises(RuntimeError):
			table.register(self.rule(LEFT))

	def test_unknown_symbol(self):
		with self.assertRaises(UnknownSymbol):
			_parse(standard_table(), "a @@ b")

class TemplateNameTests(unittest.TestCase):
	def test_local_names_do_not_capture_the_template(self):
		term = _parse(standard_table(), "fun(add) { a + add }")
		self.assertEqual(Lambda(["add"], add(a, Var("add"))), term)

	def test_typo_in_template_is_caught_at_declaration(self):
		with self.assertRaises(ArityMismatch):
			_declare(NotationTable(), 'notation "$x + $y" := add(x, z)')

	def test_template_may_use_earlier_declarations(self):
		table = NotationTable()
		found = Parser(table, PRIMITIVES).declarations(tokenize('combine(p, q) { p }\nnotation "$x <+> $y" := combine(x, y)'), _raise)
		self.assertEqual(["combine"], [d.name for d in found])
		self.assertEqual(Apply(Hole("combine"), [a, b]), _parse(table, "a <+> b"))

	def test_but_not_later_ones(self):
		with self.assertRaises(ArityMismatch):
			Parser(NotationTable(), PRIMITIVES).declarations(tokenize('notation "$x <+> $y" := combine(x, y)\ncombine(p, q) { p }'), _raise)

if __name__ == '__main__':
	unittest.main()
