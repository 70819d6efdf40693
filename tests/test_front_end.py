import unittest
from unittest import mock

from gal import front_end
from gal.calculus import Var, Hole, Lambda, Apply, Let, Literal, ForeignDecl
from gal.diagnostics import Report
from gal.lexicon import tokenize
from gal.primitive import PRIMITIVES
from gal.preamble import standard_table

class Silence(Report):
	def __init__(self):
		super().__init__(verbose=False, max_issues=30)
		self.complain_to_console = mock.Mock()

def _program(text):
	report = Silence()
	program = front_end.parse_text(text, "<test>", report, table=standard_table(), predefined=PRIMITIVES)
	return program, report

def _terms(text) -> dict:
	program, report = _program(text)
	report.assert_no_issues("Test is subverted.")
	return {d.name: d.term for d in program.declarations}

class StatementTests(unittest.TestCase):
	def test_definition_forms_agree(self):
		for text in ["fun f(x) { x }", "def f(x) { x }", "f(x) { x }", "f = fun(x) { x }"]:
			with self.subTest(text):
				self.assertEqual(Lambda(["x"], Var("x")), _terms(text)["f"])

	def test_block_becomes_nested_lets(self):
		term = _terms("f(x) { y = mul(x, 2); z = add(y, 1); return z }")["f"]
		expect = Lambda(["x"], Let("y", Apply(Var("mul"), [Var("x"), Literal(2)]), Let("z", Apply(Var("add"), [Var("y"), Literal(1)]), Var("z"))))
		self.assertEqual(expect, term)

	def test_statement_in_the_middle_is_kept(self):
		term = _terms("f(x) { g(x) \n x }")["f"]
		self.assertIsInstance(term.body, Let)
		self.assertEqual(front_end.DISCARD, term.body.name)

	def test_use(self):
		terms = _terms("use python.math.sqrt / 1\nuse python.print as say")
		self.assertEqual(ForeignDecl("python.math", "sqrt", 1), terms["sqrt"])
		self.assertEqual(ForeignDecl("python", "print", None), terms["say"])

	def test_literals(self):
		program, report = _program('"a\\tb"; 1.5; 7; true')
		report.assert_no_issues()
		self.assertEqual([Literal("a\tb"), Literal(1.5), Literal(7), Literal(True)], [d.term for d in program.entries()])

	def test_comments(self):
		terms = _terms("// nothing here\n x = /* nor here */ 1")
		self.assertEqual(Literal(1), terms["x"])

class ResolutionTests(unittest.TestCase):
	def test_forward_reference_is_a_hole(self):
		terms = _terms("f(x) { g(x) }\ng(y) { y }")
		self.assertEqual(Lambda(["x"], Apply(Hole("g"), [Var("x")])), terms["f"])
		self.assertEqual(Lambda(["y"], Var("y")), terms["g"])

	def test_backward_reference_is_not(self):
		terms = _terms("g(y) { y }\nf(x) { g(x) }")
		self.assertEqual(Lambda(["x"], Apply(Var("g"), [Var("x")])), terms["f"])

	def test_recursion_sees_itself(self):
		terms = _terms("f(x) { f(x) }")
		self.assertEqual(Lambda(["x"], Apply(Var("f"), [Var("x")])), terms["f"])

	def test_local_functions_recurse(self):
		term = _terms("f(x) { g = fun(n) { g(n) }; g(x) }")["f"]
		self.assertEqual(Apply(Var("g"), [Var("n")]), term.body.bound.body)

	def test_later_statement_of_the_block_is_in_scope(self):
		term = _terms("f() { a = add(b, 1); b = 2; a }")["f"]
		self.assertEqual(Apply(Var("add"), [Var("b"), Literal(1)]), term.body.bound)

	def test_block_names_are_bound_once(self):
		for text in ["f() { x = 1; x = 2; x }", "f(x) { x = add(x, 1); x }"]:
			with self.subTest(text):
				program, report = _program(text)
				self.assertIsNone(program)
				self.assertEqual(1, len(report.issues))

	def test_redefinition_is_reported(self):
		program, report = _program("f(x) { x }\nf(y) { y }\nf(y) { y }")
		self.assertIsNone(program)
		self.assertEqual(1, len(report.issues))
		self.assertTrue(report.issues[0].intro.startswith("Redefined"))

class CutTests(unittest.TestCase):
	def test_local_alias_disappears(self):
		term = _terms("f(x) { y = x; add(y, 1) }")["f"]
		self.assertEqual(Lambda(["x"], Apply(Var("add"), [Var("x"), Literal(1)])), term)

	def test_top_level_alias_is_seen_through(self):
		terms = _terms("g(x) { x }\nh = g\nh(1)")
		self.assertEqual(Var("g"), terms["h"])
		self.assertEqual(Apply(Var("g"), [Literal(1)]), terms[None])

	def test_chained_aliases(self):
		term = _terms("f(x) { a = x; b = a; c = b; c }")["f"]
		self.assertEqual(Lambda(["x"], Var("x")), term)

	def test_alias_of_a_later_local(self):
		term = _terms("f() { c = add(a, 1); a = b; b = 2; c }")["f"]
		expect = Lambda([], Let("c", Apply(Var("add"), [Var("b"), Literal(1)]), Let("b", Literal(2), Var("c"))))
		self.assertEqual(expect, term)

	def test_ring_of_aliases_is_left_alone(self):
		term = _terms("f() { a = b; b = a; a }")["f"]
		self.assertEqual(Lambda([], Let("a", Var("b"), Let("b", Var("a"), Var("a")))), term)

	def test_real_work_is_not_cut(self):
		term = _terms("f(x) { y = add(x, 1); y }")["f"]
		self.assertIsInstance(term.body, Let)

class RecoveryTests(unittest.TestCase):
	def test_broken_declaration_spares_the_rest(self):
		program, report = _program("a = 1 @@ 2;\nb = 3;\nfun f(x) { x + }\nfun g(x) { x }")
		self.assertIsNone(program)
		intros = [pic.intro for pic in report.issues]
		self.assertEqual(2, len(intros), intros)
		self.assertTrue(intros[0].startswith("UnknownSymbol"))

	def test_unscannable_character(self):
		program, report = _program("x = 1 ` 2")
		self.assertIsNone(program)
		self.assertTrue(report.issues[0].intro.startswith("UnknownSymbol"))

	def test_parser_keeps_the_good_declarations(self):
		parser = front_end.Parser(standard_table())
		errors = []
		found = parser.declarations(tokenize("a = 1 @@ 2; b = 3; c = (; d = 4"), errors.append)
		self.assertEqual(["b"], [d.name for d in found])
		self.assertEqual(2, len(errors))

if __name__ == '__main__':
	unittest.main()
