"""
From text to core terms.

Statement-level syntax (definitions, assignment, return, use, notation) is
built in and gets first refusal at the start of every statement. Everything
within an expression goes by precedence-climbing over the notation table,
which the program itself extends as it goes.
"""
from pathlib import Path
from typing import NamedTuple, Optional, Iterable, Callable
from boozetools.scanning.interface import ScannerBlocked
from boozetools.support.failureprone import SourceText
from .lexicon import tokenize, Token, NAME, NUMBER, STRING, SYMBOL, KEYWORD, PLACEHOLDER, PUNCT, END
from .calculus import Term, Literal, Var, Lambda, Apply, Let, ForeignDecl, DISCARD, free_names
from .notation import (
	NotationTable, NotationRule, Fragment, LEFT, RIGHT, NONE, ASSOCIATIVITY, BUILTIN_PRECEDENCE,
	GalParseError, UnknownSymbol, MalformedNotation, NonAssociative, ArityMismatch,
)
from .diagnostics import Report
from . import resolution, cut

BRACKETS = ("[", "]")
DEFINERS = ("fun", "def")
STATEMENT_KEYWORDS = ("fun", "def", "use", "notation")
NOTATION_OPTIONS = ("with", "precedence", "associativity") + ASSOCIATIVITY

class Declaration(NamedTuple):
	""" One top-level statement. A name of None marks an entry expression. """
	name: Optional[str]
	term: Term
	span: slice

class Program:
	def __init__(self, declarations:Iterable[Declaration], table:NotationTable, source:SourceText):
		self.declarations = list(declarations)
		self.table = table
		self.source = source

	def entries(self) -> list[Declaration]:
		return [d for d in self.declarations if d.name is None]

	def __repr__(self):
		lines = []
		for d in self.declarations:
			lines.append(repr(d.term) if d.name is None else "%s = %r"%(d.name, d.term))
		return "\n".join(lines)

def _could_be_literal(tok:Token) -> bool:
	""" Can this token stand for a literal fragment of a notation? """
	return tok.kind in (SYMBOL, NAME) or (tok.kind == PUNCT and tok.text in BRACKETS)

class Parser:
	"""
	A notation template may only mention its placeholders and names already
	declared: the predefined ones, and top-level declarations parsed so far.
	"""
	def __init__(self, table:NotationTable, predefined:Iterable[str]=()):
		self.table = table
		self._declared = set(predefined)
		self._reset([])
		self._template = None

	def _reset(self, tokens:Iterable[Token]):
		self._tokens = list(tokens)
		if not self._tokens or self._tokens[-1].kind != END:
			end = self._tokens[-1].slice.stop if self._tokens else 0
			self._tokens.append(Token(END, "", slice(end, end)))
		self._pos = 0

	def _peek(self, ahead=0) -> Token:
		return self._tokens[min(self._pos + ahead, len(self._tokens) - 1)]

	def _advance(self) -> Token:
		tok = self._peek()
		if tok.kind != END: self._pos += 1
		return tok

	def _at_punct(self, mark:str) -> bool: return self._peek().is_punct(mark)

	def _expect_punct(self, mark:str) -> Token:
		tok = self._peek()
		if not tok.is_punct(mark): raise GalParseError("Expected %r here."%mark, tok.slice)
		return self._advance()

	def _expect_name(self, what:str) -> Token:
		tok = self._peek()
		if tok.kind != NAME: raise GalParseError("Expected %s here."%what, tok.slice)
		return self._advance()

	def _skip_semicolons(self):
		while self._at_punct(";"): self._advance()

	def _span_from(self, start:int) -> slice:
		first = self._tokens[start].slice
		last = self._tokens[max(start, self._pos - 1)].slice
		return slice(first.start, last.stop)

	###########################################################################

	def parse(self, tokens:Iterable[Token]) -> Term:
		""" Exactly one expression, which must use up the whole token stream. """
		self._reset(tokens)
		term = self.expression(0)
		tok = self._peek()
		if tok.kind != END:
			raise UnknownSymbol("Unexpected %r after the end of the expression."%tok.text, tok.slice)
		return term

	def declarations(self, tokens:Iterable[Token], on_error:Callable[[GalParseError], None]) -> list[Declaration]:
		"""
		All the top-level statements. A broken statement goes to on_error,
		and parsing picks up again at the next statement boundary.
		"""
		self._reset(tokens)
		found = []
		self._skip_semicolons()
		while self._peek().kind != END:
			start = self._pos
			try: decl = self._top_level()
			except GalParseError as ex:
				on_error(ex)
				self._resynchronize(start)
			else:
				if decl is not None:
					found.append(decl)
					if decl.name is not None: self._declared.add(decl.name)
			self._skip_semicolons()
		return found

	def _resynchronize(self, start:int):
		self._pos = start
		depth = 0
		while True:
			tok = self._advance()
			if tok.kind == END: return
			if tok.kind == PUNCT:
				if tok.text in ("(", "{"): depth += 1
				elif tok.text in (")", "}"):
					depth -= 1
					if depth <= 0 and tok.text == "}": return
				elif tok.text == ";" and depth <= 0: return
			ahead = self._peek()
			if depth <= 0 and ahead.kind == KEYWORD and ahead.text in STATEMENT_KEYWORDS: return

	def _top_level(self) -> Optional[Declaration]:
		start = self._pos
		tok = self._peek()
		if tok.is_keyword("notation"):
			self._notation()
			return None
		if tok.is_keyword("use"):
			name, term = self._use()
		elif tok.is_keyword("return"):
			raise GalParseError("A return belongs inside a function body.", tok.slice)
		else:
			name, term = self._statement()
		return Declaration(name, term, self._span_from(start))

	def _statement(self) -> tuple[Optional[str], Term]:
		tok = self._peek()
		if tok.kind == KEYWORD and tok.text in DEFINERS and self._peek(1).kind == NAME:
			self._advance()
			return self._definition()
		if tok.kind == NAME and self._looks_like_definition():
			return self._definition()
		if tok.kind == NAME and self._peek(1).kind == SYMBOL and self._peek(1).text == "=":
			self._advance()
			self._advance()
			return tok.text, self.expression(0)
		if tok.kind == KEYWORD and tok.text in ("use", "notation"):
			raise GalParseError("Declare %s at top level, not inside a function."%tok.text, tok.slice)
		return None, self.expression(0)

	def _looks_like_definition(self) -> bool:
		""" name ( name, ... ) { """
		if not self._peek(1).is_punct("("): return False
		i = 2
		if self._peek(i).is_punct(")"): return self._peek(i+1).is_punct("{")
		while True:
			if self._peek(i).kind != NAME: return False
			i += 1
			if self._peek(i).is_punct(")"): return self._peek(i+1).is_punct("{")
			if not self._peek(i).is_punct(","): return False
			i += 1

	def _definition(self) -> tuple[str, Term]:
		name = self._expect_name("a function name")
		params = self._parameters()
		return name.text, Lambda(params, self._block(params))

	def _parameters(self) -> list[str]:
		self._expect_punct("(")
		params = []
		if not self._at_punct(")"):
			while True:
				tok = self._expect_name("a parameter name")
				if tok.text in params: raise GalParseError("Parameter %s appears twice."%tok.text, tok.slice)
				params.append(tok.text)
				if not self._at_punct(","): break
				self._advance()
		self._expect_punct(")")
		return params

	def _block(self, params=()) -> Term:
		"""
		Statements become nested Lets around whatever the block finally means.
		The block is one scope, so a name may be bound only once in it,
		and not over a parameter of the function it belongs to.
		"""
		opening = self._expect_punct("{")
		steps = []
		result = None
		self._skip_semicolons()
		while not self._at_punct("}"):
			tok = self._peek()
			if tok.kind == END: raise GalParseError("This block never closes.", opening.slice)
			if tok.is_keyword("return"):
				self._advance()
				result = self.expression(0)
				self._skip_semicolons()
				if not self._at_punct("}"):
					raise GalParseError("Nothing may follow a return in the same block.", self._peek().slice)
				break
			start = self._pos
			name, term = self._statement()
			if name not in (None, DISCARD):
				if name in params:
					raise GalParseError("%s is already a parameter here."%name, self._span_from(start))
				if any(name == other for other, _ in steps):
					raise GalParseError("%s is already defined in this block."%name, self._span_from(start))
			steps.append((name, term))
			self._skip_semicolons()
		closing = self._expect_punct("}")
		if result is None:
			if not steps: raise GalParseError("An empty block has no value.", slice(opening.slice.start, closing.slice.stop))
			name, term = steps[-1]
			if name in (None, DISCARD):
				steps.pop()
				result = term
			else:
				result = Var(name)
		for name, term in reversed(steps):
			result = Let(name or DISCARD, term, result)
		return result

	def _use(self) -> tuple[str, Term]:
		keyword = self._advance()
		path = [self._expect_name("a module name").text]
		while self._at_punct("."):
			self._advance()
			path.append(self._expect_name("a name after the dot").text)
		if len(path) < 2:
			raise GalParseError("Say which symbol to use, as in `use %s.symbol`."%path[0], keyword.slice)
		arity = None
		if self._peek().kind == SYMBOL and self._peek().text == "/":
			self._advance()
			number = self._advance()
			if number.kind != NUMBER or not isinstance(number.value, int):
				raise GalParseError("An arity is a whole number.", number.slice)
			arity = number.value
		alias = path[-1]
		if self._peek().kind == NAME and self._peek().text == "as":
			self._advance()
			alias = self._expect_name("an alias").text
		return alias, ForeignDecl(".".join(path[:-1]), path[-1], arity)

	def _notation(self):
		start = self._pos
		self._advance()
		pattern = self._advance()
		if pattern.kind != STRING:
			raise MalformedNotation("The pattern of a notation goes in double quotes.", pattern.slice)
		declared = []
		precedence, associativity = 0, LEFT
		while self._peek().kind == NAME and self._peek().text in NOTATION_OPTIONS:
			word = self._advance().text
			if word == "with":
				declared.append(self._expect_name("a placeholder name").text)
				while self._at_punct(","):
					self._advance()
					declared.append(self._expect_name("a placeholder name").text)
			elif word == "precedence":
				number = self._advance()
				if number.kind != NUMBER or not isinstance(number.value, int):
					raise MalformedNotation("Precedence is a whole number, zero or more.", number.slice)
				precedence = number.value
			elif word == "associativity":
				associativity = self._expect_name("left, right, or none").text
			else:
				associativity = word
		arrow = self._advance()
		if not (arrow.kind == SYMBOL and arrow.text == ":="):
			raise GalParseError("Expected := and then the template.", arrow.slice)
		fragments = self._pattern(pattern)
		self._template = set()
		try: template = self.expression(0)
		finally: referenced, self._template = self._template, None
		referenced.update(declared)
		rule = NotationRule(fragments, precedence, associativity, template, referenced=referenced, span=self._span_from(start))
		unknown = free_names(template, holes=False) - set(rule.placeholders) - self._declared
		if unknown:
			message = "The template mentions %s, which is neither in the pattern nor declared before this notation."
			raise ArityMismatch(message%", ".join(sorted(unknown)), rule.span)
		self.table.register(rule)

	@staticmethod
	def _pattern(pattern:Token) -> list[Fragment]:
		try: inner = tokenize(pattern.value)
		except ScannerBlocked:
			raise MalformedNotation("This pattern has a character no token can start with.", pattern.slice)
		fragments = []
		for t in inner[:-1]:
			if t.kind == PLACEHOLDER: fragments.append(Fragment(t.value, True))
			elif _could_be_literal(t): fragments.append(Fragment(t.text, False))
			else: raise MalformedNotation("%r cannot be part of a notation."%t.text, pattern.slice)
		if not fragments: raise MalformedNotation("This pattern is empty.", pattern.slice)
		return fragments

	###########################################################################

	def expression(self, floor:int) -> Term:
		"""
		Precedence climbing: an operand, then as many continuations as bind at
		least as tightly as the floor. A continuation is any rule whose pattern
		starts with a placeholder, filed under the literal that follows it.
		"""
		left = self._operand()
		chained = None
		while True:
			tok = self._peek()
			if not _could_be_literal(tok): return left
			rules = self.table.infix_rules(tok.text)
			if not rules:
				if tok.kind == SYMBOL: raise UnknownSymbol("No notation puts %r after an operand."%tok.text, tok.slice)
				return left
			rule = self._choose(rules, floor, 1)
			if rule is None: return left
			if rule.associativity == NONE and rule.precedence == chained:
				raise NonAssociative("%r does not chain; use parentheses."%" ".join(rule.skeleton), tok.slice)
			left = self._complete(rule, [left], 1)
			chained = rule.precedence if rule.associativity == NONE else None

	def _operand(self) -> Term:
		tok = self._peek()
		if _could_be_literal(tok):
			rule = self._choose(self.table.prefix_rules(tok.text), BUILTIN_PRECEDENCE, 0)
			if rule is not None: return self._complete(rule, [], 0)
		if tok.kind in (NUMBER, STRING):
			self._advance()
			return self._calls(Literal(tok.value))
		if tok.is_keyword("true") or tok.is_keyword("false"):
			self._advance()
			return Literal(tok.text == "true")
		if tok.is_keyword("fun") and self._peek(1).is_punct("("):
			self._advance()
			params = self._parameters()
			return self._calls(Lambda(params, self._block(params)))
		if tok.kind == NAME:
			self._advance()
			return self._calls(Var(tok.text))
		if tok.kind == PLACEHOLDER and self._template is not None:
			self._advance()
			self._template.add(tok.value)
			return self._calls(Var(tok.value))
		if tok.is_punct("("):
			self._advance()
			inner = self.expression(0)
			self._expect_punct(")")
			return self._calls(inner)
		if tok.kind == END:
			raise GalParseError("The text ends in the middle of an expression.", tok.slice)
		raise UnknownSymbol("I don't know what to make of %r here."%tok.text, tok.slice)

	def _calls(self, term:Term) -> Term:
		while self._at_punct("("):
			self._advance()
			args = []
			if not self._at_punct(")"):
				while True:
					args.append(self.expression(0))
					if not self._at_punct(","): break
					self._advance()
			self._expect_punct(")")
			term = Apply(term, args)
		return term

	def _choose(self, rules:list[NotationRule], floor:int, k:int) -> Optional[NotationRule]:
		""" Rules come best-first, so the first one that fits is the one. """
		for rule in rules:
			if rule.precedence < floor: return None
			if self._fits(rule, k): return rule

	def _fits(self, rule:NotationRule, k:int) -> bool:
		"""
		Does the rest of this rule's literal skeleton turn up ahead?
		A placeholder between two literals may span any tokens
		up to the next literal, but not out of the enclosing brackets.
		"""
		p = self._pos + 1
		fragments = rule.fragments
		i = k + 1
		while i < len(fragments):
			if fragments[i].is_placeholder:
				if i == len(fragments) - 1: return True
				p = self._find(fragments[i+1].text, p)
				if p is None: return False
				p, i = p + 1, i + 2
			else:
				tok = self._tokens[min(p, len(self._tokens)-1)]
				if not (_could_be_literal(tok) and tok.text == fragments[i].text): return False
				p, i = p + 1, i + 1
		return True

	def _find(self, text:str, p:int) -> Optional[int]:
		depth = 0
		for q in range(p, len(self._tokens)):
			tok = self._tokens[q]
			if tok.kind == END: return None
			if tok.kind == PUNCT:
				if tok.text in ("(", "{"): depth += 1
				elif tok.text in (")", "}"):
					if depth == 0: return None
					depth -= 1
				elif tok.text in (";", ",") and depth == 0: return None
			if depth == 0 and q > p and _could_be_literal(tok) and tok.text == text: return q

	def _complete(self, rule:NotationRule, args:list[Term], k:int) -> Term:
		last = len(rule.fragments) - 1
		for i in range(k, last + 1):
			fragment = rule.fragments[i]
			if not fragment.is_placeholder:
				tok = self._advance()
				if tok.text != fragment.text:
					raise GalParseError("Expected %r to continue %r."%(fragment.text, " ".join(rule.skeleton)), tok.slice)
			elif i < last:
				args.append(self.expression(0))
			elif rule.is_prefix() or rule.associativity == RIGHT:
				args.append(self.expression(rule.precedence))
			else:
				args.append(self.expression(rule.precedence + 1))
		return rule.instantiate(args)

###############################################################################

def parse_text(text:str, path:Path, report:Report, *, table:NotationTable=None, predefined:Iterable[str]=()) -> Optional[Program]:
	"""
	Parse a whole program, then mark holes and cut trivial aliases.
	Problems go to the report; a program with problems comes back as None.
	"""
	source = SourceText(text, filename=str(path))
	predefined = set(predefined)
	if table is None: table = NotationTable()
	try: tokens = tokenize(text)
	except ScannerBlocked as ex:
		report.scanner_blocked(source, ex.args[0])
		return None
	before = len(report.issues)
	parser = Parser(table, predefined)
	declarations = parser.declarations(tokens, lambda ex: report.parse_error(source, ex))
	program = Program(declarations, table, source)
	resolution.mark_holes(program, predefined, report)
	if len(report.issues) > before: return None
	program.declarations = cut.cut_aliases(program.declarations)
	return program

def parse_file(path:Path, report:Report, **kwargs) -> Optional[Program]:
	try:
		with open(path, "r", encoding="utf-8") as fh: text = fh.read()
	except FileNotFoundError:
		report.no_such_file(path)
	except OSError as ex:
		report.broken_file(path, ex)
	else:
		return parse_text(text, path, report, **kwargs)
