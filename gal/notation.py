"""
The notation table: a registry of user-declared surface syntax.

A rule is a pattern of literal symbols and $placeholders, a precedence,
an associativity, and a template term over the placeholders. The table
grows while a program is parsed, strictly in declaration order, and is
frozen once evaluation begins.

The parse-error taxonomy lives here too, since most of it is about notation.
"""
from collections import defaultdict
from typing import NamedTuple, Iterable, Optional
from boozetools.parsing.interface import ParseError
from . import calculus

LEFT, RIGHT, NONE = "left", "right", "none"
ASSOCIATIVITY = (LEFT, RIGHT, NONE)

# Statement-level syntax (definitions, assignment, return, use, notation)
# is handled before any rule gets a look. User rules must sit above it.
BUILTIN_PRECEDENCE = -1

PLACE = "$"

class GalParseError(ParseError):
	""" args are (message, slice-or-None) """
	def __init__(self, message:str, where:Optional[slice]=None):
		super().__init__(message, where)
		self.message = message
		self.where = where

class UnknownSymbol(GalParseError): pass
class ConflictingNotation(GalParseError): pass
class ArityMismatch(GalParseError): pass
class MalformedNotation(GalParseError): pass
class NonAssociative(GalParseError): pass

class Fragment(NamedTuple):
	text: str
	is_placeholder: bool

class NotationRule:
	def __init__(self, fragments:Iterable[Fragment], precedence:int, associativity:str, template:calculus.Term, *, referenced:Iterable[str]=(), span:slice=None):
		self.fragments = tuple(fragments)
		self.precedence = precedence
		self.associativity = associativity
		self.span = span
		self.skeleton = tuple(PLACE if f.is_placeholder else f.text for f in self.fragments)
		self.placeholders = tuple(f.text for f in self.fragments if f.is_placeholder)
		self._check(set(referenced))
		# Any other name in the template means the top-level binding, whatever the use site binds.
		global_names = calculus.free_names(template) - set(self.placeholders)
		self.template = calculus.substitute(template, {name: calculus.Hole(name) for name in global_names})

	def _check(self, referenced:set):
		if self.associativity not in ASSOCIATIVITY:
			raise MalformedNotation("Associativity is left, right, or none; not %r."%self.associativity, self.span)
		if self.precedence <= BUILTIN_PRECEDENCE:
			raise MalformedNotation("Notation precedence must be at least %d."%(BUILTIN_PRECEDENCE+1), self.span)
		if all(s == PLACE for s in self.skeleton):
			raise MalformedNotation("A notation needs at least one literal symbol.", self.span)
		for a, b in zip(self.skeleton, self.skeleton[1:]):
			if a == b == PLACE:
				raise MalformedNotation("Two placeholders in a row leave no way to tell where one ends.", self.span)
		if len(set(self.placeholders)) != len(self.placeholders):
			raise MalformedNotation("Each placeholder may appear only once in a pattern.", self.span)
		stray = referenced - set(self.placeholders)
		if stray:
			raise ArityMismatch("The template mentions %s, which the pattern lacks."%", ".join(sorted(stray)), self.span)

	def is_prefix(self) -> bool:
		return not self.fragments[0].is_placeholder

	def leading_literal(self) -> str:
		return self.fragments[0].text if self.is_prefix() else self.fragments[1].text

	def instantiate(self, args:list[calculus.Term]) -> calculus.Term:
		assert len(args) == len(self.placeholders)
		return calculus.substitute(self.template, dict(zip(self.placeholders, args)))

	def __repr__(self):
		return "<notation %r %d %s>"%(" ".join(self.skeleton), self.precedence, self.associativity)

class NotationTable:
	"""
	Rules are filed by their leading literal symbol: prefix rules by the
	first fragment, the others by the literal right after the left operand.
	Each bucket is kept in order of descending precedence, then longer
	skeletons first, which is the order the parser tries them in.
	"""
	def __init__(self):
		self._prefix = defaultdict(list)
		self._infix = defaultdict(list)
		self._frozen = False

	def register(self, rule:NotationRule):
		if self._frozen: raise RuntimeError("The notation table is frozen once evaluation begins.")
		bucket = (self._prefix if rule.is_prefix() else self._infix)[rule.leading_literal()]
		for i, other in enumerate(bucket):
			if other.skeleton == rule.skeleton and other.precedence == rule.precedence:
				if other.associativity != rule.associativity:
					message = "This notation is already %s-associative at precedence %d."%(other.associativity, other.precedence)
					raise ConflictingNotation(message, rule.span)
				bucket[i] = rule
				return
		bucket.append(rule)
		bucket.sort(key=lambda r:(-r.precedence, -len(r.skeleton)))

	def prefix_rules(self, text:str) -> list[NotationRule]: return self._prefix.get(text, [])
	def infix_rules(self, text:str) -> list[NotationRule]: return self._infix.get(text, [])

	def freeze(self): self._frozen = True

	def copy(self) -> "NotationTable":
		""" An unfrozen table with the same rules, for a fresh program to extend. """
		other = NotationTable()
		for key, bucket in self._prefix.items(): other._prefix[key] = list(bucket)
		for key, bucket in self._infix.items(): other._infix[key] = list(bucket)
		return other

	def __len__(self):
		return sum(map(len, self._prefix.values())) + sum(map(len, self._infix.values()))
