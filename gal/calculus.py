"""
The core calculus.

Whatever the surface syntax looks like, by the time the parser is done
there are only these few kinds of term. They are immutable value-objects:
two terms are equal exactly when they have the same shape and the same parts.

This module also supplies the structural utilities the front end needs:
free-variable analysis, capture-avoiding substitution, and a renderer
which writes terms back out in the surface call-syntax.
"""
from typing import Any, Iterable, Optional
from itertools import count
from boozetools.support.foundation import Visitor

DISCARD = "_"

class Term:
	__slots__ = ()
	def _key(self) -> tuple: return tuple(getattr(self, s) for s in self.__slots__)
	def __eq__(self, other): return type(self) is type(other) and self._key() == other._key()
	def __ne__(self, other): return not self == other
	def __hash__(self): return hash((type(self).__name__,) + self._key())
	def __repr__(self): return Render().visit(self)

class Literal(Term):
	__slots__ = ("value",)
	def __init__(self, value:Any): self.value = value

class Var(Term):
	""" Resolved against the binding environment when reduced, not when built. """
	__slots__ = ("name",)
	def __init__(self, name:str): self.name = name

class Hole(Term):
	"""
	A reference to a top-level name, wherever it appears: either something
	nobody had declared yet when the parser saw it, or a name a notation
	template refers to. No local binding can capture it.
	"""
	__slots__ = ("name",)
	def __init__(self, name:str): self.name = name

class Lambda(Term):
	__slots__ = ("params", "body")
	def __init__(self, params:Iterable[str], body:Term):
		self.params = tuple(params)
		self.body = body

class Apply(Term):
	__slots__ = ("callee", "args")
	def __init__(self, callee:Term, args:Iterable[Term]):
		self.callee = callee
		self.args = tuple(args)

class Let(Term):
	"""
	A run of directly nested Lets is one block. Every bound in the block
	sees every name the block binds, whichever order they were written in.
	"""
	__slots__ = ("name", "bound", "body")
	def __init__(self, name:str, bound:Term, body:Term):
		self.name = name
		self.bound = bound
		self.body = body

class ForeignCall(Term):
	__slots__ = ("module", "symbol", "args")
	def __init__(self, module:str, symbol:str, args:Iterable[Term]):
		self.module = module
		self.symbol = symbol
		self.args = tuple(args)

class ForeignDecl(Term):
	"""
	What `use module.symbol` means: a callable value which, when applied,
	becomes a ForeignCall. Arity of None means nobody could say.
	"""
	__slots__ = ("module", "symbol", "arity")
	def __init__(self, module:str, symbol:str, arity:Optional[int]):
		self.module = module
		self.symbol = symbol
		self.arity = arity

def reference_name(term:Term) -> Optional[str]:
	if isinstance(term, (Var, Hole)): return term.name

def unfold_block(term:Term) -> tuple[list[tuple[str, Term]], Term]:
	""" The bindings of the block starting here, and what the block finally means. """
	bindings = []
	while isinstance(term, Let):
		bindings.append((term.name, term.bound))
		term = term.body
	return bindings, term

def fold_block(bindings:list[tuple[str, Term]], body:Term) -> Term:
	for name, bound in reversed(bindings): body = Let(name, bound, body)
	return body

def block_names(bindings:list[tuple[str, Term]]) -> list[str]:
	""" A discarded statement binds nothing. """
	return [name for name, _ in bindings if name != DISCARD]

###############################################################################

class Render(Visitor):
	""" Writes a term in something close to the surface syntax. """
	def visit_Literal(self, t:Literal):
		if isinstance(t.value, bool): return "true" if t.value else "false"
		if isinstance(t.value, str): return '"%s"'%t.value.replace('\\', '\\\\').replace('"', '\\"')
		return repr(t.value)
	def visit_Var(self, t:Var): return t.name
	def visit_Hole(self, t:Hole): return "?"+t.name
	def visit_Lambda(self, t:Lambda): return "fun(%s) { %s }"%(", ".join(t.params), self.visit(t.body))
	def visit_Apply(self, t:Apply):
		callee = self.visit(t.callee)
		if isinstance(t.callee, (Lambda, Let)): callee = "(%s)"%callee
		return "%s(%s)"%(callee, self._args(t.args))
	def visit_Let(self, t:Let): return "let %s = %s in %s"%(t.name, self.visit(t.bound), self.visit(t.body))
	def visit_ForeignCall(self, t:ForeignCall): return "%s.%s!(%s)"%(t.module, t.symbol, self._args(t.args))
	def visit_ForeignDecl(self, t:ForeignDecl):
		arity = "" if t.arity is None else "/%d"%t.arity
		return "use %s.%s%s"%(t.module, t.symbol, arity)
	def _args(self, args): return ", ".join(map(self.visit, args))

class FreeNames(Visitor):
	"""
	The names a term refers to without binding them itself.
	Holes count, unless told otherwise, and nothing local ever binds them.
	"""
	def __init__(self, holes=True): self._holes = holes
	def visit_Literal(self, t, bound): return set()
	def visit_ForeignDecl(self, t, bound): return set()
	def visit_Var(self, t:Var, bound): return set() if t.name in bound else {t.name}
	def visit_Hole(self, t:Hole, bound): return {t.name} if self._holes else set()
	def visit_Lambda(self, t:Lambda, bound): return self.visit(t.body, bound | set(t.params))
	def visit_Apply(self, t:Apply, bound):
		found = self.visit(t.callee, bound)
		for a in t.args: found |= self.visit(a, bound)
		return found
	def visit_Let(self, t:Let, bound):
		bindings, body = unfold_block(t)
		inner = bound | set(block_names(bindings))
		found = self.visit(body, inner)
		for _, term in bindings: found |= self.visit(term, inner)
		return found
	def visit_ForeignCall(self, t:ForeignCall, bound):
		found = set()
		for a in t.args: found |= self.visit(a, bound)
		return found

def free_names(term:Term, *, holes=True) -> set[str]:
	return FreeNames(holes).visit(term, frozenset())

_fresh = count(1)

def fresh_name(stem:str) -> str:
	""" A name no program can write, because of the apostrophe. """
	return "%s'%d"%(stem.split("'")[0], next(_fresh))

class Substitute(Visitor):
	"""
	Capture-avoiding substitution of terms for free occurrences of names.
	Where a binder would capture a free name of a replacement, the binder gets renamed.
	"""
	def __init__(self, mapping:dict[str, Term]):
		self._danger = set()
		for t in mapping.values(): self._danger |= free_names(t, holes=False)

	def visit_Literal(self, t, mapping): return t
	def visit_ForeignDecl(self, t, mapping): return t
	def visit_Var(self, t:Var, mapping):
		return mapping.get(t.name, t)
	def visit_Hole(self, t:Hole, mapping): return t

	def _enter(self, names:Iterable[str], mapping:dict):
		""" Returns the renamed binders and the mapping to use beneath them. """
		mapping = dict(mapping)
		renamed = []
		for name in names:
			mapping.pop(name, None)
			if name in self._danger and mapping:
				fresh = fresh_name(name)
				mapping[name] = Var(fresh)
				renamed.append(fresh)
			else:
				renamed.append(name)
		return renamed, mapping

	def visit_Lambda(self, t:Lambda, mapping):
		if not mapping: return t
		params, inner = self._enter(t.params, mapping)
		return Lambda(params, self.visit(t.body, inner))

	def visit_Apply(self, t:Apply, mapping):
		if not mapping: return t
		return Apply(self.visit(t.callee, mapping), [self.visit(a, mapping) for a in t.args])

	def visit_Let(self, t:Let, mapping):
		if not mapping: return t
		bindings, body = unfold_block(t)
		renamed, inner = self._enter(block_names(bindings), mapping)
		renamed = iter(renamed)
		bindings = [
			(name if name == DISCARD else next(renamed), self.visit(term, inner))
			for name, term in bindings
		]
		return fold_block(bindings, self.visit(body, inner))

	def visit_ForeignCall(self, t:ForeignCall, mapping):
		if not mapping: return t
		return ForeignCall(t.module, t.symbol, [self.visit(a, mapping) for a in t.args])

def substitute(term:Term, mapping:dict[str, Term]) -> Term:
	if not mapping: return term
	return Substitute(mapping).visit(term, mapping)
