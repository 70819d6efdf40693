"""
Which references can be trusted to find their binding, and which are holes?

A reference is an ordinary Var when something lexically visible binds it:
a parameter, any statement of an enclosing block (earlier or later), a
predefined primitive, or a top-level declaration that came earlier (or is
the very function being defined). Anything else is a Hole, which waits
at top level for somebody to declare it.

Also, a top-level name may only be defined once.
"""
from typing import Iterable
from boozetools.support.foundation import Visitor
from .calculus import Literal, Var, Hole, Lambda, Apply, Let, ForeignCall, ForeignDecl, unfold_block, fold_block, block_names
from .diagnostics import Report

class HoleMarker(Visitor):
	def visit_Literal(self, t:Literal, scope): return t
	def visit_ForeignDecl(self, t:ForeignDecl, scope): return t
	def visit_Var(self, t:Var, scope): return t if t.name in scope else Hole(t.name)
	def visit_Hole(self, t:Hole, scope): return t
	def visit_Lambda(self, t:Lambda, scope):
		return Lambda(t.params, self.visit(t.body, scope.union(t.params)))
	def visit_Apply(self, t:Apply, scope):
		return Apply(self.visit(t.callee, scope), [self.visit(a, scope) for a in t.args])
	def visit_Let(self, t:Let, scope):
		bindings, body = unfold_block(t)
		inner = scope.union(block_names(bindings))
		bindings = [(name, self.visit(term, inner)) for name, term in bindings]
		return fold_block(bindings, self.visit(body, inner))
	def visit_ForeignCall(self, t:ForeignCall, scope):
		return ForeignCall(t.module, t.symbol, [self.visit(a, scope) for a in t.args])

def mark_holes(program, predefined:Iterable[str], report:Report):
	marker = HoleMarker()
	known = set(predefined)
	first_seen = {}
	resolved = []
	for decl in program.declarations:
		if decl.name is not None:
			if decl.name in first_seen:
				report.redefined(program.source, decl.name, first_seen[decl.name], decl.span)
			else:
				first_seen[decl.name] = decl.span
		scope = known.union([decl.name]) if isinstance(decl.term, Lambda) else known
		resolved.append(decl._replace(term=marker.visit(decl.term, frozenset(scope))))
		if decl.name is not None: known.add(decl.name)
	program.declarations = resolved
