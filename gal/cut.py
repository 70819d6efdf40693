"""
The cut: `x = y` is no reason for the evaluator to keep a slot called x.

Wherever a block binds a name to nothing more than another name, the uses
of the first name, anywhere in the block, become uses of the second and
the binding disappears. Aliases of aliases collapse to the far end. A ring
of aliases with no far end is left alone, to be reported as a deadlock.
At top level the alias declaration itself stays, since earlier statements
may refer to it as a hole, but later statements refer straight through.

Substituting one reference for another resolves exactly when the original
would have, so neither evaluation order nor dispatch timing changes.
"""
from boozetools.support.foundation import Visitor
from .calculus import Term, Var, Hole, Lambda, Apply, Let, ForeignCall, DISCARD, substitute, reference_name, unfold_block, fold_block

class Cut(Visitor):
	def visit_Literal(self, t): return t
	def visit_ForeignDecl(self, t): return t
	def visit_Var(self, t): return t
	def visit_Hole(self, t): return t
	def visit_Lambda(self, t:Lambda): return Lambda(t.params, self.visit(t.body))
	def visit_Apply(self, t:Apply): return Apply(self.visit(t.callee), [self.visit(a) for a in t.args])
	def visit_ForeignCall(self, t:ForeignCall): return ForeignCall(t.module, t.symbol, [self.visit(a) for a in t.args])
	def visit_Let(self, t:Let):
		bindings, body = unfold_block(t)
		bindings = [(name, self.visit(term)) for name, term in bindings]
		aliases = block_aliases(bindings)
		kept = [(name, substitute(term, aliases)) for name, term in bindings if name not in aliases]
		return fold_block(kept, substitute(self.visit(body), aliases))

def is_alias(term:Term) -> bool:
	return isinstance(term, (Var, Hole))

def block_aliases(bindings:list) -> dict[str, Term]:
	""" Each alias in the block, mapped to what it finally stands for. """
	direct = {name: term for name, term in bindings if name != DISCARD and is_alias(term)}
	found = {}
	for name, target in direct.items():
		seen = {name}
		while isinstance(target, Var) and target.name in direct:
			if target.name in seen: break
			seen.add(target.name)
			target = direct[target.name]
		else:
			found[name] = target
	return found

def cut_aliases(declarations:list) -> list:
	cutter = Cut()
	aliases = {}
	result = []
	for decl in declarations:
		term = substitute(cutter.visit(decl.term), aliases)
		if decl.name is not None:
			aliases.pop(decl.name, None)
			if is_alias(term) and reference_name(term) != decl.name:
				aliases[decl.name] = term
		result.append(decl._replace(term=term))
	return result
