import sys, random
from pathlib import Path
from typing import Any, Sequence
from boozetools.support.failureprone import SourceText, illustration

class TooManyIssues(Exception):
	pass

def _outburst():
	particle = ["Oh, ", "Well, ", "Aw, ", "", ""]

	minced_oaths = [
		'Ack', 'ARGH', 'Blargh', 'Bother',
		'Confound it', 'Crud', 'Curses', "Crikey",
		'Dag Nabbit', 'Drat', 'Fiddlesticks',
		'Gadzooks', 'Good Grief', "Great Scott",
		"Heavens to Betsy", 'Jeepers', 'Nuts', 'Rats', 'Zounds',
	]

	resignations = [
		'I am undone.',
		'I cannot continue.',
		'Nothing further can happen.',
		'I need to ask for help.',
	]

	return "%s%s! %s"%tuple(map(random.choice, (particle, minced_oaths, resignations)))

class Report:
	"""
	Collects problems as they turn up, so they can be shown all together.
	Also the one place the evaluator talks to the console while it works.
	"""
	_issues : list["Pic"]

	def __init__(self, *, verbose:int=0, max_issues=3):
		self._verbose = verbose or 0   # Because None is incomparable.
		self._issues = []
		self._redefined = {}
		self._max_issues = max_issues

	def ok(self): return not self._issues
	def sick(self): return bool(self._issues)

	@property
	def issues(self): return tuple(self._issues)

	def issue(self, it:"Pic"):
		self._issues.append(it)
		if len(self._issues) == self._max_issues:
			raise TooManyIssues(self)

	def reset(self):
		self._issues.clear()
		self._redefined.clear()

	def info(self, *args):
		if self._verbose:
			print(*args, file=sys.stderr)

	def complain_to_console(self):
		""" Emit all the issues to the console. """
		_bemoan(self._issues)

	def assert_no_issues(self, message=""):
		""" Does what it says on the tin """
		if self._issues:
			self.complain_to_console()
			raise AssertionError(_outburst()+" "+message)

	# Methods the front-end is likely to call:
	def parse_error(self, source:SourceText, error):
		intro = "%s: %s"%(type(error).__name__, error.message)
		problem = [Annotation(source, error.where)] if error.where is not None else []
		self.issue(Pic(intro, problem))

	def scanner_blocked(self, source:SourceText, position:int):
		intro = "UnknownSymbol: No token starts with this character."
		self.issue(Pic(intro, [Annotation(source, slice(position, position+1))]))

	def no_such_file(self, path:Path):
		self.issue(Pic("I see no file called "+str(path), []))

	def broken_file(self, path:Path, ex:Exception):
		intro = "Something went pear-shaped while trying to read "+str(path)
		self.issue(Pic(intro, [], [str(ex)]))

	# Methods the resolver passes might call:
	def redefined(self, source:SourceText, name:str, first:slice, guilty:slice):
		if name not in self._redefined:
			intro = "Redefined: '%s' is defined more than once at top level."%name
			issue = Pic(intro, [Annotation(source, first, "Earliest definition")])
			self.issue(issue)
			self._redefined[name] = issue
		self._redefined[name].also(Annotation(source, guilty))

	# Methods the evaluator calls as it goes:
	def dispatching(self, module:str, symbol:str, args:Sequence):
		self.info("-- dispatch %s.%s(%s)"%(module, symbol, ", ".join(map(repr, args))))

	def late_result(self, module:str, symbol:str):
		self.info("-- discarded a late result from %s.%s"%(module, symbol))

	def entering(self, label:str, args:Sequence):
		if self._verbose > 1:
			print("-> %s(%s)"%(label, ", ".join(map(repr, args))), file=sys.stderr)

	def leaving(self, label:str, value:Any):
		if self._verbose > 1:
			print("<- %s = %r"%(label, value), file=sys.stderr)

	# Methods the runner calls when evaluation stops:
	def evaluation_failed(self, failure, unready:Sequence[str]):
		footer = []
		if unready:
			footer.append("Still unready: "+", ".join(unready))
		self.issue(Pic(failure.describe(), [], footer))

	def unresolved(self, ex):
		intro = "UnresolvedBinding: Nothing can make progress while waiting on: "+", ".join(ex.names)
		footer = ["Still unready: "+", ".join(ex.unready)] if ex.unready else []
		self.issue(Pic(intro, [], footer))

class Annotation:
	def __init__(self, source:SourceText, where:slice, caption:str=""):
		self.source = source
		self.slice = where
		self.caption = caption
	@property
	def path(self): return self.source.filename
	def illustrate(self):
		row, col = self.source.find_row_col(self.slice.start)
		single_line = self.source.line_of_text(row)
		width = max(1, self.slice.stop - self.slice.start)
		return illustration(single_line, col, width, prefix='% 6d |' % row, caption=self.caption)

class Pic:
	def __init__(self, intro:str, anns:list[Annotation], footer=()):
		self._intro, self._anns, self._footer = intro, anns, footer
	@property
	def intro(self): return self._intro
	def also(self, ann:Annotation): self._anns.append(ann)
	def as_text(self):
		lines = [self._intro, ""]
		path = None
		for ann in self._anns:
			if ann.path != path:
				path = ann.path
				lines.append(str(path))
			lines.append(ann.illustrate())
		lines.extend(self._footer)
		return '\n'.join(lines)

def _bemoan(issues):
	""" Emit all the issues to the console. """
	if issues:
		print("*"*60, file=sys.stderr)
		print(_outburst(), file=sys.stderr)
	for i in issues:
		print("  -"*20, file=sys.stderr)
		print(i.as_text(), file=sys.stderr)
	sys.stderr.flush()
