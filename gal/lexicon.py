"""
Source text to tokens.

The parser is hand-written precedence-climbing over a table that grows as the
program declares notations, so the scanner's job stays small: find words,
numbers, strings, runs of operator characters, and the handful of punctuation
marks which the built-in statement syntax cares about.
"""
import sys
from typing import NamedTuple, Any
from boozetools.scanning.miniscan import Definition
from boozetools.scanning.engine import IterableScanner

NAME = "name"
NUMBER = "number"
STRING = "string"
SYMBOL = "symbol"
KEYWORD = "keyword"
PLACEHOLDER = "placeholder"
PUNCT = "punct"
END = "end"

KEYWORDS = frozenset(["fun", "def", "return", "use", "notation", "true", "false"])

_ESCAPES = {'"': '"', '\\': '\\', 'n': '\n', 'r': '\r', 't': '\t'}

class Token(NamedTuple):
	kind: str
	text: str
	slice: slice
	value: Any = None

	def is_punct(self, mark:str): return self.kind == PUNCT and self.text == mark
	def is_keyword(self, word:str): return self.kind == KEYWORD and self.text == word

def _unescape(body:str) -> str:
	out = []
	chars = iter(body)
	for c in chars:
		if c == '\\':
			c = next(chars)
			out.append(_ESCAPES.get(c, c))
		else:
			out.append(c)
	return ''.join(out)

LEXICON = Definition(name="gal")
LEXICON.ignore(r'\s+')
LEXICON.ignore(r'\/\/.*')
LEXICON.ignore(r'\/\*([^*]|\*+[^*\/])*\*+\/')

@LEXICON.on(r'\d+')
def _integer(yy:IterableScanner):
	yy.token(NUMBER, Token(NUMBER, yy.match(), yy.slice(), int(yy.match())))

@LEXICON.on(r'\d+\.\d+', rank=1)
def _real(yy:IterableScanner):
	yy.token(NUMBER, Token(NUMBER, yy.match(), yy.slice(), float(yy.match())))

@LEXICON.on(r'"([^"\\]|\\.)*"')
def _string(yy:IterableScanner):
	text = yy.match()
	yy.token(STRING, Token(STRING, text, yy.slice(), _unescape(text[1:-1])))

@LEXICON.on(r'[\l_]\w*')
def _word(yy:IterableScanner):
	text = sys.intern(yy.match())
	if text in KEYWORDS: yy.token(KEYWORD, Token(KEYWORD, text, yy.slice()))
	else: yy.token(NAME, Token(NAME, text, yy.slice()))

@LEXICON.on(r'\$[\l_]\w*')
def _placeholder(yy:IterableScanner):
	text = yy.match()
	yy.token(PLACEHOLDER, Token(PLACEHOLDER, text, yy.slice(), sys.intern(text[1:])))

@LEXICON.on(r'[\-+*\/%^!@#&|<>=?:~]+')
def _symbol(yy:IterableScanner):
	yy.token(SYMBOL, Token(SYMBOL, sys.intern(yy.match()), yy.slice()))

@LEXICON.on(r'\(|\)|\{|\}|\[|\]|,|;|\.')
def _punctuation(yy:IterableScanner):
	yy.token(PUNCT, Token(PUNCT, yy.match(), yy.slice()))

def tokenize(text:str) -> list[Token]:
	"""
	All the tokens in the text, followed by one END token.
	A character that starts no token raises boozetools' ScannerBlocked.
	"""
	tokens = [semantic for kind, semantic in LEXICON.scan(text)]
	tokens.append(Token(END, "", slice(len(text), len(text))))
	return tokens
