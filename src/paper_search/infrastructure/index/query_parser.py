"""
Lexical Query Parser - boolean/phrase query language for the local index.

Grammar (juxtaposed clauses are OR-ed, AND binds tighter than OR):

    query    := sequence EOF
    sequence := group ( [OR] group )*
    group    := unary ( AND unary )*
    unary    := ( "+" | "-" | NOT ) unary | primary
    primary  := "(" sequence ")" | [field ":"] ( word | "phrase" ) | year:[lo TO hi]

Fields: ``title``, ``abstract_text`` (alias ``abstract``), ``authors``,
``year`` (exact or inclusive range) and ``id`` (exact identifier).
Unqualified terms search title, abstract_text and authors.

Example:
    >>> node = parse_query('title:"black hole" AND +entropy -review')
    >>> sorted(node.positive_terms())
    ['black', 'entropy', 'hole']
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from paper_search.shared.exceptions import QueryParseError

# Fields searched when a term carries no field prefix
DEFAULT_FIELDS: tuple[str, ...] = ("title", "abstract_text", "authors")

_FIELD_ALIASES = {
    "title": "title",
    "abstract": "abstract_text",
    "abstract_text": "abstract_text",
    "authors": "authors",
    "author": "authors",
    "year": "year",
    "id": "id",
}

_TOKEN_PATTERN = re.compile(r"\w+")
_RANGE_PATTERN = re.compile(r"^\[\s*(\S+)\s+TO\s+(\S+)\s*\]$")
_KEYWORDS = {"AND", "OR", "NOT"}


def tokenize(text: str | None) -> list[str]:
    """Lowercase word tokens; the same analyzer is used for documents and queries."""
    if not text:
        return []
    return _TOKEN_PATTERN.findall(text.lower())


# =============================================================================
# Query tree
# =============================================================================

class Occur(Enum):
    SHOULD = "should"
    MUST = "must"
    MUST_NOT = "must_not"


@dataclass(frozen=True)
class IndexedDocument:
    """Analyzed view of one lexical entry: tokens per field plus the year."""

    id: str
    year: int | None
    fields: dict[str, list[str]]

    @property
    def length(self) -> int:
        return sum(len(tokens) for tokens in self.fields.values())


class QueryNode:
    """Base class of the parsed query tree."""

    def matches(self, doc: IndexedDocument) -> bool:
        raise NotImplementedError

    def positive_terms(self) -> list[str]:
        """Terms that contribute to relevance scoring (never excluded ones)."""
        return []


@dataclass(frozen=True)
class TermQuery(QueryNode):
    term: str
    fields: tuple[str, ...] = DEFAULT_FIELDS

    def matches(self, doc: IndexedDocument) -> bool:
        return any(self.term in doc.fields.get(name, ()) for name in self.fields)

    def positive_terms(self) -> list[str]:
        return [self.term]


@dataclass(frozen=True)
class PhraseQuery(QueryNode):
    """Consecutive tokens inside a single field."""

    terms: tuple[str, ...]
    fields: tuple[str, ...] = DEFAULT_FIELDS

    def matches(self, doc: IndexedDocument) -> bool:
        width = len(self.terms)
        for name in self.fields:
            tokens = doc.fields.get(name, [])
            for start in range(len(tokens) - width + 1):
                if tuple(tokens[start:start + width]) == self.terms:
                    return True
        return False

    def positive_terms(self) -> list[str]:
        return list(self.terms)


@dataclass(frozen=True)
class YearRangeQuery(QueryNode):
    """Inclusive year range; ``*`` leaves a bound open."""

    low: int | None
    high: int | None

    def matches(self, doc: IndexedDocument) -> bool:
        if doc.year is None:
            return False
        if self.low is not None and doc.year < self.low:
            return False
        if self.high is not None and doc.year > self.high:
            return False
        return True


@dataclass(frozen=True)
class IdQuery(QueryNode):
    value: str

    def matches(self, doc: IndexedDocument) -> bool:
        return doc.id == self.value


@dataclass(frozen=True)
class MatchNothing(QueryNode):
    """A clause whose text analyzed to zero tokens."""

    def matches(self, doc: IndexedDocument) -> bool:
        return False


@dataclass(frozen=True)
class BooleanQuery(QueryNode):
    """
    Occur-based combination, as in Lucene-family engines.

    A document matches when every MUST clause matches, no MUST_NOT clause
    matches and, absent MUST clauses, at least one SHOULD clause matches.
    A purely negative query matches nothing.
    """

    clauses: tuple[tuple[Occur, QueryNode], ...] = field(default_factory=tuple)

    def matches(self, doc: IndexedDocument) -> bool:
        has_must = False
        any_should = False
        for occur, node in self.clauses:
            if occur is Occur.MUST_NOT:
                if node.matches(doc):
                    return False
            elif occur is Occur.MUST:
                has_must = True
                if not node.matches(doc):
                    return False
            elif not any_should and node.matches(doc):
                any_should = True
        return has_must or any_should

    def positive_terms(self) -> list[str]:
        terms: list[str] = []
        for occur, node in self.clauses:
            if occur is not Occur.MUST_NOT:
                terms.extend(node.positive_terms())
        return terms


# =============================================================================
# Lexer
# =============================================================================

@dataclass(frozen=True)
class _Token:
    kind: str  # LPAREN RPAREN AND OR NOT PLUS MINUS WORD PHRASE RANGE
    value: Any
    position: int
    field: str | None = None


class _Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, reason: str, position: int | None = None) -> QueryParseError:
        return QueryParseError(self.text, reason, position=self.pos if position is None else position)

    def tokens(self) -> list[_Token]:
        out: list[_Token] = []
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif ch == "(":
                out.append(_Token("LPAREN", ch, self.pos))
                self.pos += 1
            elif ch == ")":
                out.append(_Token("RPAREN", ch, self.pos))
                self.pos += 1
            elif ch in "+-":
                nxt = text[self.pos + 1] if self.pos + 1 < len(text) else ""
                if not nxt or nxt.isspace() or nxt == ")":
                    raise self.error(f"dangling '{ch}' operator")
                out.append(_Token("PLUS" if ch == "+" else "MINUS", ch, self.pos))
                self.pos += 1
            elif ch == '"':
                start = self.pos
                out.append(_Token("PHRASE", self._read_quoted(), start))
            else:
                out.append(self._read_word())
        return out

    def _read_quoted(self) -> str:
        start = self.pos
        end = self.text.find('"', start + 1)
        if end == -1:
            raise self.error("unterminated quoted phrase", start)
        self.pos = end + 1
        return self.text[start + 1:end]

    def _read_word(self) -> _Token:
        start = self.pos
        text = self.text
        while self.pos < len(text) and not text[self.pos].isspace() and text[self.pos] not in '()"':
            if text[self.pos] == ":":
                return self._read_fielded(start)
            self.pos += 1
        word = text[start:self.pos]
        if word in _KEYWORDS:
            return _Token(word, word, start)
        return _Token("WORD", word, start)

    def _read_fielded(self, start: int) -> _Token:
        raw_field = self.text[start:self.pos]
        name = _FIELD_ALIASES.get(raw_field.lower())
        if name is None:
            raise self.error(f"unknown field '{raw_field}'", start)
        self.pos += 1  # skip ':'
        text = self.text
        if self.pos >= len(text) or text[self.pos].isspace() or text[self.pos] == ")":
            raise self.error(f"missing value for field '{raw_field}'", start)

        if text[self.pos] == '"':
            return _Token("PHRASE", self._read_quoted(), start, field=name)
        if text[self.pos] == "[":
            end = text.find("]", self.pos)
            if end == -1:
                raise self.error("unterminated range", self.pos)
            raw = text[self.pos:end + 1]
            self.pos = end + 1
            return _Token("RANGE", raw, start, field=name)

        value_start = self.pos
        while self.pos < len(text) and not text[self.pos].isspace() and text[self.pos] not in '()"':
            self.pos += 1
        if self.pos == value_start:
            raise self.error(f"missing value for field '{raw_field}'", start)
        return _Token("WORD", text[value_start:self.pos], start, field=name)


# =============================================================================
# Parser
# =============================================================================

class _Parser:
    def __init__(self, text: str, tokens: list[_Token]) -> None:
        self.text = text
        self.tokens = tokens
        self.index = 0

    def error(self, reason: str, token: _Token | None = None) -> QueryParseError:
        position = token.position if token else len(self.text)
        return QueryParseError(self.text, reason, position=position)

    def peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def parse(self) -> QueryNode:
        node = self.sequence()
        token = self.peek()
        if token is not None:
            raise self.error("unbalanced ')'", token)
        return node

    def sequence(self) -> QueryNode:
        clauses: list[tuple[Occur, QueryNode]] = []
        while True:
            token = self.peek()
            if token is None or token.kind == "RPAREN":
                break
            if token.kind == "OR":
                if not clauses:
                    raise self.error("'OR' without a left operand", token)
                self.advance()
                nxt = self.peek()
                if nxt is None or nxt.kind in {"RPAREN", "OR", "AND"}:
                    raise self.error("'OR' without a right operand", token)
                continue
            if token.kind == "AND":
                raise self.error("'AND' without a left operand", token)
            clauses.append(self.group())

        if not clauses:
            token = self.peek()
            raise self.error("empty query" if token is None else "empty group", token)
        if len(clauses) == 1 and clauses[0][0] is Occur.SHOULD:
            return clauses[0][1]
        return BooleanQuery(tuple(clauses))

    def group(self) -> tuple[Occur, QueryNode]:
        first = self.unary()
        members = [first]
        while (token := self.peek()) is not None and token.kind == "AND":
            self.advance()
            nxt = self.peek()
            if nxt is None or nxt.kind in {"RPAREN", "OR", "AND"}:
                raise self.error("'AND' without a right operand", token)
            members.append(self.unary())

        if len(members) == 1:
            return first
        # Inside an AND chain every non-negated member is required
        required = tuple(
            (Occur.MUST_NOT if occur is Occur.MUST_NOT else Occur.MUST, node)
            for occur, node in members
        )
        return Occur.SHOULD, BooleanQuery(required)

    def unary(self) -> tuple[Occur, QueryNode]:
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of query")
        if token.kind in {"PLUS", "MINUS", "NOT"}:
            self.advance()
            if self.peek() is None:
                raise self.error(f"dangling '{token.value}' operator", token)
            occur, node = self.unary()
            if token.kind == "PLUS":
                return (Occur.MUST_NOT if occur is Occur.MUST_NOT else Occur.MUST), node
            if occur is Occur.MUST_NOT:
                return Occur.MUST, node
            return Occur.MUST_NOT, node
        return Occur.SHOULD, self.primary()

    def primary(self) -> QueryNode:
        token = self.advance()
        if token.kind == "LPAREN":
            node = self.sequence()
            closing = self.peek()
            if closing is None or closing.kind != "RPAREN":
                raise self.error("unbalanced '('", token)
            self.advance()
            return node
        if token.kind == "WORD":
            return self._word(token)
        if token.kind == "PHRASE":
            return self._phrase(token)
        if token.kind == "RANGE":
            return self._range(token)
        raise self.error(f"unexpected '{token.value}'", token)

    def _fields(self, token: _Token) -> tuple[str, ...]:
        return (token.field,) if token.field else DEFAULT_FIELDS

    def _word(self, token: _Token) -> QueryNode:
        if token.field == "id":
            return IdQuery(token.value)
        if token.field == "year":
            year = self._year(token.value, token)
            return YearRangeQuery(year, year)
        terms = tokenize(token.value)
        if not terms:
            return MatchNothing()
        if len(terms) == 1:
            return TermQuery(terms[0], self._fields(token))
        # "black-hole" analyzes to several tokens and is matched as a phrase
        return PhraseQuery(tuple(terms), self._fields(token))

    def _phrase(self, token: _Token) -> QueryNode:
        if token.field == "id":
            return IdQuery(token.value)
        if token.field == "year":
            year = self._year(token.value.strip(), token)
            return YearRangeQuery(year, year)
        terms = tokenize(token.value)
        if not terms:
            return MatchNothing()
        if len(terms) == 1:
            return TermQuery(terms[0], self._fields(token))
        return PhraseQuery(tuple(terms), self._fields(token))

    def _range(self, token: _Token) -> QueryNode:
        if token.field != "year":
            raise self.error(f"range queries are only supported on 'year', not '{token.field}'", token)
        match = _RANGE_PATTERN.match(token.value)
        if match is None:
            raise self.error(f"malformed range {token.value!r}", token)
        low, high = match.groups()
        return YearRangeQuery(
            None if low == "*" else self._year(low, token),
            None if high == "*" else self._year(high, token),
        )

    def _year(self, raw: str, token: _Token) -> int:
        try:
            return int(raw)
        except ValueError:
            raise self.error(f"year must be an integer, got {raw!r}", token) from None


def parse_query(text: str) -> QueryNode:
    """
    Parse ``text`` into a query tree.

    Raises:
        QueryParseError: for empty queries, unbalanced quotes or parentheses,
            dangling operators, unknown fields and malformed ranges.
    """
    if text is None or not text.strip():
        raise QueryParseError(text or "", "empty query")
    tokens = _Lexer(text).tokens()
    return _Parser(text, tokens).parse()
