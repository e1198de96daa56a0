"""Turn a line of text into the token stream consumed by the grammar.

Quoting rules (simplified):
- Fully quoted words ('...' or "...") become string literals.
- Unquoted ASCII digit words without leading zeros become numbers; other
  words become symbols, so 007 and 0644 keep their text.
- Backslash escapes the next character outside single quotes.
- Unquoted runs of | & < > are split into the longest known operators.
- ( head arg ... ) becomes an embedded Form. Nested groups become nested
  Forms; quoted text inside a group is one plain string argument.
"""
from __future__ import annotations

from typing import List

from groups import OPERATORS, NumLit, Op, StrLit, SubExpr, Sym, Token
from terms import Form

OPERATOR_CHARS = frozenset("|&<>")
_LONGEST_FIRST = sorted(OPERATORS, key=len, reverse=True)


class ReaderError(ValueError):
    """The line cannot be split into tokens."""


def _match_operator(line: str, i: int) -> str:
    for op in _LONGEST_FIRST:
        if line.startswith(op, i):
            return op
    raise ReaderError(f"unknown operator at column {i}: {line[i]!r}")


def _is_plain_number(val: str) -> bool:
    # Only words that survive int() -> str() unchanged
    return val.isascii() and val.isdigit() and str(int(val)) == val


def _read_form(line: str, i: int) -> tuple[Form, int]:
    # line[i] is '('
    start = i
    items: list = []
    i += 1
    while True:
        if i >= len(line):
            raise ReaderError(f"unterminated sub-expression starting at column {start}")
        ch = line[i]
        if ch.isspace():
            i += 1
        elif ch == ')':
            i += 1
            break
        elif ch == '(':
            form, i = _read_form(line, i)
            items.append(form)
        elif ch in ('"', "'"):
            end = line.find(ch, i + 1)
            if end < 0:
                raise ReaderError("unterminated quote")
            items.append(line[i + 1:end])
            i = end + 1
        else:
            j = i
            while j < len(line) and not line[j].isspace() and line[j] not in '()\'"':
                j += 1
            items.append(line[i:j])
            i = j
    if not items:
        raise ReaderError(f"empty sub-expression at column {start}")
    if not isinstance(items[0], str):
        raise ReaderError(f"sub-expression at column {start} must start with a name")
    return Form(items[0], tuple(items[1:])), i


def read_tokens(line: str) -> List[Token]:
    tokens: List[Token] = []
    buf: List[str] = []
    i = 0
    n = len(line)
    in_single = False
    in_double = False
    # Track how the current word was written
    seen_quoted = False
    seen_unquoted = False

    def flush_buf() -> None:
        nonlocal seen_quoted, seen_unquoted
        if buf or seen_quoted:
            val = ''.join(buf)
            if seen_quoted and not seen_unquoted:
                tokens.append(StrLit(val))
            elif _is_plain_number(val):
                tokens.append(NumLit(int(val)))
            else:
                tokens.append(Sym(val))
            buf.clear()
        seen_quoted = seen_unquoted = False

    while i < n:
        ch = line[i]
        if ch == "'" and not in_double:
            in_single = not in_single
            seen_quoted = True
            i += 1
            continue
        if ch == '"' and not in_single:
            in_double = not in_double
            seen_quoted = True
            i += 1
            continue
        quoted = in_single or in_double
        if ch == '\\' and not in_single and i + 1 < n:
            buf.append(line[i + 1])
            if quoted:
                seen_quoted = True
            else:
                seen_unquoted = True
            i += 2
            continue
        if not quoted:
            if ch.isspace():
                flush_buf()
                i += 1
                continue
            if ch in OPERATOR_CHARS:
                flush_buf()
                op = _match_operator(line, i)
                tokens.append(Op(op))
                i += len(op)
                continue
            if ch == '(' and not buf and not seen_quoted:
                form, i = _read_form(line, i)
                tokens.append(SubExpr(form))
                continue
        buf.append(ch)
        if quoted:
            seen_quoted = True
        else:
            seen_unquoted = True
        i += 1

    if in_single or in_double:
        raise ReaderError("unterminated quote")
    flush_buf()
    return tokens
