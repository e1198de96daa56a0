"""Token model and grouping structures for cmdlower.

This module defines the tokens handed over by an upstream reader, the
fixed operator alphabet used to classify them, and the nested groups
(commands, pipelines, clauses, command lists) that the grammar builds
out of a token sequence.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

# Operator alphabet, split into four disjoint categories
REDIRECT_OPS = frozenset({">", "<", ">>", "&>", "&>>", "<>", ">&"})
PIPE_OPS = frozenset({"|", "|>", "|?", "|&"})
CLAUSE_OPS = frozenset({"&&", "||"})
SEP_OPS = frozenset({"&"})
OPERATORS = REDIRECT_OPS | PIPE_OPS | CLAUSE_OPS | SEP_OPS

NEGATION = "!"

# Token categories returned by classify()
REDIRECT = "redirect"
PIPE = "pipe"
CLAUSE = "clause"
SEP = "sep"
ARG = "arg"

_CATEGORIES = (
    (REDIRECT_OPS, REDIRECT),
    (PIPE_OPS, PIPE),
    (CLAUSE_OPS, CLAUSE),
    (SEP_OPS, SEP),
)


# --- Tokens ---

@dataclass(frozen=True)
class Op:
    """An operator symbol, e.g. ``|`` or ``&&``."""
    symbol: str

    def __post_init__(self) -> None:
        if self.symbol not in OPERATORS:
            raise ValueError(f"unknown operator: {self.symbol!r}")


@dataclass(frozen=True)
class Sym:
    """A bare word (command name, flag, glob pattern...)."""
    name: str


@dataclass(frozen=True)
class StrLit:
    """A quoted string literal."""
    value: str


@dataclass(frozen=True)
class NumLit:
    value: int | float


@dataclass(frozen=True)
class SubExpr:
    """An embedded, already-lowered term."""
    term: Any


Token = Union[Op, Sym, StrLit, NumLit, SubExpr]


def token_text(tok: Token) -> Optional[str]:
    """Return the lexical text used for operator matching, if any."""
    if isinstance(tok, Op):
        return tok.symbol
    if isinstance(tok, Sym):
        return tok.name
    if isinstance(tok, StrLit):
        return tok.value
    return None


def classify(tok: Token) -> str:
    """Classify a token as exactly one of the operator categories or ARG.

    Operator membership is checked first, so a word spelled like an
    operator can never be an argument.
    """
    text = token_text(tok)
    if text is not None:
        for members, category in _CATEGORIES:
            if text in members:
                return category
    return ARG


def is_arg(tok: Token) -> bool:
    return classify(tok) == ARG


def is_fd_number(tok: Token) -> bool:
    return isinstance(tok, NumLit) and isinstance(tok.value, int) and not isinstance(tok.value, bool)


def stringify(tok: Token) -> str:
    if isinstance(tok, SubExpr):
        return str(tok.term)
    if isinstance(tok, NumLit):
        return str(tok.value)
    text = token_text(tok)
    return text if text is not None else str(tok)


# --- Groups ---

@dataclass
class Redirect:
    """``[fd] op target`` as written on the command line."""
    op: str
    target: Token
    fd: Optional[int] = None


@dataclass
class CommandGroup:
    """A simple command: redirections and args in source order."""
    items: list[Union[Redirect, Token]]

    @property
    def redirects(self) -> list[Redirect]:
        return [item for item in self.items if isinstance(item, Redirect)]

    @property
    def args(self) -> list[Token]:
        return [item for item in self.items if not isinstance(item, Redirect)]


@dataclass
class PipelineGroup:
    """Commands joined by pipe operators; the first has no operator."""
    commands: list[tuple[Optional[str], CommandGroup]]
    negated: bool = False


@dataclass
class ClauseGroup:
    """Pipelines joined by ``&&``/``||``; the first has no operator."""
    pipelines: list[tuple[Optional[str], PipelineGroup]]


@dataclass
class ListGroup:
    """Clauses separated by ``&``; the first has no operator."""
    clauses: list[tuple[Optional[str], ClauseGroup]] = field(default_factory=list)


Group = Union[CommandGroup, PipelineGroup, ClauseGroup, ListGroup]


# --- Formatting (debug / test aid) ---

def _format_item(item: Union[Redirect, Token]) -> str:
    if isinstance(item, Redirect):
        fd = "" if item.fd is None else str(item.fd)
        return f"{fd}{item.op} {_format_item(item.target)}"
    if isinstance(item, StrLit):
        return repr(item.value)
    return stringify(item)


def _format_lines(group: Group, indent: str) -> list[str]:
    if isinstance(group, CommandGroup):
        return [indent + "CMD  " + " ".join(_format_item(i) for i in group.items)]
    if isinstance(group, PipelineGroup):
        children = group.commands
        head = "PIPE !" if group.negated else "PIPE"
    elif isinstance(group, ClauseGroup):
        children = group.pipelines
        head = "CLAUSE"
    else:
        children = group.clauses
        head = "LIST"
    lines = [indent + head]
    for op, child in children:
        if op is not None:
            lines.append(indent + "  OP   " + op)
        lines.extend(_format_lines(child, indent + "  "))
    return lines


def format_groups(groups: Union[Group, Iterable[Group]]) -> str:
    if isinstance(groups, (CommandGroup, PipelineGroup, ClauseGroup, ListGroup)):
        groups = [groups]
    lines: list[str] = []
    for g in groups:
        lines.extend(_format_lines(g, ""))
    return "\n".join(lines) if lines else "<empty>"
