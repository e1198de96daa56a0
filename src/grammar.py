"""Recognizer for the command grammar.

    CommandList   := CommandClause (SepOp CommandClause)*
    CommandClause := Pipeline (ClauseOp Pipeline)*
    Pipeline      := "!"? Command (PipeOp Command)*
    Command       := (Redirect | Arg)+
    Redirect      := Number? RedirectOp Arg
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from groups import (
    ARG,
    CLAUSE,
    NEGATION,
    PIPE,
    REDIRECT,
    SEP,
    ClauseGroup,
    CommandGroup,
    ListGroup,
    PipelineGroup,
    Redirect,
    Sym,
    Token,
    classify,
    is_fd_number,
    stringify,
)

log = logging.getLogger(__name__)


class GrammarError(ValueError):
    """The token sequence does not match the command grammar."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        # Index of the offending token; None means end of input
        self.position = position

    def __str__(self) -> str:
        where = "end of input" if self.position is None else f"token {self.position}"
        return f"{self.message} (at {where})"


def _describe(tokens: Sequence[Token], i: int) -> str:
    if i >= len(tokens):
        return "end of input"
    return repr(stringify(tokens[i]))


def _position(tokens: Sequence[Token], i: int) -> Optional[int]:
    return i if i < len(tokens) else None


def _category(tokens: Sequence[Token], i: int) -> Optional[str]:
    if i >= len(tokens):
        return None
    return classify(tokens[i])


def _starts_redirect(tokens: Sequence[Token], i: int) -> bool:
    if _category(tokens, i) == REDIRECT:
        return True
    return is_fd_number(tokens[i]) and _category(tokens, i + 1) == REDIRECT


def _starts_command(tokens: Sequence[Token], i: int) -> bool:
    return i < len(tokens) and (_category(tokens, i) == ARG or _starts_redirect(tokens, i))


def _parse_redirect(tokens: Sequence[Token], i: int) -> Tuple[Redirect, int]:
    fd: Optional[int] = None
    if is_fd_number(tokens[i]):
        fd = tokens[i].value  # type: ignore[union-attr]
        i += 1
    op = stringify(tokens[i])
    i += 1
    if _category(tokens, i) != ARG:
        raise GrammarError(
            f"redirection {op!r} requires a target, found {_describe(tokens, i)}",
            _position(tokens, i),
        )
    return Redirect(op=op, target=tokens[i], fd=fd), i + 1


def _parse_command(tokens: Sequence[Token], i: int) -> Tuple[CommandGroup, int]:
    items: List = []
    while i < len(tokens):
        if _starts_redirect(tokens, i):
            redirect, i = _parse_redirect(tokens, i)
            items.append(redirect)
        elif classify(tokens[i]) == ARG:
            items.append(tokens[i])
            i += 1
        else:
            break
    if not items:
        raise GrammarError(f"expected a command, found {_describe(tokens, i)}", _position(tokens, i))
    return CommandGroup(items), i


def _parse_pipeline(tokens: Sequence[Token], i: int) -> Tuple[PipelineGroup, int]:
    negated = False
    # A lone "!" is an ordinary command name
    if tokens[i] == Sym(NEGATION) and _starts_command(tokens, i + 1):
        negated = True
        i += 1
    cmd, i = _parse_command(tokens, i)
    commands: List[Tuple[Optional[str], CommandGroup]] = [(None, cmd)]
    while _category(tokens, i) == PIPE:
        op = stringify(tokens[i])
        cmd, i = _parse_command(tokens, i + 1)
        commands.append((op, cmd))
    return PipelineGroup(commands, negated=negated), i


def _parse_clause(tokens: Sequence[Token], i: int) -> Tuple[ClauseGroup, int]:
    pipeline, i = _parse_pipeline(tokens, i)
    pipelines: List[Tuple[Optional[str], PipelineGroup]] = [(None, pipeline)]
    while _category(tokens, i) == CLAUSE:
        op = stringify(tokens[i])
        if i + 1 >= len(tokens):
            raise GrammarError(f"missing pipeline after {op!r}")
        pipeline, i = _parse_pipeline(tokens, i + 1)
        pipelines.append((op, pipeline))
    return ClauseGroup(pipelines), i


def parse(tokens: Sequence[Token]) -> ListGroup:
    """Recognize a flat token sequence as a command list.

    Raises GrammarError when the sequence does not conform.
    """
    tokens = list(tokens)
    if not tokens:
        raise GrammarError("empty command line")
    clause, i = _parse_clause(tokens, 0)
    clauses: List[Tuple[Optional[str], ClauseGroup]] = [(None, clause)]
    while _category(tokens, i) == SEP:
        op = stringify(tokens[i])
        if i + 1 >= len(tokens):
            raise GrammarError(f"missing command after {op!r}")
        clause, i = _parse_clause(tokens, i + 1)
        clauses.append((op, clause))
    if i < len(tokens):
        raise GrammarError(f"unexpected {_describe(tokens, i)}", i)
    log.debug("parsed %d clause(s) from %d token(s)", len(clauses), len(tokens))
    return ListGroup(clauses)
