from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from command import LoweringError, is_special, lower_command
from grammar import parse
from groups import CLAUSE_OPS, ClauseGroup, CommandGroup, ListGroup, PipelineGroup, Token
from reader import read_tokens
from terms import (
    FdAction,
    If,
    Let,
    Not,
    Partial,
    PipeCall,
    PipelineCondition,
    Ref,
    Set,
    Stream,
    WaitPipeline,
)

log = logging.getLogger(__name__)


class Mode(str, Enum):
    """How pipelines are wired.

    INTERACTIVE pipelines read from and write to the terminal by default.
    BATCH pipelines get no implicit stdio so their result stays composable.
    """
    INTERACTIVE = "interactive"
    BATCH = "batch"


PIPE_COMBINATORS: Dict[str, str] = {
    "|": "pipe",
    "|>": "pipe-multi",
    "|?": "pipe-filter",
    "|&": "pipe-reduce",
}

# Operators whose non-special targets are partially applied
PARTIAL_PIPE_OPS = frozenset({"|", "|>"})

RESULT_NAME = "__pipeline_result_{}"


# ---- Pipelines ----

def _compose(op: Optional[str], source: Any, target: Any) -> PipeCall:
    combinator = PIPE_COMBINATORS.get(op)  # type: ignore[arg-type]
    if combinator is None:
        raise LoweringError(f"unknown pipe operator: {op!r}")
    if op in PARTIAL_PIPE_OPS and not is_special(target):
        log.debug("partially applying %r after %r", target, op)
        target = Partial(target)
    return PipeCall(combinator, source, target)


def _fold(
    commands: Sequence[Tuple[Optional[str], CommandGroup]],
    first_redirects: Sequence[FdAction],
    last_redirects: Sequence[FdAction],
) -> Any:
    _, first = commands[0]
    result = lower_command(first, first_redirects)
    rest = commands[1:]
    for idx, (op, cmd) in enumerate(rest):
        redirects = last_redirects if idx == len(rest) - 1 else ()
        result = _compose(op, result, lower_command(cmd, redirects))
    return result


def _lower_pipeline_interactive(p: PipelineGroup) -> Any:
    total = len(p.commands)
    # Only a pipeline with interior stages hands the first stage's output to a pipe
    first_out = Stream.PIPE if total > 2 else Stream.STDOUT
    first = [Set(0, Stream.STDIN), Set(1, first_out), Set(2, Stream.STDERR)]
    last: List[FdAction] = []
    if total > 1:
        last = [Set(0, Stream.PIPE), Set(1, Stream.STDOUT), Set(2, Stream.STDERR)]
    return _fold(p.commands, first, last)


def _lower_pipeline_batch(p: PipelineGroup) -> Any:
    return _fold(p.commands, (), ())


def lower_pipeline(p: PipelineGroup, mode: Mode) -> Any:
    if not p.commands:
        raise LoweringError("empty pipeline")
    if mode == Mode.INTERACTIVE:
        return _lower_pipeline_interactive(p)
    if mode == Mode.BATCH:
        return _lower_pipeline_batch(p)
    raise LoweringError(f"unknown pipeline mode: {mode!r}")


# ---- Conditional clauses ----

def _continue_test(op: str, negated: bool, name: str) -> Any:
    if op not in CLAUSE_OPS:
        raise LoweringError(f"unknown clause operator: {op!r}")
    test: Any = PipelineCondition(Ref(name))
    # && continues on success and || on failure; "!" swaps the two
    if (op == "||") != negated:
        test = Not(test)
    return test


def lower_clause(clause: ClauseGroup, mode: Mode) -> Any:
    """Lower ``p0 op1 p1 op2 p2 ...`` into right-nested conditionals.

    Each pipeline but the last is waited on and bound; the rest of the
    clause runs only when the operator that follows it says so, otherwise
    the bound result is the value of the whole clause.
    """
    pipelines = [p for _, p in clause.pipelines]
    if not pipelines:
        raise LoweringError("empty clause")
    ops = [op for op, _ in clause.pipelines[1:]]
    result = lower_pipeline(pipelines[-1], mode)
    for idx in range(len(pipelines) - 2, -1, -1):
        pipeline = pipelines[idx]
        name = RESULT_NAME.format(idx)
        result = Let(
            name,
            WaitPipeline(lower_pipeline(pipeline, mode)),
            If(_continue_test(ops[idx], pipeline.negated, name), result, Ref(name)),
        )
    return result


# ---- Command lists ----

def lower_command_list(command_list: ListGroup, mode: Mode) -> Any:
    """Lower the first clause of a command list.

    Clauses after an ``&`` separator are parsed but not lowered; running
    them needs job control, which this pass does not model.
    """
    if not command_list.clauses:
        raise LoweringError("empty command list")
    if len(command_list.clauses) > 1:
        log.debug("ignoring %d clause(s) after '&'", len(command_list.clauses) - 1)
    _, first = command_list.clauses[0]
    return lower_clause(first, mode)


def lower_tokens(tokens: Sequence[Token], mode: Mode = Mode.INTERACTIVE) -> Any:
    """Parse a token sequence and lower it in the given mode."""
    mode = Mode(mode)
    log.debug("lowering %d token(s) in %s mode", len(tokens), mode.value)
    return lower_command_list(parse(tokens), mode)


def lower_line(line: str, mode: Mode = Mode.INTERACTIVE) -> Any:
    """Read, parse and lower a line of text."""
    return lower_tokens(read_tokens(line), mode)
