# module for command lowering

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Sequence

from groups import CommandGroup, NumLit, Redirect, StrLit, SubExpr, Sym, Token, stringify
from terms import (
    Append,
    Builtin,
    Do,
    ExpandRedirectTarget,
    External,
    FdAction,
    Form,
    FullExpand,
    If,
    In,
    Let,
    Out,
    PartialExpand,
    Rw,
    Set,
)

log = logging.getLogger(__name__)


class LoweringError(ValueError):
    """A parsed group cannot be turned into a command term."""


builtin_commands = frozenset({"cd", "exit", "quit"})

# Sub-expressions headed by this name are command names, not embedded terms
COMMAND_HELPER = "cmd-helper"

EXTERNAL_WRAPPER = "sh"
CONTROL_FORMS = frozenset({
    "do", "if", "if-not", "when", "when-not", "cond", "case", "let", "loop",
    "recur", "for", "doseq", "dotimes", "while", "try", "throw", "and", "or",
})
DEFINITION_FORMS = frozenset({"fn", "defn", "defmacro", "def", "letfn"})
SPECIAL_FORMS = CONTROL_FORMS | DEFINITION_FORMS | {EXTERNAL_WRAPPER}


def is_special(term: Any) -> bool:
    """Whether ``term`` is invoked as-is at the end of a pipe.

    Anything else gets its last argument left open for the piped value.
    """
    if isinstance(term, (External, Do, Let, If)):
        return True
    return isinstance(term, Form) and term.head in SPECIAL_FORMS


def lower_arg(tok: Token) -> Any:
    if isinstance(tok, SubExpr):
        return tok.term
    if isinstance(tok, StrLit):
        return PartialExpand(tok.value)
    return FullExpand(stringify(tok))


def _redirect_target(tok: Token) -> Any:
    if isinstance(tok, SubExpr):
        return tok.term
    if isinstance(tok, NumLit):
        return tok.value
    return ExpandRedirectTarget(stringify(tok))


def _or(fd, default: int) -> int:
    return default if fd is None else fd


def lower_redirect(redirect: Redirect) -> List[FdAction]:
    """Desugar one redirection into the fd actions it stands for."""
    fd = redirect.fd
    target = _redirect_target(redirect.target)
    match redirect.op:
        case ">":
            return [Out(_or(fd, 1), target)]
        case "<":
            return [In(_or(fd, 0), target)]
        case ">>":
            return [Append(_or(fd, 1), target)]
        case "&>":
            return [Out(1, target), Set(2, 1)]
        case "&>>":
            return [Append(1, target), Set(2, 1)]
        case "<>":
            return [Rw(_or(fd, 0), target)]
        case ">&":
            return [Set(_or(fd, 1), target)]
    raise LoweringError(f"unknown redirection operator: {redirect.op!r}")


def _is_embedded(tok: Any) -> bool:
    if not isinstance(tok, SubExpr):
        return False
    term = tok.term
    return not (isinstance(term, Form) and term.head == COMMAND_HELPER)


def lower_command(cmd: CommandGroup, redirects: Sequence[FdAction] = ()) -> Any:
    """Lower one command.

    ``redirects`` are extra fd actions placed before the command's own,
    used by pipeline lowering for the default stdio wiring. They only
    apply to external commands.
    """
    items = cmd.items
    if not items:
        raise LoweringError("empty command")
    first = items[0]
    if _is_embedded(first):
        rest = [item for item in items[1:] if not isinstance(item, Redirect)]
        if not rest:
            return first.term
        return Do((first.term,) + tuple(lower_arg(a) for a in rest))

    args = cmd.args
    if not args:
        raise LoweringError("command has redirections but no command name")
    name, params = args[0], args[1:]
    lowered_args = tuple(lower_arg(a) for a in params)
    if isinstance(name, Sym) and name.name in builtin_commands:
        log.debug("builtin %s with %d arg(s)", name.name, len(lowered_args))
        return Builtin(name.name, lowered_args)

    actions = list(redirects) + flatten_redirects(cmd.redirects)
    return External(
        name=name.term if isinstance(name, SubExpr) else stringify(name),
        args=lowered_args,
        redirects=tuple(actions) if actions else None,
    )


def flatten_redirects(redirects: Iterable[Redirect]) -> List[FdAction]:
    actions: List[FdAction] = []
    for r in redirects:
        actions.extend(lower_redirect(r))
    return actions
