"""Lowered command terms.

The lowering pass produces a tree of these tagged records instead of
source code. An evaluator outside this project interprets them:

- FdAction values (Out, In, Append, Rw, Set) describe fd wiring.
- Expansion values ask the expander to resolve an argument.
- Builtin / External are command invocations; Form is any other call.
- PipeCall, Partial, Do, Let, If, Not, Ref, WaitPipeline and
  PipelineCondition describe composition and control flow.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Tuple


class Stream(str, Enum):
    """Stream endpoints used by the default pipeline wiring."""
    STDIN = "stdin"
    STDOUT = "stdout"
    STDERR = "stderr"
    PIPE = "pipe"


# --- fd actions ---

@dataclass(frozen=True)
class FdAction:
    fd: int
    target: Any
    kind: ClassVar[str] = "fd-action"


@dataclass(frozen=True)
class Out(FdAction):
    kind: ClassVar[str] = "out"


@dataclass(frozen=True)
class In(FdAction):
    kind: ClassVar[str] = "in"


@dataclass(frozen=True)
class Append(FdAction):
    kind: ClassVar[str] = "append"


@dataclass(frozen=True)
class Rw(FdAction):
    kind: ClassVar[str] = "rw"


@dataclass(frozen=True)
class Set(FdAction):
    """Point ``fd`` at another fd or at a stream endpoint."""
    kind: ClassVar[str] = "set"


# --- expansion calls ---

@dataclass(frozen=True)
class Expansion:
    value: str
    kind: ClassVar[str] = "expansion"


@dataclass(frozen=True)
class FullExpand(Expansion):
    """Globbing, word splitting and interpolation."""
    kind: ClassVar[str] = "full-expand"


@dataclass(frozen=True)
class PartialExpand(Expansion):
    """Interpolation only."""
    kind: ClassVar[str] = "partial-expand"


@dataclass(frozen=True)
class ExpandRedirectTarget(Expansion):
    kind: ClassVar[str] = "expand-redirect-target"


# --- invocations ---

@dataclass(frozen=True)
class Builtin:
    name: str
    args: Tuple[Any, ...] = ()
    kind: ClassVar[str] = "builtin"


@dataclass(frozen=True)
class External:
    # A sub-expression term when the name is computed
    name: Any
    args: Tuple[Any, ...] = ()
    # None when the command has no redirections
    redirects: Optional[Tuple[FdAction, ...]] = None
    kind: ClassVar[str] = "external"


@dataclass(frozen=True)
class Form:
    """A host-language call such as ``(upper s)``."""
    head: str
    args: Tuple[Any, ...] = ()
    kind: ClassVar[str] = "form"

    def __str__(self) -> str:
        parts = [self.head] + [str(a) for a in self.args]
        return "(" + " ".join(parts) + ")"


# --- composition ---

@dataclass(frozen=True)
class Do:
    """Evaluate each step in order; the value is the last step's."""
    steps: Tuple[Any, ...]
    kind: ClassVar[str] = "do"


@dataclass(frozen=True)
class Partial:
    """Defer ``term`` so the piped value fills its last argument."""
    term: Any
    kind: ClassVar[str] = "partial"


@dataclass(frozen=True)
class PipeCall:
    combinator: str
    source: Any
    target: Any
    kind: ClassVar[str] = "pipe-call"


@dataclass(frozen=True)
class WaitPipeline:
    term: Any
    kind: ClassVar[str] = "wait-pipeline"


@dataclass(frozen=True)
class PipelineCondition:
    term: Any
    kind: ClassVar[str] = "pipeline-condition"


@dataclass(frozen=True)
class Not:
    term: Any
    kind: ClassVar[str] = "not"


@dataclass(frozen=True)
class Ref:
    name: str
    kind: ClassVar[str] = "ref"


@dataclass(frozen=True)
class Let:
    name: str
    value: Any
    body: Any
    kind: ClassVar[str] = "let"


@dataclass(frozen=True)
class If:
    test: Any
    then: Any
    orelse: Any
    kind: ClassVar[str] = "if"


def to_data(term: Any) -> Any:
    """Convert a lowered term into JSON-compatible dicts and lists."""
    if isinstance(term, Enum):
        return term.value
    if isinstance(term, (list, tuple)):
        return [to_data(t) for t in term]
    if dataclasses.is_dataclass(term) and not isinstance(term, type):
        data = {"type": getattr(term, "kind", type(term).__name__.lower())}
        for f in dataclasses.fields(term):
            value = getattr(term, f.name)
            if value is None:
                continue
            data[f.name] = to_data(value)
        return data
    return term
