import sys
from pathlib import Path

# Ensure we can import modules from src/ at collection time
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from groups import NumLit, Op, StrLit, SubExpr, Sym  # noqa: E402
from terms import Do, External, If, Let, Not, PipeCall, PipelineCondition, Ref, WaitPipeline  # noqa: E402


def words(*items):
    """Build a token list: operator strings become Op, ints NumLit,
    ('str', v) a StrLit, anything else that is not a str is embedded."""
    out = []
    for item in items:
        if isinstance(item, tuple) and item[0] == 'str':
            out.append(StrLit(item[1]))
        elif isinstance(item, int):
            out.append(NumLit(item))
        elif isinstance(item, str):
            try:
                out.append(Op(item))
            except ValueError:
                out.append(Sym(item))
        else:
            out.append(SubExpr(item))
    return out


class RecordingEvaluator:
    """Evaluates conditional terms, recording which commands ran.

    ``statuses`` maps external command names to success (True/False).
    """

    def __init__(self, statuses):
        self.statuses = statuses
        self.ran = []

    def eval(self, term, env=None):
        env = {} if env is None else env
        if isinstance(term, External):
            self.ran.append(term.name)
            return (term.name, self.statuses.get(term.name, True))
        if isinstance(term, PipeCall):
            self.eval(term.source, env)
            return self.eval(term.target, env)
        if isinstance(term, WaitPipeline):
            return self.eval(term.term, env)
        if isinstance(term, PipelineCondition):
            return self.eval(term.term, env)[1]
        if isinstance(term, Not):
            return not self.eval(term.term, env)
        if isinstance(term, Ref):
            return env[term.name]
        if isinstance(term, Let):
            inner = dict(env)
            inner[term.name] = self.eval(term.value, env)
            return self.eval(term.body, inner)
        if isinstance(term, If):
            if self.eval(term.test, env):
                return self.eval(term.then, env)
            return self.eval(term.orelse, env)
        if isinstance(term, Do):
            result = None
            for step in term.steps:
                result = self.eval(step, env)
            return result
        raise AssertionError(f"unexpected term: {term!r}")
