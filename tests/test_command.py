"""Tests for argument, redirection and command lowering."""

import pytest

from command import (
    COMMAND_HELPER,
    LoweringError,
    builtin_commands,
    is_special,
    lower_arg,
    lower_command,
    lower_redirect,
)
from groups import CommandGroup, NumLit, Redirect, StrLit, SubExpr, Sym
from terms import (
    Append,
    Builtin,
    Do,
    ExpandRedirectTarget,
    External,
    Form,
    FullExpand,
    If,
    In,
    Let,
    Out,
    PartialExpand,
    Ref,
    Rw,
    Set,
    Stream,
)


class TestLowerArg:
    """Test expansion mode selection."""

    def test_string_literal_gets_partial_expansion(self):
        assert lower_arg(StrLit("$HOME/x")) == PartialExpand("$HOME/x")

    def test_symbol_gets_full_expansion(self):
        assert lower_arg(Sym("*.txt")) == FullExpand("*.txt")

    def test_number_is_stringified(self):
        assert lower_arg(NumLit(10)) == FullExpand("10")

    def test_subexpression_passes_through(self):
        form = Form("upper", ("x",))
        assert lower_arg(SubExpr(form)) is form


class TestLowerRedirect:
    """Test redirection desugaring."""

    @pytest.mark.parametrize("op,expected", [
        (">", [Out(1, ExpandRedirectTarget("f"))]),
        ("<", [In(0, ExpandRedirectTarget("f"))]),
        (">>", [Append(1, ExpandRedirectTarget("f"))]),
        ("&>", [Out(1, ExpandRedirectTarget("f")), Set(2, 1)]),
        ("&>>", [Append(1, ExpandRedirectTarget("f")), Set(2, 1)]),
        ("<>", [Rw(0, ExpandRedirectTarget("f"))]),
        (">&", [Set(1, ExpandRedirectTarget("f"))]),
    ])
    def test_default_fds(self, op, expected):
        assert lower_redirect(Redirect(op, Sym("f"))) == expected

    def test_explicit_fd(self):
        assert lower_redirect(Redirect(">", Sym("err.log"), fd=2)) == [Out(2, ExpandRedirectTarget("err.log"))]
        assert lower_redirect(Redirect("<", Sym("in"), fd=3)) == [In(3, ExpandRedirectTarget("in"))]

    def test_dup_stderr_to_stdout(self):
        assert lower_redirect(Redirect(">&", NumLit(1), fd=2)) == [Set(2, 1)]

    def test_combined_redirects_ignore_fd(self):
        """&> and &>> always write fd 1 and point fd 2 at it."""
        actions = lower_redirect(Redirect("&>", Sym("all.log"), fd=5))
        assert actions == [Out(1, ExpandRedirectTarget("all.log")), Set(2, 1)]

    def test_string_target_is_expanded(self):
        assert lower_redirect(Redirect(">", StrLit("my file"))) == [Out(1, ExpandRedirectTarget("my file"))]

    def test_subexpression_target_used_as_is(self):
        form = Form("tmpfile")
        assert lower_redirect(Redirect(">", SubExpr(form))) == [Out(1, form)]

    def test_pure(self):
        r = Redirect("&>>", Sym("x"), fd=None)
        assert lower_redirect(r) == lower_redirect(r)

    def test_unknown_operator(self):
        with pytest.raises(LoweringError):
            lower_redirect(Redirect(">|", Sym("x")))


class TestLowerCommand:
    """Test command shapes."""

    def test_external_with_redirect(self):
        cmd = CommandGroup([Sym("echo"), StrLit("hi"), Redirect(">", Sym("out.txt"))])
        assert lower_command(cmd) == External(
            name="echo",
            args=(PartialExpand("hi"),),
            redirects=(Out(1, ExpandRedirectTarget("out.txt")),),
        )

    def test_no_redirects_field_when_empty(self):
        term = lower_command(CommandGroup([Sym("ls"), Sym("-l")]))
        assert term == External("ls", (FullExpand("-l"),))
        assert term.redirects is None

    def test_redirects_flattened_in_order(self):
        cmd = CommandGroup([
            Redirect("<", Sym("in")), Sym("sort"), Redirect("&>", Sym("out")), Sym("-r"),
        ])
        term = lower_command(cmd)
        assert term.name == "sort"
        assert term.args == (FullExpand("-r"),)
        assert term.redirects == (
            In(0, ExpandRedirectTarget("in")),
            Out(1, ExpandRedirectTarget("out")),
            Set(2, 1),
        )

    def test_extra_redirects_come_first(self):
        cmd = CommandGroup([Sym("cat"), Redirect(">", Sym("f"))])
        term = lower_command(cmd, [Set(0, Stream.STDIN)])
        assert term.redirects == (Set(0, Stream.STDIN), Out(1, ExpandRedirectTarget("f")))

    def test_builtins(self):
        assert builtin_commands == {"cd", "exit", "quit"}
        term = lower_command(CommandGroup([Sym("cd"), Sym("/tmp"), Redirect(">", Sym("x"))]))
        assert term == Builtin("cd", (FullExpand("/tmp"),))

    def test_builtin_ignores_extra_redirects(self):
        term = lower_command(CommandGroup([Sym("exit"), NumLit(1)]), [Set(1, Stream.STDOUT)])
        assert term == Builtin("exit", (FullExpand("1"),))

    def test_quoted_builtin_name_is_external(self):
        assert lower_command(CommandGroup([StrLit("cd")])) == External("cd")

    def test_lone_subexpression_passes_through(self):
        form = Form("println", ("hello",))
        assert lower_command(CommandGroup([SubExpr(form)])) is form

    def test_subexpression_with_args_is_sequenced(self):
        form = Form("reset!")
        cmd = CommandGroup([SubExpr(form), Sym("a"), Redirect(">", Sym("x")), StrLit("b")])
        assert lower_command(cmd) == Do((form, FullExpand("a"), PartialExpand("b")))

    def test_command_helper_is_a_command_name(self):
        """The helper term itself names the command for the evaluator."""
        helper = Form(COMMAND_HELPER, ("ls",))
        term = lower_command(CommandGroup([SubExpr(helper), Sym("-a")]))
        assert isinstance(term, External)
        assert term.name is helper
        assert term.args == (FullExpand("-a"),)

    def test_redirects_only(self):
        with pytest.raises(LoweringError):
            lower_command(CommandGroup([Redirect(">", Sym("f"))]))

    def test_empty(self):
        with pytest.raises(LoweringError):
            lower_command(CommandGroup([]))


class TestIsSpecial:
    """Test the closed set of special forms."""

    def test_external_is_special(self):
        assert is_special(External("ls"))

    def test_control_and_definition_forms(self):
        for head in ("if", "do", "let", "fn", "defn", "sh"):
            assert is_special(Form(head))
        assert is_special(Do((Form("a"),)))
        assert is_special(Let("x", Form("a"), Ref("x")))
        assert is_special(If(Form("t"), Form("a"), Form("b")))

    def test_plain_calls_are_not_special(self):
        assert not is_special(Form("upper"))
        assert not is_special(Builtin("cd"))
        assert not is_special(FullExpand("x"))
