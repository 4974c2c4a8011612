"""Tests for the PlanOut parser."""

from __future__ import annotations

import pytest

from planoutc.ast_nodes import (
    AlwaysTrue,
    And,
    ArrayLit,
    Assign,
    Branch,
    Case,
    Coalesce,
    Cond,
    Div,
    Equals,
    Gt,
    Gte,
    Index,
    Literal,
    Lt,
    Lte,
    Mod,
    NamedArgs,
    Negate,
    Not,
    OperatorCall,
    Or,
    PositionalArgs,
    Product,
    Return,
    Sequence,
    Sum,
    Switch,
    VarRef,
)
from planoutc.errors import CompileError, LexError, ParseError
from planoutc.lexer import Lexer
from planoutc.parser import Parser, parse
from planoutc.tokens import TokenKind


def parse_script(source: str) -> Sequence:
    """Helper: lex and parse source, return the root Sequence."""
    tokens = Lexer(source, "test.planout").lex()
    return Parser(tokens, "test.planout").parse()


def parse_stmt(source: str):
    """Helper: parse and return the only statement."""
    script = parse_script(source)
    assert len(script.statements) == 1
    return script.statements[0]


def parse_expr(source: str):
    """Helper: parse ``x = <source>;`` and return the assigned value."""
    stmt = parse_stmt(f"x = {source};")
    assert isinstance(stmt, Assign)
    return stmt.value


def var(name: str) -> VarRef:
    return VarRef(name)


def lit(value: object) -> Literal:
    return Literal(value)


class TestParserScenarios:
    def test_simple_assignment(self):
        assert parse_script("x = 5;") == Sequence([Assign("x", lit(5))])

    def test_array_then_index(self):
        script = parse_script("a = [1,2,3]; b = a[1];")
        assert script.statements == [
            Assign("a", ArrayLit([lit(1), lit(2), lit(3)])),
            Assign("b", Index(var("a"), lit(1))),
        ]

    def test_named_operator_call(self):
        stmt = parse_stmt("y = uniformChoice(choices=[1,2], unit=userid);")
        assert stmt == Assign("y", OperatorCall(
            "uniformChoice",
            NamedArgs({"choices": ArrayLit([lit(1), lit(2)]), "unit": var("userid")}),
        ))

    def test_switch_with_case_keyword(self):
        stmt = parse_stmt("switch { case true: 1 case false: 2 }")
        assert stmt == Switch([
            Case(lit(True), lit(1)),
            Case(lit(False), lit(2)),
        ])

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc_info:
            parse('x = "abc;')
        assert exc_info.value.line == 1

    def test_top_level_return(self):
        assert parse_script("return x + 1;") == Sequence([
            Return(Sum([var("x"), lit(1)])),
        ])


class TestParserStatements:
    def test_empty_script(self):
        assert parse_script("") == Sequence([])

    def test_comment_only_script(self):
        assert parse_script("# nothing\n") == Sequence([])

    def test_statement_order(self):
        script = parse_script("a = 1; b = a; a = 2;")
        assert [s.name for s in script.statements] == ["a", "b", "a"]

    def test_arrow_assign_same_as_assign(self):
        assert parse_script("x <- 1;") == parse_script("x = 1;")

    def test_final_terminator_optional(self):
        assert parse_script("x = 1; y = 2") == parse_script("x = 1; y = 2;")

    def test_expression_statement(self):
        assert parse_stmt("f(1);") == OperatorCall("f", PositionalArgs([lit(1)]))

    def test_block_without_terminator(self):
        script = parse_script("if (a) { x = 1; } y = 2;")
        assert len(script.statements) == 2
        assert script.statements[1] == Assign("y", lit(2))

    def test_block_statements(self):
        stmt = parse_stmt("{ x = 1; y = 2 }")
        assert stmt == Sequence([Assign("x", lit(1)), Assign("y", lit(2))])

    def test_empty_block(self):
        assert parse_stmt("{}") == Sequence([])

    def test_missing_terminator(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("x = 1 y = 2")
        err = exc_info.value
        assert err.found.value == "y"
        assert TokenKind.SEMICOLON in err.expected

    def test_parse_accepts_tokens(self):
        tokens = Lexer("x = 1;").lex()
        assert parse(tokens) == parse("x = 1;")


class TestParserEncodings:
    def test_subtraction(self):
        assert parse_expr("a - b") == Sum([var("a"), Negate(var("b"))])

    def test_subtraction_of_literal(self):
        assert parse_expr("a - 1") == Sum([var("a"), Negate(lit(1))])

    def test_subtraction_without_spaces(self):
        assert parse_expr("a-1") == Sum([var("a"), Negate(lit(1))])

    def test_inequality(self):
        assert parse_expr("a != b") == Not(Equals(var("a"), var("b")))

    def test_sum_folds(self):
        assert parse_expr("a + b + c") == Sum([var("a"), var("b"), var("c")])

    def test_mixed_sum_and_difference_fold(self):
        assert parse_expr("a + b - c") == Sum([var("a"), var("b"), Negate(var("c"))])

    def test_product_folds(self):
        assert parse_expr("a * b * c") == Product([var("a"), var("b"), var("c")])

    def test_logical_folds(self):
        assert parse_expr("a && b && c") == And([var("a"), var("b"), var("c")])
        assert parse_expr("a || b || c") == Or([var("a"), var("b"), var("c")])
        assert parse_expr("a ?? b ?? c") == Coalesce([var("a"), var("b"), var("c")])

    def test_different_operators_do_not_fold(self):
        assert parse_expr("a || b ?? c") == Coalesce([Or([var("a"), var("b")]), var("c")])

    def test_parenthesized_group_not_merged(self):
        assert parse_expr("(a + b) + c") == Sum([Sum([var("a"), var("b")]), var("c")])

    def test_fold_resumes_after_higher_tier(self):
        assert parse_expr("a + b * c + d") == Sum([
            var("a"), Product([var("b"), var("c")]), var("d"),
        ])

    def test_comparisons_are_pairwise(self):
        assert parse_expr("a < b < c") == Lt(Lt(var("a"), var("b")), var("c"))

    def test_division_left_associative(self):
        assert parse_expr("a / b / c") == Div(Div(var("a"), var("b")), var("c"))

    def test_binary_operators(self):
        assert parse_expr("a % b") == Mod(var("a"), var("b"))
        assert parse_expr("a > b") == Gt(var("a"), var("b"))
        assert parse_expr("a >= b") == Gte(var("a"), var("b"))
        assert parse_expr("a <= b") == Lte(var("a"), var("b"))
        assert parse_expr("a == b") == Equals(var("a"), var("b"))


class TestParserPrecedence:
    def test_and_binds_tighter_than_or(self):
        assert parse_expr("a || b && c") == Or([var("a"), And([var("b"), var("c")])])

    def test_equality_below_and(self):
        assert parse_expr("a == b && c") == And([Equals(var("a"), var("b")), var("c")])

    def test_relational_above_equality(self):
        assert parse_expr("a == b > c") == Equals(var("a"), Gt(var("b"), var("c")))

    def test_multiplicative_above_additive(self):
        assert parse_expr("a + b * c") == Sum([var("a"), Product([var("b"), var("c")])])

    def test_parentheses_override(self):
        assert parse_expr("(a + b) * c") == Product([Sum([var("a"), var("b")]), var("c")])

    def test_prefix_binds_tighter_than_infix(self):
        assert parse_expr("!a == b") == Equals(Not(var("a")), var("b"))
        assert parse_expr("-a * b") == Product([Negate(var("a")), var("b")])

    def test_postfix_binds_tighter_than_prefix(self):
        assert parse_expr("-a[0]") == Negate(Index(var("a"), lit(0)))
        assert parse_expr("!f(x)") == Not(OperatorCall("f", PositionalArgs([var("x")])))

    def test_double_negation(self):
        assert parse_expr("!!a") == Not(Not(var("a")))

    def test_negative_literal(self):
        assert parse_expr("-5") == lit(-5)

    def test_negated_literal(self):
        assert parse_expr("- 5") == Negate(lit(5))


class TestParserPrimaries:
    def test_constants(self):
        assert parse_expr("true") == lit(True)
        assert parse_expr("false") == lit(False)
        assert parse_expr("null") == lit(None)

    def test_string(self):
        assert parse_expr('"hi"') == lit("hi")

    def test_paren_collapses(self):
        assert parse_expr("((a))") == var("a")

    def test_empty_array(self):
        assert parse_expr("[]") == ArrayLit([])

    def test_nested_array(self):
        assert parse_expr("[[1], []]") == ArrayLit([ArrayLit([lit(1)]), ArrayLit([])])

    def test_chained_index(self):
        assert parse_expr("a[0][1]") == Index(Index(var("a"), lit(0)), lit(1))

    def test_index_of_call(self):
        assert parse_expr("f(1)[0]") == Index(
            OperatorCall("f", PositionalArgs([lit(1)])), lit(0),
        )

    def test_index_of_array(self):
        assert parse_expr("[1, 2][0]") == Index(ArrayLit([lit(1), lit(2)]), lit(0))

    def test_embedded_literal(self):
        assert parse_expr("@{a: 1, b: [true, null]}") == Literal(
            {"a": 1, "b": [True, None]}, embedded=True,
        )

    def test_embedded_literal_continues_expression(self):
        assert parse_expr("@5 + 1") == Sum([Literal(5, embedded=True), lit(1)])

    def test_block_expression(self):
        assert parse_expr("{ y = 1; }") == Sequence([Assign("y", lit(1))])

    def test_return_in_block(self):
        stmt = parse_stmt("{ return true; }")
        assert stmt == Sequence([Return(lit(True))])


class TestParserCalls:
    def test_empty_call_is_named(self):
        assert parse_expr("f()") == OperatorCall("f", NamedArgs({}))

    def test_single_positional(self):
        assert parse_expr("f(x)") == OperatorCall("f", PositionalArgs([var("x")]))

    def test_multiple_positional(self):
        assert parse_expr("f(a, 1 + 2)") == OperatorCall(
            "f", PositionalArgs([var("a"), Sum([lit(1), lit(2)])]),
        )

    def test_named_with_colon(self):
        assert parse_expr("f(a: 1, b: 2)") == OperatorCall(
            "f", NamedArgs({"a": lit(1), "b": lit(2)}),
        )

    def test_named_forms_mix(self):
        assert parse_expr("f(a: 1, b = 2)") == parse_expr("f(a = 1, b: 2)")

    def test_named_order_preserved(self):
        call = parse_expr("f(z=1, a=2, m=3)")
        assert list(call.args.args) == ["z", "a", "m"]

    def test_duplicate_key_later_wins(self):
        assert parse_expr("f(a=1, a=2)") == OperatorCall("f", NamedArgs({"a": lit(2)}))

    def test_named_then_positional_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            parse_expr("f(a=1, 2)")
        assert exc_info.value.expected == frozenset({TokenKind.IDENTIFIER})

    def test_positional_then_named_rejected(self):
        with pytest.raises(ParseError):
            parse_expr("f(1, a=2)")

    def test_nested_calls(self):
        assert parse_expr("f(g(x))") == OperatorCall(
            "f", PositionalArgs([OperatorCall("g", PositionalArgs([var("x")]))]),
        )

    def test_call_argument_is_expression(self):
        assert parse_expr("f(p=a || b)") == OperatorCall(
            "f", NamedArgs({"p": Or([var("a"), var("b")])}),
        )


class TestParserSwitch:
    def test_empty_switch(self):
        assert parse_stmt("switch {}") == Switch([])

    def test_fat_arrow_cases(self):
        assert parse_stmt("switch { a => 1; b => 2; }") == Switch([
            Case(var("a"), lit(1)),
            Case(var("b"), lit(2)),
        ])

    def test_case_keyword_optional(self):
        assert parse_stmt("switch { case a: 1; }") == parse_stmt("switch { a => 1; }")

    def test_case_as_variable(self):
        assert parse_stmt("switch { case => 1; }") == Switch([Case(var("case"), lit(1))])

    def test_expression_guards(self):
        stmt = parse_stmt("switch { x > 1 && y: f(1); }")
        assert stmt == Switch([
            Case(And([Gt(var("x"), lit(1)), var("y")]), OperatorCall("f", PositionalArgs([lit(1)]))),
        ])

    def test_switch_as_value(self):
        assert parse_expr("switch { a => 1; }") == Switch([Case(var("a"), lit(1))])

    def test_missing_separator(self):
        with pytest.raises(ParseError) as exc_info:
            parse_stmt("switch { a 1 }")
        assert {TokenKind.COLON, TokenKind.FAT_ARROW} <= exc_info.value.expected

    def test_signed_guard_after_case(self):
        # The sign after a soft keyword is an operator, not part of the number.
        assert parse_stmt("switch { case -1: 2; }") == Switch([
            Case(Negate(lit(1)), lit(2)),
        ])


class TestParserCond:
    def test_if_only(self):
        assert parse_stmt("if (a) 1") == Cond([Branch(var("a"), lit(1))])

    def test_if_then(self):
        assert parse_stmt("if (a) then 1") == parse_stmt("if (a) 1")

    def test_if_fat_arrow(self):
        assert parse_stmt("if (a) => 1") == parse_stmt("if (a) 1")

    def test_if_else(self):
        assert parse_stmt("if (a) 1 else 2") == Cond([
            Branch(var("a"), lit(1)),
            Branch(AlwaysTrue(), lit(2)),
        ])

    def test_flattening(self):
        stmt = parse_stmt("if (c1) then x else if (c2) then y else z")
        assert stmt == Cond([
            Branch(var("c1"), var("x")),
            Branch(var("c2"), var("y")),
            Branch(AlwaysTrue(), var("z")),
        ])

    def test_else_if_without_else(self):
        stmt = parse_stmt("if (a) 1 else if (b) 2")
        assert len(stmt.branches) == 2
        assert not isinstance(stmt.branches[-1].guard, AlwaysTrue)

    def test_block_branches(self):
        stmt = parse_stmt("if (a) { x = 1; } else { x = 2; }")
        assert stmt == Cond([
            Branch(var("a"), Sequence([Assign("x", lit(1))])),
            Branch(AlwaysTrue(), Sequence([Assign("x", lit(2))])),
        ])

    def test_nested_if_in_parens(self):
        stmt = parse_stmt("if (a) (if (b) 1) else 2")
        assert stmt == Cond([
            Branch(var("a"), Cond([Branch(var("b"), lit(1))])),
            Branch(AlwaysTrue(), lit(2)),
        ])

    def test_then_as_variable(self):
        assert parse_stmt("if (a) then else 2") == Cond([
            Branch(var("a"), var("then")),
            Branch(AlwaysTrue(), lit(2)),
        ])

    def test_signed_result_after_then(self):
        assert parse_stmt("if (c) then -1") == Cond([Branch(var("c"), Negate(lit(1)))])

    def test_guard_requires_parens(self):
        with pytest.raises(ParseError) as exc_info:
            parse_stmt("if a 1")
        assert exc_info.value.expected == frozenset({TokenKind.LPAREN})


class TestParserErrors:
    def test_missing_operand(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("x = ;")
        err = exc_info.value
        assert err.found.value == ";"
        assert err.found.kind == TokenKind.SEMICOLON
        assert TokenKind.NUMBER_LIT in err.expected
        assert TokenKind.IDENTIFIER in err.expected
        assert err.line == 1

    def test_not_recoverable(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("x = ;")
        assert exc_info.value.recoverable is False

    def test_error_line(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("x = 1;\ny = 2 +;")
        assert exc_info.value.line == 2

    def test_unclosed_paren(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("x = (1 + 2")
        err = exc_info.value
        assert err.found.kind == TokenKind.EOF
        assert TokenKind.RPAREN in err.expected

    def test_unclosed_block(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("{ x = 1;")
        assert TokenKind.RBRACE in exc_info.value.expected

    def test_diagnostic(self):
        with pytest.raises(ParseError) as exc_info:
            parse_script("x = ]")
        diag = exc_info.value.diagnostics[0]
        assert diag.code == "E200"
        assert diag.labels[0].span.start_col == 5
        assert any("expected one of" in note for note in diag.notes)

    def test_is_compile_error(self):
        with pytest.raises(CompileError):
            parse_script("= 1")

    def test_stray_closing_brace(self):
        with pytest.raises(ParseError):
            parse_script("x = 1; }")

    def test_deep_nesting(self):
        depth = 2000
        with pytest.raises(ParseError, match="nested too deeply"):
            parse_script("x = " + "(" * depth + "1" + ")" * depth + ";")

    def test_deep_prefix_operators(self):
        with pytest.raises(ParseError, match="nested too deeply"):
            parse_script("x = " + "!" * 2000 + "a;")

    def test_deep_blocks(self):
        with pytest.raises(ParseError):
            parse_script("{" * 2000 + "}" * 2000)

    def test_unknown_escape_in_string(self):
        assert parse_expr(r'"\d+"') == lit("\\d+")


class TestParserProperties:
    def test_deterministic(self):
        source = "a = uniformChoice(choices=[1, 2], unit=u); b = a - 1 != 0;"
        assert parse(source) == parse(source)
        assert repr(parse(source)) == repr(parse(source))

    def test_spans_ignored_in_equality(self):
        assert parse("x=1;") == parse("x   =   1 ;")

    def test_assignment_span(self):
        stmt = parse_stmt("x = 5;")
        assert (stmt.span.start_line, stmt.span.start_col) == (1, 1)
        assert (stmt.span.end_line, stmt.span.end_col) == (1, 5)

    def test_root_span_covers_script(self):
        script = parse_script("a = 1;\nb = 2;")
        assert script.span.start_line == 1
        assert script.span.end_line == 2

    def test_filename_in_span(self):
        script = parse("x = 1;", "exp.planout")
        assert script.statements[0].span.file == "exp.planout"
