"""Tests for statement trees and cancellation flow."""

import unittest

import pytest

from gostyle_lint.core.errors import ParseError
from gostyle_lint.source import flow
from gostyle_lint.source.lexer import tokenize
from gostyle_lint.source.syntax import SyntaxParser, render, split_top_level


def _block(code):
    """Parse a brace-enclosed block and return its statements."""
    tokens, _ = tokenize(code)
    parser = SyntaxParser(tokens, "block.go")
    return parser.block(0)


class TestStatements(unittest.TestCase):
    """Test statement tree construction."""

    def test_if_else_chain(self):
        stmts = _block("""{
	if err != nil {
		return err
	} else if x {
		f()
	} else {
		g()
	}
}""")

        self.assertEqual(len(stmts), 1)
        stmt = stmts[0]
        self.assertEqual(stmt.kind, "if")
        self.assertEqual(render(stmt.tokens), "err != nil")
        self.assertEqual(stmt.body[0].kind, "return")
        self.assertEqual(stmt.else_body[0].kind, "if")
        self.assertEqual(stmt.else_body[0].else_body[0].kind, "simple")
        self.assertEqual(stmt.end_line, 8)

    def test_switch_clauses(self):
        stmts = _block("""{
	switch x {
	case 1, 2:
		f()
	default:
	}
}""")

        clauses = stmts[0].clauses
        self.assertEqual(len(clauses), 2)
        self.assertEqual(render(clauses[0].header), "1, 2")
        self.assertFalse(clauses[0].is_default)
        self.assertTrue(clauses[1].is_default)
        self.assertEqual(clauses[1].body, [])

    def test_function_literal_is_cut_out(self):
        stmts = _block("""{
	go func() {
		done <- true
	}()
}""")

        stmt = stmts[0]
        self.assertEqual(stmt.kind, "go")
        self.assertEqual(render(stmt.tokens), "go func(){}()")
        self.assertEqual(len(stmt.funclits), 1)
        self.assertEqual(stmt.funclits[0].body[0].kind, "simple")

    def test_label(self):
        stmts = _block("""{
outer:
	for {
		break outer
	}
}""")

        self.assertEqual(stmts[0].label, "outer")
        self.assertEqual(stmts[0].kind, "for")
        self.assertEqual(stmts[0].body[0].kind, "break")

    def test_composite_literal_in_header(self):
        stmts = _block("""{
	for _, v := range []int{1, 2} {
		use(v)
	}
}""")

        self.assertEqual(stmts[0].kind, "for")
        self.assertEqual(len(stmts[0].body), 1)

    def test_declarations(self):
        stmts = _block("""{
	var x int
	defer x.Close()
	x++
}""")

        self.assertEqual([s.kind for s in stmts], ["decl", "defer", "simple"])


def test_mismatched_brackets():
    tokens, _ = tokenize("{ ( }")
    with pytest.raises(ParseError, match="closed by"):
        SyntaxParser(tokens, "x.go")


def test_unclosed_brace():
    tokens, _ = tokenize("func f() {\n")
    with pytest.raises(ParseError, match="unclosed"):
        SyntaxParser(tokens, "x.go")


def test_split_top_level_ignores_nested_commas():
    tokens, _ = tokenize("a, f(b, c), d")
    groups = split_top_level([t for t in tokens if not t.is_semi], ",")

    assert [render(g) for g in groups] == ["a", "f(b, c)", "d"]


class TestCancellationFlow(unittest.TestCase):
    """Test cancellation reachability over goroutine bodies."""

    def test_select_on_done_in_loop(self):
        body = _block("""{
	for {
		select {
		case <-ctx.Done():
			return
		case v := <-in:
			use(v)
		}
	}
}""")
        self.assertTrue(flow.waits_for_cancellation(body))

    def test_busy_loop(self):
        body = _block("""{
	for {
		work()
	}
}""")
        self.assertFalse(flow.waits_for_cancellation(body))

    def test_range_over_data_channel(self):
        body = _block("""{
	for v := range in {
		use(v)
	}
}""")
        self.assertFalse(flow.waits_for_cancellation(body))

    def test_plain_receive_from_done(self):
        self.assertTrue(flow.waits_for_cancellation(_block("{\n\t<-done\n}")))

    def test_wait_on_one_branch_only(self):
        body = _block("""{
	if x {
		<-stop
	}
}""")
        self.assertFalse(flow.waits_for_cancellation(body))

    def test_wait_on_both_branches(self):
        body = _block("""{
	if x {
		<-stop
	} else {
		<-ctx.Done()
	}
}""")
        self.assertTrue(flow.waits_for_cancellation(body))

    def test_return_without_wait(self):
        self.assertFalse(flow.waits_for_cancellation(_block("{\n\treturn\n}")))

    def test_break_out_of_infinite_loop(self):
        body = _block("""{
	for {
		if x {
			break
		}
		<-quit
	}
}""")
        self.assertFalse(flow.waits_for_cancellation(body))

    def test_receives_cancellation(self):
        send, _ = tokenize("done <- true")
        receive, _ = tokenize("<-ctx.Done()")
        data, _ = tokenize("x := <-results")

        self.assertFalse(flow.receives_cancellation(send))
        self.assertTrue(flow.receives_cancellation(receive))
        self.assertFalse(flow.receives_cancellation(data))


if __name__ == "__main__":
    unittest.main()
