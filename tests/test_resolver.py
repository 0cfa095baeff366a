"""Tests for syntax-based callee resolution."""
import pytest

from defermistake.analyzer.parser import LanguageParser
from defermistake.analyzer.registry import FunctionIdentity
from defermistake.analyzer.resolver import CalleeResolver, assumed_package_name


def resolved_calls(source: str):
    """Resolve every call in the source, in source order, as strings (or None)."""
    source_code = source.encode()
    tree = LanguageParser('go').parse_source(source_code)
    resolver = CalleeResolver(tree.root_node, source_code)

    results = []
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == 'call_expression':
            identity = resolver.resolve(node)
            results.append(str(identity) if identity else None)
        stack.extend(reversed(node.children))
    return results


@pytest.mark.parametrize("path, name", [
    ("time", "time"),
    ("net/http", "http"),
    ("github.com/acme/clock/v2", "clock"),
    ("gopkg.in/yaml.v3", "yaml"),
    ("github.com/acme/go-metrics", "metrics"),
])
def test_assumed_package_name(path, name):
    assert assumed_package_name(path) == name


def test_imports_are_indexed():
    source = b'''package p

import (
\t"fmt"
\tt "time"
\t_ "embed"
\t. "strings"
)
'''
    tree = LanguageParser('go').parse_source(source)
    resolver = CalleeResolver(tree.root_node, source)

    assert resolver.imports == {"fmt": "fmt", "t": "time"}
    assert resolver.dot_imports == ["strings"]


def test_single_import_declaration():
    source = 'package p\n\nimport "time"\n\nfunc f() { time.Since(x) }\n'
    assert resolved_calls(source) == ["time.Since"]


def test_aliased_import():
    source = 'package p\n\nimport clock "time"\n\nfunc f() { clock.Since(x) }\n'
    assert resolved_calls(source) == ["time.Since"]


def test_parenthesized_callee():
    source = 'package p\n\nimport "time"\n\nfunc f() { (time.Since)(x) }\n'
    assert resolved_calls(source) == ["time.Since"]


def test_unknown_operand_is_unresolved():
    source = 'package p\n\nimport "time"\n\nfunc f(c clock) { c.Since(x); f(); fns[0](x) }\n'
    assert resolved_calls(source) == [None, None, None]


def test_chained_selector_is_unresolved():
    source = 'package p\n\nimport "time"\n\nfunc f() { time.Now().Add(d) }\n'
    assert resolved_calls(source) == [None, "time.Now"]


class TestShadowing:

    @pytest.mark.parametrize("body", [
        "time := clock{}\n\ttime.Since(x)",
        "var time clock\n\ttime.Since(x)",
        "for _, time := range clocks {\n\t\ttime.Since(x)\n\t}",
        "for time := 0; time < 3; time++ {\n\t\ttime.Since(x)\n\t}",
        "if time := pick(); ok {\n\t\ttime.Since(x)\n\t}",
        "switch time := v.(type) {\n\tcase clock:\n\t\ttime.Since(x)\n\t}",
    ])
    def test_local_declaration_shadows_import(self, body):
        source = f'package p\n\nimport "time"\n\nfunc f() {{\n\t{body}\n}}\n'
        assert "time.Since" not in resolved_calls(source)

    def test_parameter_shadows_import(self):
        source = 'package p\n\nimport "time"\n\nfunc f(time clock) { time.Since(x) }\n'
        assert resolved_calls(source) == [None]

    def test_receiver_shadows_import(self):
        source = 'package p\n\nimport "time"\n\nfunc (time clock) f() { time.Since(x) }\n'
        assert resolved_calls(source) == [None]

    def test_literal_parameter_shadows_only_inside_literal(self):
        source = ('package p\n\nimport "time"\n\n'
                  'func f() {\n\tg(func(time clock) { time.Since(x) })\n\ttime.Since(x)\n}\n')
        assert resolved_calls(source) == [None, None, "time.Since"]

    def test_declaration_in_sibling_block_does_not_shadow(self):
        source = ('package p\n\nimport "time"\n\n'
                  'func f() {\n\t{\n\t\ttime := clock{}\n\t\t_ = time\n\t}\n\ttime.Since(x)\n}\n')
        assert resolved_calls(source) == ["time.Since"]

    def test_declaration_after_use_does_not_shadow(self):
        source = ('package p\n\nimport "time"\n\n'
                  'func f() {\n\ttime.Since(x)\n\ttime := clock{}\n\t_ = time\n}\n')
        assert resolved_calls(source) == ["time.Since"]

    def test_right_hand_side_refers_to_package(self):
        source = 'package p\n\nimport "time"\n\nfunc f() {\n\ttime := time.Now()\n\t_ = time\n}\n'
        assert resolved_calls(source) == ["time.Now"]

    def test_range_assignment_does_not_declare(self):
        source = ('package p\n\nimport "time"\n\n'
                  'func f() {\n\tfor _, time = range clocks {\n\t\ttime.Since(x)\n\t}\n}\n')
        assert resolved_calls(source) == ["time.Since"]


class TestDotImports:

    def test_single_dot_import_resolves_unqualified_call(self):
        source = 'package p\n\nimport . "time"\n\nfunc f() { Since(x) }\n'
        assert resolved_calls(source) == ["time.Since"]

    def test_package_level_declaration_wins(self):
        source = 'package p\n\nimport . "time"\n\nfunc Until() {}\n\nfunc f() { Until() }\n'
        assert resolved_calls(source) == [None]

    def test_multiple_dot_imports_are_ambiguous(self):
        source = 'package p\n\nimport (\n\t. "time"\n\t. "strings"\n)\n\nfunc f() { Since(x) }\n'
        assert resolved_calls(source) == [None]

    def test_no_dot_import_leaves_unqualified_call_unresolved(self):
        source = 'package p\n\nfunc f() { Since(x) }\n'
        assert resolved_calls(source) == [None]


def test_function_identity_values():
    source = 'package p\n\nimport "example.com/metrics"\n\nfunc f() { metrics.Elapsed(x) }\n'
    source_code = source.encode()
    tree = LanguageParser('go').parse_source(source_code)
    resolver = CalleeResolver(tree.root_node, source_code)
    call = tree.root_node.named_children[-1].child_by_field_name('body')
    while call.type != 'call_expression':
        call = call.named_children[0]

    assert resolver.resolve(call) == FunctionIdentity("example.com/metrics", "Elapsed")
