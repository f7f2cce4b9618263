"""
Tests for wox diagnostics and the diagnostic collector.
"""

import json

from wox import DiagnosticCollector, SourceLocation, SourceSpan
from wox.errors import error_unbound_variable, error_unsupported_statement


SPAN = SourceSpan(SourceLocation(2, 7, 17), SourceLocation(2, 10, 20))


class TestDiagnostic:
    """Test rendering of a single diagnostic."""

    def test_format_with_source(self):
        """Header, quoted line and a caret under the span."""
        diag = error_unbound_variable("foo", SPAN, "print foo;").diagnostic
        assert diag.format().splitlines() == [
            "2:7: error[E401]: unbound variable 'foo' is not in scope",
            "  |",
            "  2 | print foo;",
            "    |       ^^^",
        ]

    def test_format_without_source(self):
        """show_source=False keeps only the header."""
        diag = error_unbound_variable("foo", SPAN, "print foo;").diagnostic
        assert diag.format(show_source=False) == "2:7: error[E401]: unbound variable 'foo' is not in scope"

    def test_hints_are_rendered(self):
        """Hints follow the header."""
        diag = error_unsupported_statement("for", SPAN).diagnostic
        assert diag.format().endswith("= hint: use 'while CONDITION { ... }' or 'loop { ... }' instead")

    def test_to_json(self):
        """JSON form carries code, message, range and hints."""
        diag = error_unsupported_statement("for", SPAN).diagnostic
        assert diag.to_json() == {
            "code": "E104",
            "message": "'for' loops are not supported",
            "severity": "error",
            "range": {
                "start": {"line": 2, "column": 7, "offset": 17},
                "end": {"line": 2, "column": 10, "offset": 20},
            },
            "hints": ["use 'while CONDITION { ... }' or 'loop { ... }' instead"],
        }

    def test_error_classes(self):
        """Codes decide the syntax/runtime classification."""
        assert error_unsupported_statement("for", SPAN).diagnostic.is_syntax_error
        assert error_unbound_variable("x", SPAN).diagnostic.is_runtime_error


class TestDiagnosticCollector:
    """Test the diagnostic sink."""

    def test_sticky_flags(self):
        """Flags stay set until reset."""
        collector = DiagnosticCollector()
        collector.add_error(error_unsupported_statement("for", SPAN))
        collector.add_error(error_unbound_variable("x", SPAN))
        assert collector.had_syntax_error
        assert collector.had_runtime_error
        assert collector.error_count == 2

        collector.reset()
        assert not collector.has_errors
        assert not collector.had_syntax_error
        assert not collector.had_runtime_error
        assert collector.diagnostics == []

    def test_should_stop(self):
        """The error ceiling is reached after max_errors errors."""
        collector = DiagnosticCollector(max_errors=2)
        collector.add_error(error_unbound_variable("a", SPAN))
        assert not collector.should_stop
        collector.add_error(error_unbound_variable("b", SPAN))
        assert collector.should_stop

    def test_format_all_summary(self):
        """All diagnostics are listed, then a count."""
        collector = DiagnosticCollector()
        collector.add_error(error_unbound_variable("a", SPAN))
        collector.add_error(error_unbound_variable("b", SPAN))
        text = collector.format_all(show_source=False)
        assert "'a'" in text and "'b'" in text
        assert text.endswith("2 error(s)")

    def test_empty_format_all(self):
        """No diagnostics formats as an empty string."""
        assert DiagnosticCollector().format_all() == ""

    def test_to_json(self):
        """The collector serializes to plain JSON."""
        collector = DiagnosticCollector()
        collector.add_error(error_unbound_variable("a", SPAN, "print a;"))
        data = json.loads(json.dumps(collector.to_json()))
        assert data["error_count"] == 1
        assert data["had_runtime_error"] is True
        assert data["had_syntax_error"] is False
        assert [d["code"] for d in data["diagnostics"]] == ["E401"]
