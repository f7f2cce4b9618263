"""
Tests for the wox interpreter (evaluation, classes, closures, pattern matching).
"""

import io
import math
import textwrap

import pytest

from wox import (
    scan_and_parse, Interpreter, run_source, WoxRuntimeError, DiagnosticCollector,
)
from wox.runtime import (
    WoxFunction, WoxClass, WoxInstance, is_truthy, is_equal, stringify, type_name,
)


def run(source: str, interpreter: Interpreter = None):
    """Run source, returning (printed lines, diagnostics)."""
    out = io.StringIO()
    if interpreter is None:
        interpreter = Interpreter(output=out)
    else:
        interpreter.output = out
    diagnostics = run_source(textwrap.dedent(source), interpreter=interpreter)
    return out.getvalue().splitlines(), diagnostics


def output_of(source: str):
    """Run source that must succeed; return its printed lines."""
    lines, diagnostics = run(source)
    assert not diagnostics.has_errors, diagnostics.format_all()
    return lines


def error_of(source: str):
    """Run source that must fail at runtime; return (printed lines, diagnostic)."""
    lines, diagnostics = run(source)
    assert diagnostics.had_runtime_error
    assert not diagnostics.had_syntax_error
    return lines, diagnostics.diagnostics[-1]


def value_of(expression: str):
    """Evaluate one expression and return the Python value."""
    statements, diagnostics = scan_and_parse(expression)
    assert not diagnostics.has_errors, diagnostics.format_all()
    return Interpreter().evaluate(statements[0].expression)


class TestArithmetic:
    """Test numeric operators."""

    def test_precedence(self):
        """1 + 2 * 3 is 7."""
        assert value_of("1 + 2 * 3") == 7.0

    def test_grouping(self):
        """(1 + 2) * 3 is 9."""
        assert value_of("(1 + 2) * 3") == 9.0

    def test_division(self):
        """Division is floating point."""
        assert value_of("7 / 2") == 3.5

    def test_negation(self):
        """Unary minus."""
        assert value_of("-(2 - 5)") == 3.0

    def test_divide_by_zero_is_infinity(self):
        """x / 0 follows IEEE-754."""
        assert value_of("1 / 0") == math.inf
        assert value_of("-1 / 0") == -math.inf

    def test_zero_over_zero_is_nan(self):
        """0 / 0 is NaN."""
        assert math.isnan(value_of("0 / 0"))

    def test_comparisons(self):
        """Comparison operators yield booleans."""
        assert value_of("1 < 2") is True
        assert value_of("2 <= 2") is True
        assert value_of("1 > 2") is False
        assert value_of("3 >= 4") is False

    def test_non_number_operand(self):
        """Arithmetic on a string is E402 at the operator."""
        lines, diag = error_of('print 1 + "a";')
        assert diag.code == "E402"
        assert "'+'" in diag.message
        assert diag.span.start.column == 9

    def test_boolean_is_not_a_number(self):
        """true is not 1."""
        _, diag = error_of("print true * 2;")
        assert diag.code == "E402"

    def test_unary_minus_needs_number(self):
        """-"a" is E402."""
        _, diag = error_of('print -"a";')
        assert diag.code == "E402"

    def test_comparison_needs_numbers(self):
        """Strings do not compare with '<'."""
        _, diag = error_of('print "a" < "b";')
        assert diag.code == "E402"


class TestStringsAndLogic:
    """Test '++', '!', 'and', 'or' and truthiness."""

    def test_append(self):
        """'++' concatenates two strings."""
        assert value_of('"foo" ++ "bar"') == "foobar"

    def test_append_needs_strings(self):
        """'++' with a number is E404."""
        _, diag = error_of('print "n = " ++ 1;')
        assert diag.code == "E404"

    def test_plus_does_not_concatenate(self):
        """'+' is numeric only."""
        _, diag = error_of('print "a" + "b";')
        assert diag.code == "E402"

    def test_not(self):
        """'!' negates booleans."""
        assert value_of("!true") is False
        assert value_of("!!true") is True

    def test_not_requires_boolean(self):
        """'!' on nil is E403, not a truthiness coercion."""
        _, diag = error_of("print !nil;")
        assert diag.code == "E403"

    def test_or_returns_deciding_operand(self):
        """or yields the first truthy operand, or the last one."""
        assert value_of("nil or 3") == 3.0
        assert value_of('"a" or 3') == "a"
        assert value_of("nil or false") is False

    def test_and_returns_deciding_operand(self):
        """and yields the first falsy operand, or the last one."""
        assert value_of("1 and 2") == 2.0
        assert value_of("nil and 2") is None

    def test_short_circuit(self):
        """The right operand is not evaluated when the left decides."""
        assert value_of("false and undefined_name") is False
        assert value_of("true or undefined_name") is True

    @pytest.mark.parametrize("source,expected", [
        ("if 0 then 1 else 2", 1.0),
        ('if "" then 1 else 2', 1.0),
        ("if [] then 1 else 2", 1.0),
        ("if nil then 1 else 2", 2.0),
        ("if false then 1 else 2", 2.0),
    ])
    def test_truthiness(self, source, expected):
        """Only nil and false are falsy."""
        assert value_of(source) == expected

    def test_if_without_else(self):
        """A falsy condition without else yields nil."""
        assert value_of("if false then 1") is None


class TestEquality:
    """Test '==' and '!='."""

    @pytest.mark.parametrize("source,expected", [
        ("1 == 1", True),
        ("1 != 2", True),
        ("nil == nil", True),
        ("nil == false", False),
        ("true == 1", False),
        ('"a" == "a"', True),
        ('"1" == 1', False),
        ("(1, 2) == (1, 2)", True),
        ("(1, 2) == (2, 1)", False),
        ("[1, 2] == [1, 2]", True),
        ("[1, 2] == (1, 2)", False),
    ])
    def test_equality(self, source, expected):
        """Type-strict structural equality."""
        assert value_of(source) is expected

    def test_nan_not_equal_to_itself(self):
        """NaN == NaN is false."""
        assert value_of("let n = 0 / 0 in n == n") is False
        assert value_of("let n = 0 / 0 in n != n") is True

    def test_nan_inside_tuple(self):
        """NaN stays unequal inside collections."""
        assert value_of("let n = 0 / 0 in (n, 1) == (n, 1)") is False

    def test_instances_by_identity(self):
        """Instances are equal only to themselves."""
        lines = output_of("""
            class P {}
            var a = P();
            print a == a;
            print a == P();
        """)
        assert lines == ["true", "false"]


class TestScopingForms:
    """Test let, do, variables and blocks."""

    def test_let(self):
        """let x = 3 in x + 1 is 4."""
        assert value_of("let x = 3 in x + 1") == 4.0

    def test_let_name_unbound_outside(self):
        """The let-bound name does not leak."""
        lines, diag = error_of("print let x = 3 in x + 1; print x;")
        assert lines == ["4"]
        assert diag.code == "E401"

    def test_let_definition_sees_outer_scope(self):
        """The definition is evaluated before the new binding exists."""
        assert output_of("var x = 10; print let x = x + 1 in x; print x;") == ["11", "10"]

    def test_let_restores_environment_on_error(self):
        """A failing let body leaves the interpreter in its global frame."""
        interpreter = Interpreter(output=io.StringIO())
        _, diagnostics = run("print let x = 1 in x + missing;", interpreter)
        assert diagnostics.had_runtime_error
        assert interpreter.environment is interpreter.globals

    def test_do(self):
        """do yields its last expression."""
        assert value_of("do { 1; 2; 3 }") == 3.0

    def test_empty_do(self):
        """do {} yields nil."""
        assert value_of("do {}") is None

    def test_do_assigns_outer_variable(self):
        """Assignments in do reach enclosing frames."""
        assert output_of("var x = 1; do { x = 2; x }; print x;") == ["2"]

    def test_tuple_and_vector_values(self):
        """Tuples become Python tuples, vectors become lists."""
        assert value_of('(1, "a", true)') == (1.0, "a", True)
        assert value_of("[1, [2]]") == [1.0, [2.0]]

    def test_var_defaults_to_nil(self):
        """var without initializer binds nil."""
        assert output_of("var a; print a;") == ["()"]

    def test_assignment_value(self):
        """Assignment is an expression yielding the value."""
        assert output_of("var a; var b; print a = b = 5; print a;") == ["5", "5"]

    def test_assign_undefined(self):
        """Assignment never defines a new variable."""
        _, diag = error_of("x = 1;")
        assert diag.code == "E401"

    def test_block_scope(self):
        """Blocks introduce a scope."""
        lines = output_of("""
            var a = "outer";
            {
                var a = "inner";
                print a;
            }
            print a;
        """)
        assert lines == ["inner", "outer"]

    def test_while(self):
        """while loops until the condition is falsy."""
        lines = output_of("""
            var i = 0;
            while i < 3 {
                print i;
                i = i + 1;
            }
        """)
        assert lines == ["0", "1", "2"]


class TestPrint:
    """Test print stringification."""

    @pytest.mark.parametrize("source,expected", [
        ("print 3;", "3"),
        ("print 2.5;", "2.5"),
        ("print -0.5;", "-0.5"),
        ("print nil;", "()"),
        ("print ();", "()"),
        ("print true;", "true"),
        ('print "hi";', "hi"),
        ('print (1, "a");', "(1, a)"),
        ("print [1, [2, 3]];", "[1, [2, 3]]"),
        ("print [];", "[]"),
        ("print 1 / 0;", "inf"),
        ("print 0 / 0;", "nan"),
        ("print 100000000000000000000;", "100000000000000000000"),
        ("print 0.0000001;", "0.0000001"),
    ])
    def test_stringify(self, source, expected):
        """Values print in wox notation."""
        assert output_of(source) == [expected]

    def test_print_function_and_class(self):
        """Functions, classes and instances have readable forms."""
        lines = output_of("""
            fn f() {}
            class Point {}
            print f;
            print Point;
            print Point();
        """)
        assert lines == ["<fn f>", "Point", "Point instance"]

    def test_default_output_is_stdout(self, capsys):
        """Without an output stream, print goes to sys.stdout."""
        run_source("print 42;")
        assert capsys.readouterr().out == "42\n"


class TestFunctions:
    """Test functions, returns and closures."""

    def test_call(self):
        """Parameters bind positionally."""
        assert output_of("fn sub(a, b) { return a - b; } print sub(5, 3);") == ["2"]

    def test_implicit_nil_return(self):
        """A function without return yields nil."""
        assert output_of("fn f() { 1; } print f();") == ["()"]

    def test_bare_return(self):
        """return without a value yields nil and stops the body."""
        assert output_of("fn f() { return; print 1; } print f();") == ["()"]

    def test_recursion(self):
        """Recursive fibonacci."""
        lines = output_of("""
            fn fib(n) {
                return if n < 2 then n else fib(n - 1) + fib(n - 2);
            }
            print fib(15);
        """)
        assert lines == ["610"]

    def test_closure_counter(self):
        """Closures keep their defining frame alive."""
        lines = output_of("""
            fn make_counter() {
                var count = 0;
                fn inc() {
                    count = count + 1;
                    return count;
                }
                return inc;
            }
            var a = make_counter();
            var b = make_counter();
            print a();
            print a();
            print b();
        """)
        assert lines == ["1", "2", "1"]

    def test_lexical_not_dynamic_scope(self):
        """Functions see their definition site, not the call site."""
        lines = output_of("""
            var x = "global";
            fn show() { print x; }
            {
                var x = "local";
                show();
            }
        """)
        assert lines == ["global"]

    def test_return_from_nested_blocks(self):
        """return leaves the function from inside loops and blocks."""
        lines = output_of("""
            fn first_over(limit) {
                var i = 0;
                loop {
                    i = i + 1;
                    while i > limit {
                        return i;
                    }
                }
            }
            print first_over(4);
        """)
        assert lines == ["5"]

    def test_higher_order(self):
        """Functions are values."""
        lines = output_of("""
            fn twice(f, x) { return f(f(x)); }
            fn inc(n) { return n + 1; }
            print twice(inc, 1);
        """)
        assert lines == ["3"]

    def test_arity_mismatch(self):
        """Wrong argument count is E406."""
        _, diag = error_of("fn f(a, b) { return a; } f(1);")
        assert diag.code == "E406"
        assert "expected 2" in diag.message

    def test_not_callable(self):
        """Calling a number is E405."""
        _, diag = error_of('"text"();')
        assert diag.code == "E405"
        assert "string" in diag.message

    def test_top_level_return(self):
        """return outside any function is E410 and stops the program."""
        lines, diag = error_of("print 1; return 2; print 3;")
        assert lines == ["1"]
        assert diag.code == "E410"

    def test_unbounded_recursion_is_fatal(self):
        """Stack exhaustion is not a wox runtime error."""
        with pytest.raises(RecursionError):
            run("fn f() { return f(); } f();")


class TestClasses:
    """Test classes, instances and inheritance."""

    def test_fields_and_methods(self):
        """init sets fields; methods read them through this."""
        lines = output_of("""
            class Point {
                init(x, y) {
                    this.x = x;
                    this.y = y;
                }
                sum() { return this.x + this.y; }
            }
            var p = Point(1, 2);
            print p.x;
            print p.sum();
        """)
        assert lines == ["1", "3"]

    def test_class_arity_is_init_arity(self):
        """Calling a class checks init's parameter count."""
        _, diag = error_of("class P { init(a) {} } P();")
        assert diag.code == "E406"

    def test_class_without_init(self):
        """A class without init takes no arguments."""
        _, diag = error_of("class P {} P(1);")
        assert diag.code == "E406"

    def test_calling_class_returns_instance(self):
        """Even an init with an early return yields the instance."""
        lines = output_of("""
            class P {
                init() {
                    this.v = 1;
                    return;
                }
            }
            var p = P();
            print p;
            print p.init().v;
        """)
        assert lines == ["P instance", "1"]

    def test_inherited_method(self):
        """b.m() finds A's m with this bound to b."""
        lines = output_of("""
            class A {
                m() { return this.name; }
            }
            class B < A {
                init() { this.name = "b"; }
            }
            print B().m();
        """)
        assert lines == ["b"]

    def test_override_and_super(self):
        """super.method starts lookup above the defining class."""
        lines = output_of("""
            class A {
                greet() { return "A"; }
            }
            class B < A {
                greet() { return "B+" ++ super.greet(); }
            }
            class C < B {}
            print C().greet();
        """)
        assert lines == ["B+A"]

    def test_super_keeps_receiver(self):
        """A superclass method called via super still sees the original this."""
        lines = output_of("""
            class A {
                describe() { return this.tag; }
            }
            class B < A {
                init() { this.tag = "from b"; }
                describe() { return super.describe(); }
            }
            print B().describe();
        """)
        assert lines == ["from b"]

    def test_bound_method(self):
        """A method read off an instance remembers its receiver."""
        lines = output_of("""
            class Box {
                init(v) { this.v = v; }
                get() { return this.v; }
            }
            var g = Box(7).get;
            print g();
        """)
        assert lines == ["7"]

    def test_fields_shadow_methods(self):
        """Fields are found before methods."""
        lines = output_of("""
            class P { m() { return 1; } }
            var p = P();
            p.m = 2;
            print p.m;
        """)
        assert lines == ["2"]

    def test_undefined_property(self):
        """Reading a missing property is E408."""
        _, diag = error_of("class P {} print P().missing;")
        assert diag.code == "E408"
        assert "missing" in diag.message

    def test_property_on_non_instance(self):
        """Only instances have properties."""
        _, diag = error_of("var n = 1; print n.x;")
        assert diag.code == "E408"

    def test_set_on_non_instance(self):
        """Only instances have fields."""
        _, diag = error_of('var s = "s"; s.x = 1;')
        assert diag.code == "E408"

    def test_superclass_must_be_class(self):
        """Inheriting from a non-class is E409."""
        _, diag = error_of("var A = 1; class B < A {}")
        assert diag.code == "E409"

    def test_this_outside_method(self):
        """this at top level is E411."""
        _, diag = error_of("print this;")
        assert diag.code == "E411"

    def test_super_outside_subclass(self):
        """super in a plain function is E411."""
        _, diag = error_of("fn f() { return super.x; } f();")
        assert diag.code == "E411"

    def test_runtime_values(self):
        """Class and instance objects are exposed as runtime types."""
        interpreter = Interpreter(output=io.StringIO())
        run("class P { m() {} } var p = P();", interpreter)
        klass = interpreter.globals.values["P"]
        instance = interpreter.globals.values["p"]
        assert isinstance(klass, WoxClass)
        assert isinstance(instance, WoxInstance)
        assert instance.klass is klass
        assert isinstance(klass.find_method("m"), WoxFunction)


class TestPatternMatching:
    """Test case expressions."""

    def test_literal_arms(self):
        """Arms are tried in order."""
        source = 'case {} of {{ 1 then "one"; 2 then "two"; _ then "many" }}'
        assert value_of(source.format(1)) == "one"
        assert value_of(source.format(2)) == "two"
        assert value_of(source.format(9)) == "many"

    def test_variable_binds(self):
        """A variable pattern binds the whole value."""
        assert value_of("case 4 of { n then n * n }") == 16.0

    def test_tuple_destructuring(self):
        """Tuple patterns bind element-wise."""
        assert value_of("case (1, 2) of { (a, b) then a + b }") == 3.0

    def test_tuple_arity_must_match(self):
        """A 2-pattern does not match a 3-tuple."""
        assert value_of("case (1, 2, 3) of { (a, b) then 0; (a, b, c) then c }") == 3.0

    def test_vector_pattern(self):
        """Vector patterns are fixed length."""
        assert value_of("case [1, 2] of { [x] then 0; [x, y] then y }") == 2.0
        assert value_of("case [] of { [] then 1 }") == 1.0

    def test_tuple_pattern_rejects_vector(self):
        """Tuples and vectors are distinct shapes."""
        assert value_of("case [1, 2] of { (a, b) then 0; _ then 1 }") == 1.0

    def test_as_pattern(self):
        """name = pattern binds the whole matched value too."""
        assert value_of("case (1, 2) of { p = (a, _) then (p, a) }") == ((1.0, 2.0), 1.0)

    def test_as_pattern_needs_inner_match(self):
        """The as-binding only applies when the inner pattern matches."""
        assert value_of("case 5 of { n = 4 then 0; _ then 1 }") == 1.0

    def test_unit_pattern(self):
        """() matches only nil."""
        source = 'case {} of {{ () then "unit"; _ then "other" }}'
        assert value_of(source.format("nil")) == "unit"
        assert value_of(source.format("false")) == "other"

    def test_literal_match_is_type_strict(self):
        """true does not match the literal 1."""
        assert value_of('case true of { 1 then "num"; true then "bool" }') == "bool"

    def test_string_and_negative_literals(self):
        """String and negative number literals."""
        assert value_of('case "b" of { "a" then 1; "b" then 2 }') == 2.0
        assert value_of("case -1 of { -1 then true; _ then false }") is True

    def test_nested_patterns(self):
        """Patterns nest."""
        assert value_of("case (1, [2, (3, 4)]) of { (a, [b, (c, d)]) then a + b + c + d }") == 10.0

    def test_guard(self):
        """A failing guard falls through to the next arm."""
        source = 'case {} of {{ n if n > 10 then "big"; n then "small" }}'
        assert value_of(source.format(50)) == "big"
        assert value_of(source.format(5)) == "small"

    def test_guard_sees_bindings(self):
        """Guards run with the arm's bindings in scope."""
        assert value_of("case (3, 3) of { (a, b) if a == b then \"pair\"; _ then \"no\" }") == "pair"

    def test_non_exhaustive(self):
        """No matching arm is E407."""
        _, diag = error_of("print case 3 of { 1 then 1; 2 then 2 };")
        assert diag.code == "E407"
        assert "3" in diag.message

    def test_duplicate_binding_is_rejected(self):
        """(a, a) is a syntax error, so nothing runs."""
        lines, diagnostics = run("print 0; print case (1, 2) of { (a, a) then a };")
        assert lines == []
        assert diagnostics.had_syntax_error
        assert diagnostics.diagnostics[0].code == "E107"

    def test_failed_arm_bindings_discarded(self):
        """Bindings from a partially matching arm never reach later arms."""
        _, diag = error_of("print case (1, 2) of { (a, 3) then a; _ then a };")
        assert diag.code == "E401"

    def test_bindings_do_not_escape(self):
        """Arm bindings live in the arm's own frame."""
        lines, diag = error_of("print case 1 of { x then x }; print x;")
        assert lines == ["1"]
        assert diag.code == "E401"

    def test_subject_evaluated_once(self):
        """The subject is evaluated exactly once."""
        lines = output_of("""
            var calls = 0;
            fn next() {
                calls = calls + 1;
                return calls;
            }
            print case next() of { 5 then "five"; 6 then "six"; n then n };
            print calls;
        """)
        assert lines == ["1", "1"]

    def test_recursive_match(self):
        """Pattern matching drives a recursive sum over nested pairs."""
        lines = output_of("""
            fn total(list) {
                return case list of {
                    () then 0;
                    (head, tail) then head + total(tail)
                };
            }
            print total((1, (2, (3, nil))));
        """)
        assert lines == ["6"]


class TestErrorPropagation:
    """Test runtime error reporting and recovery."""

    def test_error_aborts_rest_of_program(self):
        """Statements after a runtime error do not run."""
        lines, diag = error_of("print 1; print nope; print 2;")
        assert lines == ["1"]
        assert diag.code == "E401"

    def test_error_position_and_source_line(self):
        """Runtime errors carry the reference position and line."""
        _, diag = error_of("var a = 1;\nprint a + b;")
        assert diag.span.start.line == 2
        assert diag.span.start.column == 11
        assert diag.source_line == "print a + b;"

    def test_syntax_error_prevents_execution(self):
        """Nothing runs when the program does not parse."""
        lines, diagnostics = run("print 1; print (;")
        assert lines == []
        assert diagnostics.had_syntax_error
        assert not diagnostics.had_runtime_error

    def test_interpreter_survives_error(self):
        """A later interpret call works after a failed one (REPL style)."""
        interpreter = Interpreter(output=io.StringIO())
        run("var a = 1;", interpreter)
        _, diagnostics = run("fn f() { return missing; } f();", interpreter)
        assert diagnostics.had_runtime_error
        assert interpreter.environment is interpreter.globals

        interpreter.diagnostics.reset()
        lines, diagnostics = run("print a; print f;", interpreter)
        assert lines == ["1", "<fn f>"]
        assert not diagnostics.has_errors

    def test_interpret_in_custom_environment(self):
        """interpret can target a caller-supplied frame."""
        interpreter = Interpreter(output=io.StringIO())
        statements, _ = scan_and_parse("var local = 1;")
        frame = interpreter.globals.extend("sandbox")
        interpreter.interpret(statements, frame)
        assert frame.contains("local")
        assert not interpreter.globals.contains("local")

    def test_interpret_skips_placeholders(self):
        """None entries from failed declarations are ignored."""
        out = io.StringIO()
        interpreter = Interpreter(output=out)
        statements, _ = scan_and_parse("var = 1; print 2;")
        diagnostics = interpreter.interpret(statements)
        assert out.getvalue() == "2\n"
        assert not diagnostics.had_runtime_error

    def test_shared_collector(self):
        """The interpreter records into the collector it was given."""
        collector = DiagnosticCollector()
        interpreter = Interpreter(output=io.StringIO(), diagnostics=collector)
        run("print missing;", interpreter)
        assert collector.had_runtime_error
        assert collector.diagnostics[0].code == "E401"


class TestValueHelpers:
    """Test the value rules directly."""

    def test_is_truthy(self):
        """nil and false only."""
        assert not is_truthy(None)
        assert not is_truthy(False)
        assert is_truthy(0.0)
        assert is_truthy("")
        assert is_truthy([])

    def test_is_equal(self):
        """Type-strict equality."""
        assert is_equal(None, None)
        assert not is_equal(True, 1.0)
        assert not is_equal(math.nan, math.nan)
        assert is_equal((1.0, "a"), (1.0, "a"))
        assert not is_equal([1.0], (1.0,))

    def test_stringify_numbers(self):
        """Integral numbers drop '.0'."""
        assert stringify(3.0) == "3"
        assert stringify(0.1) == "0.1"
        assert stringify(-math.inf) == "-inf"

    def test_type_name(self):
        """Type names used in error messages."""
        assert type_name(None) == "nil"
        assert type_name(True) == "boolean"
        assert type_name(1.0) == "number"
        assert type_name((1.0, 2.0)) == "tuple"
        assert type_name([]) == "vector"
