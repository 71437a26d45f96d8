"""End-to-end tests for the pytest plugin, driven through pytester."""

from __future__ import annotations

import pytest

from riteway_pytest import PytestEngine, Registration
from riteway_pytest.engine import Location

SYNC_AND_ASYNC = """
import asyncio

from riteway_pytest import assert_


async def produce(value):
    await asyncio.sleep(0)
    return value


assert_(
    given="a pure function",
    should="return its constant",
    actual=(lambda: "foo")(),
    expected="foo",
)

assert_(
    given="an async function",
    should="resolve to its value",
    actual=produce("foo"),
    expected="foo",
)
"""

WITH_ONLY = """
from riteway_pytest import assert_

assert_.only(given="calling the testFn", should="return foo", actual="foo", expected="foo")

assert_(given="calling the testFn", should="implicitly skip this test", actual=1, expected=2)


def test_plain_function():
    assert False
"""

PLAIN = """
from riteway_pytest import assert_

assert_(given="another module", should="still run", actual=[1], expected=[1])
"""


class TestNormalRegistration:
    """assert_ registrations become pytest items."""

    def test_sync_and_async_cases_pass(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(SYNC_AND_ASYNC)
        result = riteway_pytester.runpytest("-v")

        result.assert_outcomes(passed=2)
        result.stdout.fnmatch_lines(
            [
                "*::given a pure function: should return its constant PASSED*",
                "*::given an async function: should resolve to its value PASSED*",
            ]
        )

    def test_mismatch_shows_equality_diff(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_(given="a dict", should="match", actual={"a": 1}, expected={"a": 2})
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(failed=1)
        result.stdout.fnmatch_lines(
            [
                "*given a dict: should match*",
                "*assert {'a': 1} == {'a': 2}*",
                "*Differing items*",
            ]
        )

    def test_scalar_mismatch_falls_back_to_repr(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_(given="one", should="equal two", actual=1, expected=2)
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(failed=1)
        result.stdout.fnmatch_lines(["*assert 1 == 2*"])

    def test_rejected_actual_fails_with_its_error(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_


            async def broken():
                raise ValueError("boom")


            assert_(given="a failing call", should="fail", actual=broken(), expected="foo")
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(failed=1)
        result.stdout.fnmatch_lines(["*ValueError: boom*"])

    def test_identical_registrations_run_independently(
        self, riteway_pytester: pytest.Pytester
    ) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            config = {"given": "x", "should": "y", "actual": 1, "expected": 1}
            assert_(config)
            assert_(config)
            """
        )
        result = riteway_pytester.runpytest()
        result.assert_outcomes(passed=2)

        collected = riteway_pytester.runpytest("--collect-only", "-q")
        assert collected.stdout.str().count("::given x: should y") == 2

    def test_empty_registration_passes(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_()
            """
        )
        result = riteway_pytester.runpytest("-v")

        result.assert_outcomes(passed=1)
        result.stdout.fnmatch_lines(["*::given None: should*PASSED*"])

    def test_cases_keep_declaration_order(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_(given="first", should="run first")


            def test_middle():
                pass


            assert_(given="last", should="run last")
            """
        )
        result = riteway_pytester.runpytest("-v")

        result.assert_outcomes(passed=3)
        result.stdout.fnmatch_lines(
            [
                "*::given first: should run first PASSED*",
                "*::test_middle PASSED*",
                "*::given last: should run last PASSED*",
            ]
        )


class TestSkipRegistration:
    """assert_.skip registrations are reported as skipped."""

    def test_mismatched_skip_is_skipped(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_.skip({"given": "x", "should": "y", "actual": 1, "expected": 2})
            """
        )
        result = riteway_pytester.runpytest("-rs")

        result.assert_outcomes(skipped=1)
        result.stdout.fnmatch_lines(["*skipped by assert_.skip*"])

    def test_skipped_coroutine_is_closed(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_


            async def never():
                return 1


            assert_.skip(given="a coroutine", should="never run", actual=never(), expected=2)
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(skipped=1)
        assert "never awaited" not in result.stdout.str()


class TestExclusiveRegistration:
    """assert_.only suppresses every other test in its scope."""

    def test_only_skips_module_siblings(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(test_focused=WITH_ONLY, test_other=PLAIN)
        result = riteway_pytester.runpytest("-v", "-rs")

        result.assert_outcomes(passed=2, skipped=2)
        result.stdout.fnmatch_lines_random(
            [
                "*test_focused.py::given calling the testFn: should return foo PASSED*",
                "*test_focused.py::given calling the testFn: should implicitly skip this test SKIPPED*",
                "*test_focused.py::test_plain_function SKIPPED*",
                "*test_other.py::given another module: should still run PASSED*",
                "*skipped by assert_.only*",
            ]
        )

    def test_session_scope_from_option(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(test_focused=WITH_ONLY, test_other=PLAIN)
        result = riteway_pytester.runpytest("--riteway-only-scope=session")

        result.assert_outcomes(passed=1, skipped=3)

    def test_session_scope_from_ini(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makeini("[pytest]\nriteway_only_scope = session\n")
        riteway_pytester.makepyfile(test_focused=WITH_ONLY, test_other=PLAIN)
        result = riteway_pytester.runpytest()

        result.assert_outcomes(passed=1, skipped=3)

    def test_session_scope_from_environment(
        self, riteway_pytester: pytest.Pytester, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RITEWAY_ONLY_SCOPE", "session")
        riteway_pytester.makepyfile(test_focused=WITH_ONLY, test_other=PLAIN)
        result = riteway_pytester.runpytest()

        result.assert_outcomes(passed=1, skipped=3)

    def test_multiple_only_cases_all_run(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            import asyncio

            from riteway_pytest import assert_


            async def produce(value):
                await asyncio.sleep(0)
                return value


            assert_.only(given="sync", should="run", actual="foo", expected="foo")
            assert_(given="plain", should="be skipped", actual=1, expected=2)
            assert_.only(given="async", should="run", actual=produce("foo"), expected="foo")
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(passed=2, skipped=1)

    def test_failing_only_case_fails(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_.only(given="focus", should="fail", actual=1, expected=2)
            assert_(given="plain", should="be skipped")
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(failed=1, skipped=1)

    def test_skip_wins_over_only_siblings(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_.only(given="focus", should="run")
            assert_.skip(given="parked", should="stay skipped", actual=1, expected=2)
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(passed=1, skipped=1)


class TestSelection:
    """Marker selection and deselection."""

    def test_riteway_marker_selects_assertions(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_(given="marked", should="be selected", actual=1, expected=1)


            def test_unmarked():
                pass
            """
        )
        result = riteway_pytester.runpytest("-m", "riteway", "--strict-markers")

        result.assert_outcomes(passed=1, deselected=1)

    def test_deselected_coroutine_is_closed(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_


            async def never():
                return 1


            assert_(given="a coroutine", should="be deselected", actual=never(), expected=1)


            def test_kept():
                pass
            """
        )
        result = riteway_pytester.runpytest("-k", "kept")

        result.assert_outcomes(passed=1, deselected=1)
        assert "never awaited" not in result.stdout.str()


class TestConfiguration:
    """Plugin settings: validation and reported skip reasons."""

    def test_invalid_option_value(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(PLAIN)
        result = riteway_pytester.runpytest("--riteway-only-scope=bogus")

        assert result.ret == pytest.ExitCode.USAGE_ERROR

    def test_invalid_ini_value(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makeini("[pytest]\nriteway_only_scope = bogus\n")
        riteway_pytester.makepyfile(PLAIN)
        result = riteway_pytester.runpytest()

        assert result.ret == pytest.ExitCode.USAGE_ERROR
        result.stderr.fnmatch_lines(["*Invalid value 'bogus' for only_scope*"])

    def test_marker_is_registered(self, riteway_pytester: pytest.Pytester) -> None:
        result = riteway_pytester.runpytest("--markers")
        result.stdout.fnmatch_lines(["@pytest.mark.riteway:*"])

    def test_skip_reasons_from_ini(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makeini(
            "[pytest]\nriteway_only_reason = focused elsewhere\nriteway_skip_reason = parked\n"
        )
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_

            assert_.only(given="focus", should="run")
            assert_(given="plain", should="be suppressed")
            assert_.skip(given="parked", should="stay skipped")
            """
        )
        result = riteway_pytester.runpytest("-rs")

        result.assert_outcomes(passed=1, skipped=2)
        result.stdout.fnmatch_lines_random(["*focused elsewhere*", "*parked*"])


class TestMisplacedRegistration:
    """Registrations pytest cannot collect are reported, never lost silently."""

    def test_registration_inside_a_test_fails_it(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_


            def test_wraps():
                assert_(given="late", should="fail", actual=1, expected=2)


            def test_untouched():
                pass
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(passed=1, failed=1)
        result.stdout.fnmatch_lines(["*LateRegistrationError*given late: should fail*"])

    def test_registration_in_a_fixture_errors(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            import pytest

            from riteway_pytest import assert_


            @pytest.fixture
            def registers():
                assert_(given="a fixture", should="not register")


            def test_uses(registers):
                pass
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(errors=1)
        result.stdout.fnmatch_lines(["*LateRegistrationError*given a fixture: should not register*"])

    def test_late_coroutine_is_closed(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            """
            from riteway_pytest import assert_


            async def never():
                return 1


            def test_wraps():
                assert_(given="late", should="close", actual=never(), expected=1)
            """
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(failed=1)
        assert "never awaited" not in result.stdout.str()

    def test_helper_module_registration_warns(self, riteway_pytester: pytest.Pytester) -> None:
        riteway_pytester.makepyfile(
            riteway_helper_cases="""
            from riteway_pytest import assert_

            assert_(given="a helper module", should="be reported", actual=1, expected=2)
            """,
            test_imports_helper="""
            import riteway_helper_cases


            def test_kept():
                pass
            """,
        )
        result = riteway_pytester.runpytest()

        result.assert_outcomes(passed=1)
        result.stdout.fnmatch_lines(
            ["*UncollectedAssertionWarning*given a helper module: should be reported*"]
        )


class TestPytestEngine:
    """Unit tests for binding, late registrations and unclaimed bindings."""

    @staticmethod
    def make(name: str, namespace: dict[str, object]) -> Registration:
        async def body() -> None:
            return None

        return Registration(name, body, Location("m.py", 0, "m", namespace))

    def test_binds_into_namespace(self) -> None:
        namespace: dict[str, object] = {}
        engine = PytestEngine()
        engine.register(self.make("bound", namespace))

        (binding,) = namespace.values()
        assert isinstance(binding, Registration)
        assert binding.name == "bound"

    def test_running_diverts_registrations(self) -> None:
        namespace: dict[str, object] = {}
        engine = PytestEngine()
        with engine.running() as late:
            engine.register(self.make("late", namespace))

        assert namespace == {}
        assert [registration.name for registration in late] == ["late"]

    def test_collecting_inside_running_binds(self) -> None:
        namespace: dict[str, object] = {}
        engine = PytestEngine()
        with engine.running() as late, engine.collecting():
            engine.register(self.make("nested", namespace))

        assert late == []
        assert len(namespace) == 1

    def test_unclaimed_reports_and_forgets(self) -> None:
        namespace: dict[str, object] = {}
        engine = PytestEngine()
        claimed = self.make("claimed", namespace)
        orphan = self.make("orphan", namespace)
        engine.register(claimed)
        engine.register(orphan)
        collected = [
            value
            for value in namespace.values()
            if isinstance(value, Registration) and value.name == "claimed"
        ]

        assert [registration.name for registration in engine.unclaimed(collected)] == ["orphan"]
        assert engine.unclaimed([]) == []
