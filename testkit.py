"""
Test infrastructure shared by the test_*.py suites.

Each suite is runnable on its own (`python test_codec.py`) through
run_suite, and collected by pytest through the `r` fixture in conftest.py.
"""

import time


class TestResult:
    __test__ = False

    def __init__(self, name):
        self.name = name
        self.passed = False
        self.message = ""
        self.elapsed = 0.0

    def __repr__(self):
        status = "PASS" if self.passed else "FAIL"
        return f"  [{status}] {self.name} ({self.elapsed:.1f}ms){': ' + self.message if self.message else ''}"


def run_test(name, func):
    """Run a single test, catching exceptions."""
    result = TestResult(name)
    start = time.time()
    try:
        func(result)
        result.passed = True
    except AssertionError as e:
        result.message = str(e) or "Assertion failed"
    except Exception as e:
        result.message = f"{type(e).__name__}: {e}"
    result.elapsed = (time.time() - start) * 1000
    return result


def run_suite(title, tests):
    print("=" * 72)
    print(f"  urcodec — {title}")
    print("=" * 72)
    print()

    results = []
    for name, func in tests:
        result = run_test(name, func)
        results.append(result)
        print(result)

    print()
    print("-" * 72)
    passed = sum(1 for r in results if r.passed)
    failed = sum(1 for r in results if not r.passed)
    total_ms = sum(r.elapsed for r in results)

    print(f"  Results: {passed} passed, {failed} failed, "
          f"{len(results)} total ({total_ms:.0f}ms)")

    if failed > 0:
        print()
        print("  FAILED TESTS:")
        for r in results:
            if not r.passed:
                print(f"    • {r.name}: {r.message}")

    print("=" * 72)

    return 0 if failed == 0 else 1
