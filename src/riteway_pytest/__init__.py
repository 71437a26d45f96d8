"""riteway-pytest - given/should/actual/expected assertions for pytest.

Each ``assert_`` call registers one asynchronous test case with an engine:
pytest by default, or any object implementing the Engine protocol.

Modules:
    adapter: The ``assert_`` callable with its ``only`` and ``skip`` modes.
    record: AssertionRecord, the validated given/should/actual/expected model.
    engine: Engine protocol, registrations and the InProcessEngine runner.
    collect: PytestEngine and the AssertionItem pytest item.
    pytest_plugin: Hooks turning registrations into collected pytest items.

Example:
    >>> from riteway_pytest import assert_
    >>> assert_(given="a list", should="equal itself", actual=[1, 2], expected=[1, 2])
"""

from riteway_pytest.adapter import Assert, assert_
from riteway_pytest.collect import PytestEngine, UncollectedAssertionWarning
from riteway_pytest.engine import (
    CaseResult,
    Engine,
    InProcessEngine,
    Mode,
    Registration,
    RunReport,
    Status,
)
from riteway_pytest.errors import (
    AssertionMismatch,
    ConfigurationError,
    LateRegistrationError,
    RitewayError,
)
from riteway_pytest.record import AssertionRecord

__version__ = "1.0.0"

__all__ = [
    "Assert",
    "AssertionMismatch",
    "AssertionRecord",
    "CaseResult",
    "ConfigurationError",
    "Engine",
    "InProcessEngine",
    "LateRegistrationError",
    "Mode",
    "PytestEngine",
    "Registration",
    "RitewayError",
    "RunReport",
    "Status",
    "UncollectedAssertionWarning",
    "assert_",
    "__version__",
]
