import os
import sys

import pytest

# Ensure repo-local imports (e.g., `import chess_logic`) resolve without extra setup.
root_dir = os.path.abspath(os.path.dirname(__file__))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "-S",
        "--slow",
        action="store_true",
        default=False,
        dest="run_slow",
        help="Run tests marked with @pytest.mark.slow (full-game selection sweeps)",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: long-running engine sweeps, enabled with -S/--slow")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("run_slow"):
        return
    skip_slow = pytest.mark.skip(reason="use -S/--slow to enable engine sweeps")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
