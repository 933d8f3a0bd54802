"""Test configuration for the autotab suite.

The replay tests type a whole example document through the service.  Which
document and which debounce period they use can be chosen on the command
line, e.g.

    pytest autotab/tests/test_simulator.py --replay-example js --replay-debounce-ms 5
"""


def pytest_addoption(parser):  # noqa: D401 – pytest hook name is fixed
    group = parser.getgroup("autotab replay options")
    group.addoption(
        "--replay-example",
        metavar="NAME",
        default="python",
        help="Example document typed by the replay tests (python, js).",
    )
    group.addoption(
        "--replay-debounce-ms",
        metavar="MS",
        default="0",
        help="Debounce period used by the replay tests (default: 0)",
    )
