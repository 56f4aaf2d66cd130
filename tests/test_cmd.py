import logging
import subprocess
import sys

import pytest

from kubeapply.cmd import (
    logging_debug_printer,
    logging_info_printer,
    logging_warn_printer,
    run_cmd_with_printers,
)


def _run(code, extra_env=(), blocked_env=()):
    out, err = [], []
    run_cmd_with_printers(
        sys.executable, ["-c", code], list(extra_env), set(blocked_env), out.append, err.append
    )
    return out, err


def test_stdout_and_stderr_are_split():
    out, err = _run(
        "import sys\n"
        "print('line one')\n"
        "print('line two')\n"
        "sys.stderr.write('oops\\n')\n"
    )
    assert out == ["line one", "line two"]
    assert err == ["oops"]


def test_extra_env_is_passed():
    out, _ = _run(
        "import os; print(os.environ.get('KUBEAPPLY_EXTRA', 'missing'))",
        extra_env=["KUBEAPPLY_EXTRA=a=b"],
    )
    assert out == ["a=b"]


def test_blocked_env_is_removed(monkeypatch):
    monkeypatch.setenv("KUBEAPPLY_BLOCKED", "present")
    code = "import os; print(os.environ.get('KUBEAPPLY_BLOCKED', 'missing'))"

    blocked_out, _ = _run(code, blocked_env=["KUBEAPPLY_BLOCKED"])
    open_out, _ = _run(code)

    assert blocked_out == ["missing"]
    assert open_out == ["present"]


def test_nonzero_exit_raises():
    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        _run("import sys; print('before'); sys.exit(3)")
    assert excinfo.value.returncode == 3


def test_missing_command_raises():
    with pytest.raises(FileNotFoundError):
        run_cmd_with_printers(
            "kubeapply-no-such-command", [], [], set(), lambda line: None, lambda line: None
        )


@pytest.mark.parametrize(
    "factory, level",
    [
        (logging_info_printer, logging.INFO),
        (logging_warn_printer, logging.WARNING),
        (logging_debug_printer, logging.DEBUG),
    ],
)
def test_logging_printers(caplog, factory, level):
    caplog.set_level(logging.DEBUG, logger="kubeapply.cmd")
    factory("[prefix]")("hello")
    records = [r for r in caplog.records if r.name == "kubeapply.cmd"]
    assert len(records) == 1
    assert records[0].levelno == level
    assert records[0].getMessage() == "[prefix] hello"