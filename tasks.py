"""Developer tasks powered by Invoke."""

from __future__ import annotations

import pathlib
import subprocess
from typing import Iterable

from invoke import task

ROOT = pathlib.Path(__file__).parent.resolve()
RESULTS_DIR = ROOT / "results"


def _run(command: Iterable[str] | str) -> None:
    cmd = command if isinstance(command, str) else " ".join(command)
    subprocess.run(cmd, shell=True, check=True, cwd=ROOT)


@task
def tests(_context, slow=True):
    """Run the test suite; pass --no-slow to skip timer-driven tests."""
    marker = [] if slow else ["-m", "'not slow'"]
    _run(["uv", "run", "pytest", "tests/", *marker])


@task
def coverage(_context):
    """Run tests under coverage and generate reports."""
    RESULTS_DIR.mkdir(exist_ok=True)
    _run(["uv", "run", "coverage", "erase"])
    _run(["uv", "run", "coverage", "run", "-m", "pytest", "tests/", "--junitxml=results/pytest.xml"])
    _run(["uv", "run", "coverage", "combine"])
    _run(["uv", "run", "coverage", "report"])
    _run(["uv", "run", "coverage", "html", "-d", "results/htmlcov"])


@task
def lint(_context):
    """Run formatting and type checks."""
    _run(["uv", "run", "black", "--check", "src", "tests"])
    _run(["uv", "run", "mypy"])


@task
def build(_context):
    """Build distribution artifacts."""
    _run(["uv", "build"])
