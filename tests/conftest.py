"""Shared test fixtures."""

import shutil
import sys
from pathlib import Path

import pytest

# Add project root to path for plugin imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Only shell builtins plus absolute paths, as the plugin pins $PATH for the cli
FAKE_CLI_TEMPLATE = """#!/bin/sh
printf '%s\\n' "$*" >> "{dir}/calls.log"
printf '%s\\n' "$PATH" > "{dir}/path.log"
printf '%s\\n' "$$" > "{dir}/pid.log"
{extra}
case "$1" in
    main) out="{dir}/main.txt" ;;
    vsf) out="{dir}/vsf_${{3#ctrl=}}.txt" ;;
    *) out="" ;;
esac
if [ -n "$out" ] && [ -f "$out" ]; then
    while IFS= read -r line || [ -n "$line" ]; do
        printf '%s\\n' "$line"
    done < "$out"
fi
exit {exit_code}
"""


def load_fixture(name):
    """Load fixture file content."""
    return (FIXTURES_DIR / name).read_text()


class FakeAreca:
    """A stand-in Areca cli in a temp dir, answering 'main' and 'vsf info ctrl=<N>' from text files."""

    def __init__(self, directory):
        self.dir = directory
        self.path = directory / "cli"

    def write(self, exit_code=0, extra="", mode=0o755):
        self.path.write_text(FAKE_CLI_TEMPLATE.format(dir=self.dir, extra=extra, exit_code=exit_code))
        self.path.chmod(mode)
        return self

    def hang(self, secs=30):
        sleep = shutil.which("sleep")
        return self.write(extra="{0} {1}".format(sleep, secs))

    def set_main(self, fixture):
        (self.dir / "main.txt").write_text(load_fixture(fixture))
        return self

    def set_card(self, card, fixture):
        (self.dir / "vsf_{0}.txt".format(card)).write_text(load_fixture(fixture))
        return self

    @property
    def calls(self):
        calls_log = self.dir / "calls.log"
        if not calls_log.exists():
            return []
        return calls_log.read_text().splitlines()

    @property
    def seen_path(self):
        return (self.dir / "path.log").read_text().strip()

    @property
    def pid(self):
        return int((self.dir / "pid.log").read_text().strip())


@pytest.fixture
def fake_cli(tmp_path):
    """An executable fake Areca cli returning nothing until fixtures are set."""
    return FakeAreca(tmp_path).write()


@pytest.fixture
def plugin(fake_cli):
    """A CheckAreca configured as process_options() would, pointed at the fake cli without sudo."""
    from check_areca import CheckAreca

    check = CheckAreca()
    check.areca_cli = str(fake_cli.path)
    check.privilege_prefix = ""
    check.cards = 0
    check.timeout = 5
    return check

