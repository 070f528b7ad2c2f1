#!/usr/bin/env python
#  vim:ts=4:sts=4:sw=4:et
#
#  Author: Hari Sekhon
#  Date: 2026-10-19 11:02:47 +0100 (Mon, 19 Oct 2026)
#
#  https://github.com/harisekhon/nagios-plugins
#
#  License: see accompanying Hari Sekhon LICENSE file
#
#  If you're using my code you're welcome to connect with me on LinkedIn
#  and optionally send me feedback to help steer this or other code I publish
#
#  https://www.linkedin.com/in/harisekhon
#

"""

Nagios Plugin to check the state of all RAID sets on Areca RAID controllers using the Areca 'cli' utility

Counts the controllers via '<cli> main' unless --cards is given, then runs '<cli> vsf info ctrl=<N>' against
each controller in turn. Raises CRITICAL if any RAID set is in a state other than 'Normal'

The cli is run with the --privilege-prefix in front of it (sudo by default), so the nagios user needs a sudoers
entry allowing it to run the cli without a password

"""

import collections
import os
import re
import signal
import subprocess
import sys
import traceback
from optparse import SUPPRESS_HELP
try:
    # pylint: disable=wrong-import-position
    import psutil
    from harisekhon.utils import log, CriticalError, UnknownError
    from harisekhon.utils import plural, validate_int
    from harisekhon import NagiosPlugin
except ImportError as _:
    print(traceback.format_exc(), end='')
    sys.exit(4)

__author__ = 'Hari Sekhon'
__version__ = '1.3.0'

DEFAULT_ARECA_CLI = '/usr/local/areca/bin/cli'
DEFAULT_PRIVILEGE_PREFIX = 'sudo'
DEFAULT_TIMEOUT = 10

# the areca cli and everything it calls is resolved against this, never the inherited $PATH
SAFE_PATH = '/usr/local/bin:/usr/bin:'

CONTROLLER_REGEX = re.compile(r'^Controller#\d+\(.*')
RAID_SET_ROW_REGEX = re.compile(r'\s\d+\s')

# Field positions in a whitespace split 'vsf info' row. Everything after the number is counted from the
# right as volume and raid set names may contain spaces. Tied to the Areca cli column layout, which shifted
# in cli 1.72, so keep these positional
NUMBER_FIELD = 0
LEVEL_FIELD = -4
CAPACITY_FIELD = -3
STATE_FIELD = -1

NORMAL_STATE = 'normal'

VERSION_BANNER = """\
This is version {version} of check_areca.

License: see accompanying LICENSE file

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
"""

MANUAL = """
DIAGNOSTICS

    Command: "<cmd>", failed with exit code <N>: <output>, aborting!

        The Areca cli returned a non-zero exit code. Run the command by hand as the nagios user
        and check it works, including the sudo rule for it

    Operation timed out after <N> seconds

        The cli did not finish within --timeout seconds and was killed. Try increasing --timeout and
        run the command by hand to see if it is hanging

    An unknown error has occurred: <error>

        Running the cli failed in an unexpected way. Run the cli command by hand and check its output

    <cli> does not exist, aborting!

        The cli binary was not found. The default location is {default_cli}, use --arecacli to change it

    <cli> is not executable by the running user, aborting!

        The cli was found but the user running the plugin (usually nagios) cannot execute it

CONFIGURATION AND ENVIRONMENT

    $PATH is set to '{safe_path}' for every command run, regardless of the calling environment

    If there is more than one RAID card in the system you can give the number of cards to check with
    --cards, otherwise they are auto-detected from the output of '<cli> main'

BUGS AND LIMITATIONS

    With a large number of RAID cards the cli may take longer than the 30 seconds Nagios is willing to
    wait for a plugin. This is a property of the cli, the card or the bus, not of this plugin
""".format(default_cli=DEFAULT_ARECA_CLI, safe_path=SAFE_PATH)


class RaidSet(collections.namedtuple('RaidSet', 'number level capacity state')):

    def is_normal(self):
        return self.state.lower() == NORMAL_STATE

    def __str__(self):
        return '|Controller number: {number} RAID level: {level} Capacity: {capacity} State: {state}| '\
               .format(**self._asdict())


def pick_field(fields, index):
    # positions missing from short rows are left empty
    try:
        return fields[index]
    except IndexError:
        return ''


def parse_raid_sets(lines):
    """
    Returns a RaidSet for each table row in the given 'vsf info' output lines, in order

    Header, separator and message lines are skipped as they contain no whitespace delimited number
    """
    raid_sets = []
    for line in lines:
        if not RAID_SET_ROW_REGEX.search(line):
            continue
        fields = line.lstrip().split()
        raid_set = RaidSet(number=pick_field(fields, NUMBER_FIELD),
                           level=pick_field(fields, LEVEL_FIELD),
                           capacity=pick_field(fields, CAPACITY_FIELD),
                           state=pick_field(fields, STATE_FIELD))
        log.info('found raid set: %s', raid_set)
        raid_sets.append(raid_set)
    return raid_sets


class CheckAreca(NagiosPlugin):

    def __init__(self):
        super(CheckAreca, self).__init__()
        self.timeout_default = DEFAULT_TIMEOUT
        self.msg = 'Areca msg not defined yet'
        self.areca_cli = DEFAULT_ARECA_CLI
        self.cards = 0
        self.privilege_prefix = DEFAULT_PRIVILEGE_PREFIX
        self.env = dict(os.environ, PATH=SAFE_PATH)
        self.proc = None

    def add_options(self):
        self.add_opt('-A', '--arecacli', metavar='<path>', default=DEFAULT_ARECA_CLI,
                     help='Path to the Areca cli executable (default: {0})'.format(DEFAULT_ARECA_CLI))
        self.add_opt('-c', '--cards', metavar='<num>', default=0, type=int,
                     help='Number of RAID cards to check (default: 0 => auto-detect)')
        self.add_opt('-p', '--privilege-prefix', metavar='<cmd>', default=DEFAULT_PRIVILEGE_PREFIX,
                     help='Command to prefix the cli with to gain privileges, ' + \
                          'empty string to run the cli directly (default: {0})'.format(DEFAULT_PRIVILEGE_PREFIX))

    # @Override to get --usage, --man and a --version with its own banner and exit code
    def add_default_opts(self):
        self.add_opt('-D', '--debug', action='store_true', help=SUPPRESS_HELP, default=bool(os.getenv('DEBUG')))
        self.add_opt('-t', '--timeout', metavar='secs', default=self.timeout_default, type=int,
                     help='Timeout in secs for each cli command (default: {0})'.format(self.timeout_default))
        self.add_opt('-v', '--verbose', action='count', default=0,
                     help='Verbose level (-v => INFO, -vv => DEBUG)')
        self.add_opt('-V', '--version', dest='show_version', action='store_true',
                     help='Show version and license and exit')
        self.add_opt('-h', '--help', '--usage', dest='show_usage', action='store_true',
                     help='Show usage and exit')
        self.add_opt('--man', action='store_true', help='Show full manual and exit')
        # the framework acts on options.help and options.version itself, process_options handles these
        self._CLI__parser.set_defaults(help=False, version=False)

    def process_options(self):
        super(CheckAreca, self).process_options()
        # usage, manual and version all exit 1
        if self.get_opt('show_usage'):
            self.print_usage()
            sys.exit(1)
        if self.get_opt('show_version'):
            print(VERSION_BANNER.format(version=__version__))
            sys.exit(1)
        if self.get_opt('man'):
            self.print_usage()
            print(MANUAL)
            sys.exit(1)
        self.no_args()
        self.areca_cli = self.get_opt('arecacli')
        if not self.areca_cli:
            self.usage('--arecacli not defined')
        self.cards = self.get_opt('cards')
        validate_int(self.cards, 'cards', 0)
        self.cards = int(self.cards)
        self.timeout = self.get_opt('timeout')
        validate_int(self.timeout, 'timeout', 1, 3600)
        self.privilege_prefix = self.get_opt('privilege_prefix') or ''
        log.info('areca cli: %s', self.areca_cli)
        log.info('cards: %s', self.cards or 'auto-detect')
        log.info('privilege prefix: %s', self.privilege_prefix or '<none>')

    def print_usage(self):
        print(__doc__.strip())
        print()
        self._CLI__parser.print_help()

    def run(self):
        self.check_cli_usable()
        cards = self.cards
        if not cards:
            cards = self.get_card_count()
        log.info('checking %s card%s', cards, plural(cards))
        lines = []
        for card in range(1, cards + 1):
            lines += self.query_card(card)
        raid_sets = parse_raid_sets(lines)
        self.check_raid_sets(raid_sets, cards)

    def check_cli_usable(self):
        cli = self.areca_cli
        if not os.path.exists(cli):
            raise CriticalError('{0} does not exist, aborting!'.format(cli))
        if not os.path.isfile(cli):
            raise CriticalError('{0} is not a file, aborting!'.format(cli))
        if not os.access(cli, os.X_OK, effective_ids=os.access in os.supports_effective_ids):
            raise CriticalError('{0} is not executable by the running user, aborting!'.format(cli))

    def build_cmd(self, *args):
        return ' '.join([_ for _ in (self.privilege_prefix, self.areca_cli) + args if _])

    def get_card_count(self):
        lines = self.run_cli(self.build_cmd('main'))
        count = len([line for line in lines if CONTROLLER_REGEX.match(line)])
        log.info('detected %s Areca controller%s', count, plural(count))
        return count

    def query_card(self, card):
        return self.run_cli(self.build_cmd('vsf', 'info', 'ctrl={0}'.format(card)))

    def run_cli(self, cmd):
        """
        Runs the cli command through the shell, returning its output lines with line endings intact

        Each command gets its own timeout alarm, handled by timeout_handler()
        """
        log.debug('cmd: %s', cmd)
        signal.signal(signal.SIGALRM, self.timeout_handler)
        signal.alarm(self.timeout)
        try:
            self.proc = subprocess.Popen(cmd, shell=True, env=self.env,
                                         stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
            (stdout, _) = self.proc.communicate()
            returncode = self.proc.wait()
            stdout = stdout.decode('utf-8', 'replace')
        except OSError as _:
            raise UnknownError('An unknown error has occurred: {0}'.format(_))
        finally:
            signal.alarm(0)
            self.proc = None
        log.debug('stdout: %s', stdout)
        log.debug('returncode: %s', returncode)
        if returncode != 0:
            if returncode < 0:
                reason = 'killed by signal {0}'.format(-returncode)
            else:
                reason = 'exit code {0}'.format(returncode)
            raise CriticalError('Command: "{cmd}", failed with {reason}: {output}, aborting!'
                                .format(cmd=cmd, reason=reason, output=' '.join(stdout.split())))
        return stdout.splitlines(True)

    # @Override so a hung cli is CRITICAL rather than the framework's UNKNOWN self time out
    def timeout_handler(self, signum, frame):  # pylint: disable=unused-argument
        if self.proc is not None:
            self.kill_proc_tree(self.proc.pid)
        raise CriticalError('Operation timed out after {0} second{1}'.format(self.timeout, plural(self.timeout)))

    @staticmethod
    def kill_proc_tree(pid):
        # the cli may run as another user via the privilege prefix, so not every process can be signalled
        try:
            parent = psutil.Process(pid)
            procs = parent.children(recursive=True) + [parent]
        except psutil.Error as _:
            log.debug('unable to list processes of pid %s: %s', pid, _)
            return
        killed = []
        for proc in procs:
            log.debug('killing pid %s', proc.pid)
            try:
                proc.kill()
                killed.append(proc)
            except psutil.Error as _:
                log.debug('failed to kill pid %s: %s', proc.pid, _)
        psutil.wait_procs(killed, timeout=1)

    def check_raid_sets(self, raid_sets, cards):
        self.ok()
        if not raid_sets:
            self.msg = 'no RAID sets found'
            return
        abnormal = 0
        msg = ''
        for raid_set in raid_sets:
            msg += str(raid_set)
            if not raid_set.is_normal():
                abnormal += 1
        log.info('%s of %s raid set%s not normal', abnormal, len(raid_sets), plural(len(raid_sets)))
        if abnormal:
            self.critical()
        if self.verbose:
            msg += '[{0} RAID set{1} checked on {2} controller{3}]'\
                   .format(len(raid_sets), plural(len(raid_sets)), cards, plural(cards))
        self.msg = msg


if __name__ == '__main__':
    CheckAreca().main()
