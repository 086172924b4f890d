# -*- coding: utf-8 -*-
"""
Relocate a RAC One Node database to another cluster node with srvctl.

    relocator = RacOneNodeRelocator("orcl", target_node="racnode2")
    relocator.run()

Steps: validate environment, find current node, check the database is RAC
One Node, pick / validate the target, check it's running, confirm, relocate,
then poll srvctl status until the database shows up on the target.
Every failure raises RelocationError ( rc 1 ).
"""
import re
import time

from orapac import config
from orapac.dbug import debugg
from orapac.errors import RelocationError
from orapac.loggy import begin, end, loggy
from orapac.utils import run_local, sudo_cmd, which, whoami

RACONE_TYPE = "RACONENODE"
CANDIDATE_PATTERN = re.compile(r'^\s*(candidate servers|servers)\s*:\s*(.*)$', re.IGNORECASE)
DBTYPE_PATTERN = re.compile(r'^\s*database type\s*:\s*(.*)$', re.IGNORECASE)
RUNNING_ON = "is running on node"
REQUIRED_COMMANDS = ("crsctl", "srvctl", "sqlplus")


def parse_current_node(status_output):
    """last word of the 'Instance orcl_1 is running on node racnode1' line"""
    for line in status_output.splitlines():
        if RUNNING_ON in line:
            words = line.split()
            return words[-1] if words else None
    return None


def parse_database_type(config_output):
    for line in config_output.splitlines():
        match = DBTYPE_PATTERN.match(line)
        if match:
            return match.group(1).strip()
    return None


def parse_candidate_servers(config_output):
    """
    'Candidate servers: racnode1,racnode2' ( or 'Servers: ...' ) =>
    ['racnode1', 'racnode2']. Comma or space separated, duplicates dropped.
    """
    servers = []
    for line in config_output.splitlines():
        match = CANDIDATE_PATTERN.match(line)
        if not match:
            continue
        for server in re.split(r'[,\s]+', match.group(2).strip()):
            if server and server not in servers:
                servers.append(server)
    return servers


class RacOneNodeRelocator(object):
    """
    database       - db unique name as srvctl knows it
    target_node    - where to move it, picked from the candidate servers if None
    allow_downtime - srvctl relocate -f
    force          - skip the yes/no confirmation
    runner(argv)   - runs a command, returns a CmdResult ( default run_local )
    """

    def __init__(self, database, target_node=None, allow_downtime=False, force=False, dry_run=False,
                 verbose=False, runner=None, sleep=None, prompt=None, max_retries=None, retry_interval=None):
        if not database:
            raise RelocationError("Missing required parameter: --database", rc=1)
        self.database = database
        self.target_node = target_node
        self.allow_downtime = allow_downtime
        self.force = force
        self.dry_run = dry_run
        self.verbose = verbose
        self.runner = runner or run_local
        self.sleep = sleep or time.sleep
        self.prompt = prompt or input
        self.max_retries = config.int_setting("GV_RACONE_MAX_RETRIES", max_retries)
        self.retry_interval = config.int_setting("GV_RACONE_RETRY_INTERVAL", retry_interval)
        self.current = None
        self._config_output = None

    def srvctl(self, *args):
        cmd = ["srvctl"] + list(args)
        debugg("srvctl() :: {}".format(" ".join(cmd)))
        return self.runner(cmd)

    def database_config(self):
        if self._config_output is None:
            results = self.srvctl("config", "database", "-d", self.database)
            if results.rc != 0:
                raise RelocationError("Could not retrieve database configuration for {}: {}".format(
                    self.database, results.output), rc=1)
            self._config_output = results.output
        return self._config_output

    def validate_environment(self, which_fx=None):
        which_fx = which_fx or which
        user = whoami()
        if user != "oracle":
            loggy("output", "Warning: running as {}, not oracle user. Grid operations may be limited.".format(user))

        for cmd in REQUIRED_COMMANDS:
            if not which_fx(cmd):
                raise RelocationError("Required command not found: {}".format(cmd), rc=1)

        results = self.runner(sudo_cmd(["crsctl", "check", "cluster", "-verbose"]))
        if results.rc != 0:
            raise RelocationError("Grid Infrastructure is not running or not accessible", rc=1)

        loggy("output", "Environment validation successful")

    def current_node(self):
        results = self.srvctl("status", "database", "-d", self.database)
        node = parse_current_node(results.output)
        if not node:
            raise RelocationError("Could not determine current node for database {}".format(self.database), rc=1)
        self.current = node
        loggy("output", "Database {} is currently running on node: {}".format(self.database, node))
        return node

    def validate_database_type(self):
        db_type = parse_database_type(self.database_config())
        if not db_type:
            raise RelocationError("Could not determine database type for {}".format(self.database), rc=1)
        if db_type.upper() != RACONE_TYPE:
            raise RelocationError("Database is not a RAC One Node database (type: {})".format(db_type), rc=1)
        loggy("output", "Database type validation successful ({})".format(db_type))
        return db_type

    def candidate_servers(self):
        servers = parse_candidate_servers(self.database_config())
        if not servers:
            raise RelocationError("Could not determine candidate servers for database {}".format(self.database), rc=1)
        debugg("Candidate servers: {}".format(" ".join(servers)))
        return servers

    def auto_select_target(self):
        begin("autoSelectTargetNode")
        for server in self.candidate_servers():
            if server != self.current:
                self.target_node = server
                loggy("output", "Auto-selected target node: {}".format(server))
                end("autoSelectTargetNode")
                return server
        raise RelocationError("No alternate candidate servers available (all are current node or offline)", rc=1)

    def validate_target(self):
        if self.target_node == self.current:
            raise RelocationError("Target node is the same as current node: {}".format(self.target_node), rc=1)
        servers = self.candidate_servers()
        if self.target_node not in servers:
            raise RelocationError("Target node '{}' is not in candidate servers list. Available candidate servers: {}".format(
                self.target_node, " ".join(servers)), rc=1)
        loggy("output", "Target node validation successful")

    def check_database_status(self):
        results = self.srvctl("status", "database", "-d", self.database)
        if results.rc != 0 or "is not running" in results.output:
            raise RelocationError("Database is not running: {}".format(self.database), rc=1)
        debugg("Database status: {}".format(results.output))
        loggy("output", "Database status validation successful")

    def summary(self):
        return [
            "=== Relocation Summary ===",
            "Database: {}".format(self.database),
            "Current Node: {}".format(self.current),
            "Target Node: {}".format(self.target_node),
            "Allow Downtime: {}".format(str(bool(self.allow_downtime)).lower()),
        ]

    def confirm(self):
        if self.force:
            loggy("output", "Force flag set, skipping confirmation")
            return True
        for line in self.summary():
            loggy("output", line)
        answer = self.prompt("Proceed with relocation? (yes/no): ")
        if (answer or "").strip() != "yes":
            raise RelocationError("Relocation cancelled by user", rc=1)
        return True

    def relocate_command(self):
        cmd = ["srvctl", "relocate", "database", "-d", self.database, "-n", self.target_node]
        if self.allow_downtime:
            cmd.append("-f")
        return cmd

    def relocate(self):
        begin("relocateDatabase")
        cmd = self.relocate_command()
        if self.dry_run:
            loggy("output", "DRY-RUN: Would execute relocation command")
            loggy("command", " ".join(cmd))
            end("relocateDatabase")
            return

        loggy("output", "Relocating database {} to node {}...".format(self.database, self.target_node))
        loggy("command", " ".join(cmd))
        results = self.runner(cmd)
        if results.rc != 0:
            raise RelocationError("Database relocation failed: {}".format(results.output), rc=1)
        loggy("success", "Database relocation command executed successfully")
        end("relocateDatabase")

    def verify(self):
        begin("verifyRelocation")
        if self.dry_run:
            loggy("output", "DRY-RUN: Would verify database on target node")
            end("verifyRelocation")
            return True

        loggy("output", "Verifying database relocation (max {} attempts, {}s interval)...".format(
            self.max_retries, self.retry_interval))
        node = None
        for attempt in range(1, self.max_retries + 1):
            node = parse_current_node(self.srvctl("status", "database", "-d", self.database).output)
            if node == self.target_node:
                loggy("success", "Database successfully relocated to {}".format(self.target_node))
                end("verifyRelocation")
                return True
            if self.verbose:
                loggy("variable", "Attempt {}/{}: Database still on {}, waiting...".format(attempt, self.max_retries, node))
            if attempt < self.max_retries:
                self.sleep(self.retry_interval)

        raise RelocationError("Database relocation verification failed after {} attempts. Last known node: {} (expected: {})".format(
            self.max_retries, node, self.target_node), rc=1)

    def run(self):
        """All the steps in order. Returns ( from_node, to_node )."""
        begin("relocateRacOneNode")
        self.validate_environment()
        self.current_node()
        self.validate_database_type()
        if not self.target_node:
            loggy("output", "Target node not specified, auto-selecting from candidate servers...")
            self.auto_select_target()
        self.validate_target()
        self.check_database_status()
        self.confirm()
        self.relocate()
        self.verify()
        loggy("success", "RAC One Node Relocation Completed Successfully")
        end("relocateRacOneNode")
        return self.current, self.target_node
