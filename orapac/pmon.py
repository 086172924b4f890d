# -*- coding: utf-8 -*-
"""
Find the Oracle databases running on this host.

Every running instance has a pmon background process named ora_pmon_<SID>.
The process list gives the SID, pid and owner; the Oracle home is read from
the process itself when possible:

    1. ORACLE_HOME in /proc/<pid>/environ
    2. /proc/<pid>/exe link ( .../dbhome_1/bin/oracle )
    3. /etc/oratab entry for the SID
    4. first home under the standard product trees with an executable bin/sqlplus
    5. UNKNOWN
"""
import datetime
import glob
import json
import os
import re

from orapac import config
from orapac.dbug import debugg
from orapac.errors import DiscoveryError
from orapac.loggy import loggy
from orapac.utils import run_local, which

PMON_PATTERN = re.compile(r'ora_pmon_([A-Za-z0-9_]+)')
# oratab tracks ASM instances too
ANY_PMON_PATTERN = re.compile(r'(?:ora|asm)_pmon_(\+?[A-Za-z0-9_]+)')

UNKNOWN_HOME = "UNKNOWN"
TABLE_RULE = "=" * 42
TABLE_SUB_RULE = "-" * 42
TABLE_ROW = "{:<20} {:<50} {:<15} {:<8}"


class OracleInstance(object):
    """One running instance: SID, owning user, pmon pid and Oracle home"""

    def __init__(self, name, pid, user, oracle_home=UNKNOWN_HOME):
        self.name = name
        self.pid = int(pid)
        self.user = user
        self.oracle_home = oracle_home

    def as_dict(self):
        return {
            'database': self.name,
            'oracle_home': self.oracle_home,
            'oracle_user': self.user,
            'pid': self.pid,
        }

    def __eq__(self, other):
        return isinstance(other, OracleInstance) and self.as_dict() == other.as_dict()

    def __repr__(self):
        return "OracleInstance({name!r}, {pid}, {user!r}, {home!r})".format(
            name=self.name, pid=self.pid, user=self.user, home=self.oracle_home)


def validate_environment(release_file=None):
    """This runs on RHEL / Oracle Linux only and needs ps."""
    if release_file is None:
        release_file = config.redhat_release

    if not os.path.isfile(release_file):
        raise DiscoveryError("This script requires a RHEL/Oracle Linux system", rc=1)

    if not which("ps"):
        raise DiscoveryError("Required command not found: ps", rc=1)

    return(True)


def ps_listing():
    """user pid args for every process on the box"""
    results = run_local(["ps", "-eo", "user=,pid=,args="])
    if results.rc != 0:
        raise DiscoveryError("ps failed: {}".format(results.output), rc=1)
    return(results.stdout)


def parse_pmon_processes(ps_output, pattern=PMON_PATTERN):
    """
    Given 'user pid args' lines return [(sid, pid, user), ...] for the pmon
    processes. Order is kept, duplicates are not.
    """
    found = []
    seen = set()
    for line in ps_output.splitlines():
        fields = line.split(None, 2)
        if len(fields) < 3:
            continue
        user, pid, args = fields
        if not pid.isdigit():
            continue
        # the process name is the first word of args, this skips "grep ora_pmon_x" and friends
        match = pattern.fullmatch(args.split()[0])
        if not match:
            continue
        sid = match.group(1)
        if sid in seen:
            continue
        seen.add(sid)
        found.append((sid, int(pid), user))
    return(found)


def home_from_environ(pid, proc_root="/proc"):
    """ORACLE_HOME from the process environment, None if unreadable."""
    environ_file = os.path.join(proc_root, str(pid), "environ")
    try:
        with open(environ_file, 'rb') as f:
            raw = f.read()
    except OSError:
        return None

    for item in raw.split(b'\0'):
        if item.startswith(b'ORACLE_HOME='):
            home = item.split(b'=', 1)[1].decode('utf-8', 'replace').strip()
            return home.rstrip('/') or None
    return None


def home_from_exe(pid, proc_root="/proc"):
    """Home the oracle binary runs out of: /app/oracle/19c/dbhome_1/bin/oracle => /app/oracle/19c/dbhome_1"""
    try:
        exe = os.readlink(os.path.join(proc_root, str(pid), "exe"))
    except OSError:
        return None

    exe = exe.replace(" (deleted)", "")
    if exe.endswith("/bin/oracle"):
        return exe[:-len("/bin/oracle")]
    return None


def home_from_oratab(sid, oratab_file=None):
    """Home recorded for sid in /etc/oratab"""
    if oratab_file is None:
        oratab_file = config.oratab_file
    try:
        with open(oratab_file, 'r') as f:
            lines = f.read().splitlines()
    except OSError:
        return None

    for line in lines:
        if line.startswith("#"):
            continue
        fields = line.split(":")
        if len(fields) >= 2 and fields[0] == sid and fields[1]:
            return fields[1]
    return None


def home_from_product_dirs(product_dirs=None):
    """First installed home ( has an executable bin/sqlplus ) in the standard product trees"""
    if product_dirs is None:
        product_dirs = config.product_dirs

    for product_dir in product_dirs:
        # /u01/app/oracle/product/19c and /u01/app/oracle/product/19c/dbhome_1
        candidates = sorted(glob.glob(os.path.join(product_dir, "*"))) + \
            sorted(glob.glob(os.path.join(product_dir, "*", "*")))
        for path in candidates:
            sqlplus = os.path.join(path, "bin", "sqlplus")
            if os.path.isdir(path) and os.access(sqlplus, os.X_OK):
                return path
    return None


def get_oracle_home(sid, pid, proc_root="/proc", oratab_file=None, product_dirs=None):
    """Work through the sources in order, UNKNOWN if nothing turns up."""
    debugg("get_oracle_home()...starting...sid={} pid={}".format(sid, pid))

    home = home_from_environ(pid, proc_root) or \
        home_from_exe(pid, proc_root) or \
        home_from_oratab(sid, oratab_file) or \
        home_from_product_dirs(product_dirs)

    debugg("get_oracle_home()...exiting...home={}".format(home or UNKNOWN_HOME))
    return(home or UNKNOWN_HOME)


def running_instances(ps_output=None, verbose=False, **home_kwargs):
    """
    Return [OracleInstance, ...] for the databases running on this host.
    Raises DiscoveryError(rc=2) if there aren't any.
    """
    if ps_output is None:
        ps_output = ps_listing()

    instances = []
    for sid, pid, user in parse_pmon_processes(ps_output):
        home = get_oracle_home(sid, pid, **home_kwargs)
        instances.append(OracleInstance(sid, pid, user, home))
        if verbose:
            loggy("variable", "Found database: {} at {}".format(sid, home))

    if not instances:
        raise DiscoveryError("No running Oracle databases found", rc=2)

    return(instances)


def running_sids(ps_output=None):
    """Names of every running instance, ASM included. Empty list if none."""
    if ps_output is None:
        ps_output = ps_listing()
    return [sid for sid, pid, user in parse_pmon_processes(ps_output, ANY_PMON_PATTERN)]


def format_table(instances, hostname):
    lines = [
        "",
        TABLE_RULE,
        "Oracle Databases Running on {}".format(hostname),
        TABLE_RULE,
        TABLE_ROW.format("DATABASE", "ORACLE_HOME", "USER", "PID"),
        TABLE_SUB_RULE,
    ]
    for inst in instances:
        lines.append(TABLE_ROW.format(inst.name, inst.oracle_home, inst.user, inst.pid))
    lines.append(TABLE_RULE)
    lines.append("")
    return "\n".join(lines)


def utc_timestamp(now=None):
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%SZ')


def instance_records(instances, hostname, now=None):
    stamp = utc_timestamp(now)
    records = []
    for inst in instances:
        rec = inst.as_dict()
        rec['hostname'] = hostname
        rec['timestamp'] = stamp
        records.append(rec)
    return records


def format_json(instances, hostname, now=None):
    return json.dumps(instance_records(instances, hostname, now), indent=2)
