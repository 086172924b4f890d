# -*- coding: utf-8 -*-
"""
Keep /etc/oratab in step with the instances actually running on the host.

    SID:ORACLE_HOME:FLAG[:anything else]

FLAG becomes Y for a running instance and N for one that is down. Running
instances missing from the file are added. Comments, blank lines and the
'*' wildcard entry are left alone. Every write is preceded by a backup
( <oratab>.bak.<epoch> ) and backups older than the retention are pruned.

The update can run once, in a loop ( monitor ), or from a systemd timer.
"""
import difflib
import glob
import os
import shutil
import sys
import time

from orapac import config
from orapac import pmon
from orapac.dbug import debugg
from orapac.errors import LockError, OratabError
from orapac.loggy import begin, end, loggy
from orapac.utils import run_local, whoami, is_root

# order the product trees are searched when guessing a home for a new entry
GUESS_DIRS = ["/opt/oracle/product", "/u01/app/oracle/product"]
TIMER_NAME = "updateOratab.timer"


class OratabResult(object):
    """What update_oratab() did: changed, changes ( list of str ), backup file"""

    def __init__(self, changed=False, changes=None, backup=None, text=None):
        self.changed = changed
        self.changes = changes or []
        self.backup = backup
        self.text = text

    def as_dict(self):
        return {'changed': self.changed, 'changes': self.changes, 'backup': self.backup}


def is_entry(line):
    """True for SID:HOME lines, False for comments, blanks and junk"""
    return bool(line.strip()) and not line.lstrip().startswith("#") and ":" in line


def running_processes(ps_output=None):
    """[(sid, pid, user), ...] for database and ASM pmon processes"""
    if ps_output is None:
        ps_output = pmon.ps_listing()
    return pmon.parse_pmon_processes(ps_output, pmon.ANY_PMON_PATTERN)


def running_instances(ps_output=None):
    """Names of the running instances ( database and ASM )"""
    names = [sid for sid, pid, user in running_processes(ps_output)]
    for name in names:
        debugg("Found running instance: {}".format(name))
    return names


def guess_oracle_home(guess_dirs=None):
    """
    First directory under the product trees ( 2 levels deep ) holding a bin
    directory, /u01/app/oracle when nothing is installed where we look.
    """
    if guess_dirs is None:
        guess_dirs = GUESS_DIRS

    for product_dir in guess_dirs:
        if not os.path.isdir(product_dir):
            continue
        for pattern in ("bin", os.path.join("*", "bin")):
            for bin_dir in sorted(glob.glob(os.path.join(product_dir, pattern))):
                if os.path.isdir(bin_dir):
                    return os.path.dirname(bin_dir)

    return config.oracle_base


def home_resolver(processes, proc_root="/proc", guess_dirs=None):
    """Return fx(sid) => home read from the running process, else guessed."""
    pids = dict((sid, pid) for sid, pid, user in processes)

    def home_for(sid):
        pid = pids.get(sid)
        if pid is not None:
            home = pmon.home_from_environ(pid, proc_root) or pmon.home_from_exe(pid, proc_root)
            if home:
                return home
        return guess_oracle_home(guess_dirs)

    return home_for


def join_lines(lines, original):
    text = "\n".join(lines)
    if lines and (original.endswith("\n") or not original):
        text += "\n"
    return text


def reconcile(text, running, home_for=None):
    """
    Set each entry's flag from running ( list of SIDs ) and append the
    running SIDs the file doesn't know about.
    Returns ( new_text, [change descriptions] ).
    """
    if home_for is None:
        home_for = lambda sid: guess_oracle_home()

    running = list(running)
    new_lines = []
    changes = []
    known = set()

    for line in text.splitlines():
        if not is_entry(line):
            new_lines.append(line)
            continue

        fields = line.split(":")
        sid = fields[0].strip()
        known.add(sid)
        if sid == "*":
            new_lines.append(line)
            continue

        flag = "Y" if sid in running else "N"
        current = fields[2] if len(fields) > 2 else ""
        if current != flag:
            changes.append("{}: status changed from {} to {}".format(sid, current or "(none)", flag))
            debugg("Updating {}: status changed from {} to {}".format(sid, current, flag))

        new_lines.append(":".join([fields[0], fields[1], flag] + fields[3:]))

    for sid in running:
        if sid in known:
            continue
        home = home_for(sid)
        changes.append("{}: added with home {}".format(sid, home))
        debugg("Adding new instance: {}".format(sid))
        new_lines.append("{}:{}:Y".format(sid, home))
        known.add(sid)

    return join_lines(new_lines, text), changes


def cleanup_nonrunning(text):
    """Drop the entries flagged N. Returns ( new_text, [removed SIDs] )."""
    new_lines = []
    removed = []
    for line in text.splitlines():
        if is_entry(line):
            fields = line.split(":")
            if fields[0].strip() != "*" and len(fields) > 2 and fields[2] == "N":
                removed.append(fields[0])
                debugg("Removing non-running entry: {}".format(fields[0]))
                continue
        new_lines.append(line)
    return join_lines(new_lines, text), removed


def unified_diff(old, new, path):
    return "".join(difflib.unified_diff(old.splitlines(True), new.splitlines(True),
                                        fromfile=path, tofile=path + " (updated)"))


def backup_oratab(path, now=None):
    if now is None:
        now = time.time()
    backup = "{}.bak.{}".format(path, int(now))
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        raise OratabError("Failed to create backup: {} ({})".format(backup, e), rc=1)
    debugg("Backup created: {}".format(backup))
    return backup


def prune_backups(path, retention_days=None, now=None):
    """Delete <path>.bak.<epoch> files more than retention_days days old. Returns what was deleted."""
    retention_days = config.int_setting("GV_ORATAB_BACKUP_RETENTION_DAYS", retention_days)
    if now is None:
        now = time.time()

    deleted = []
    for backup in sorted(glob.glob(path + ".bak.*")):
        stamp = backup.rsplit(".bak.", 1)[1]
        if not stamp.isdigit() or not os.path.isfile(backup):
            continue
        age_days = (int(now) - int(stamp)) // 86400
        if age_days > retention_days:
            os.remove(backup)
            deleted.append(backup)
            debugg("Deleted old backup: {} ({} days old)".format(os.path.basename(backup), age_days))
    return deleted


def write_oratab(path, text):
    """Rewrite in place so the file keeps its owner and permissions."""
    try:
        with open(path, 'w') as f:
            f.write(text)
    except OSError as e:
        raise OratabError("Failed to update {}: {}".format(path, e), rc=1)


def update_oratab(path=None, dry_run=False, cleanup=False, verbose=False, ps_output=None,
                  proc_root="/proc", guess_dirs=None, now=None, stream=None):
    """
    One reconcile pass over path ( default GV_ORATAB_FILE ).
    cleanup also drops the entries that end up flagged N.
    """
    begin("updateOratab")
    path = config.setting("GV_ORATAB_FILE", path)

    try:
        with open(path, 'r') as f:
            original = f.read()
    except OSError as e:
        raise OratabError("File is not readable: {} ({})".format(path, e), rc=1)

    processes = running_processes(ps_output)
    running = [sid for sid, pid, user in processes]
    new_text, changes = reconcile(original, running, home_resolver(processes, proc_root, guess_dirs))

    if cleanup:
        new_text, removed = cleanup_nonrunning(new_text)
        changes += ["{}: removed, not running".format(sid) for sid in removed]
        if not removed:
            loggy("output", "No non-running entries found to remove")

    result = OratabResult(changed=new_text != original, changes=changes, text=new_text)

    if not result.changed:
        if verbose:
            loggy("output", "No changes needed in {}".format(path))
        end("updateOratab")
        return result

    if dry_run:
        loggy("output", "DRY-RUN: Would update {}".format(path))
        if verbose:
            (stream or sys.stdout).write(unified_diff(original, new_text, path))
        end("updateOratab")
        return result

    result.backup = backup_oratab(path, now)
    prune_backups(path, now=now)
    write_oratab(path, new_text)
    loggy("success", "Updated {} with current instance status".format(path))
    for change in changes:
        loggy("variable", change)

    end("updateOratab")
    return result


class OratabLock(object):
    """
    PID lock file so only one update runs at a time.

        with OratabLock():
            update_oratab()
    """

    def __init__(self, path=None):
        self.path = path or config.oratab_lock_file
        self.acquired = False

    @staticmethod
    def pid_alive(pid):
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # exists, owned by someone else
            return True
        return True

    def create(self):
        """O_EXCL create, False when the file is already there"""
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        except OSError as e:
            raise LockError("Failed to create lock file: {} ({})".format(self.path, e), rc=1)
        with os.fdopen(fd, 'w') as f:
            f.write("{}\n".format(os.getpid()))
        return True

    def holder(self):
        try:
            with open(self.path, 'r') as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""

    def acquire(self):
        if not self.create():
            content = self.holder()
            if content.isdigit() and int(content) != os.getpid() and self.pid_alive(int(content)):
                raise LockError("Another instance of update-oratab is already running (PID: {})".format(content), rc=1)
            debugg("Removing stale lock file (PID {} no longer exists)".format(content or "unknown"))
            try:
                os.remove(self.path)
            except FileNotFoundError:
                debugg("Stale lock file already gone")
            # someone else may have taken it between the remove and here
            if not self.create():
                raise LockError("Another instance of update-oratab is already running (PID: {})".format(
                    self.holder() or "unknown"), rc=1)

        self.acquired = True
        debugg("Lock acquired (PID: {})".format(os.getpid()))
        return self

    def release(self):
        if self.acquired and os.path.exists(self.path):
            os.remove(self.path)
            debugg("Lock released")
        self.acquired = False

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc_value, tb):
        self.release()
        return False


def service_unit(python=None):
    """updateOratab.service text, runs one update pass as oracle"""
    if python is None:
        python = sys.executable
    return """[Unit]
Description=Update Oracle oratab with running database instances
After=network.target
Requires=updateOratab.timer

[Service]
Type=oneshot
ExecStart={} -m orapac.cli update-oratab --update-once
User=oracle
StandardOutput=journal
StandardError=journal

[Install]
WantedBy=multi-user.target
""".format(python)


def timer_unit(interval=None):
    interval = config.int_setting("GV_ORATAB_TIMER_INTERVAL", interval)
    return """[Unit]
Description=Timer for Oracle oratab updates
Requires=updateOratab.service

[Timer]
OnBootSec=30sec
OnUnitActiveSec={}sec
AccuracySec=1sec
Persistent=true

[Install]
WantedBy=timers.target
""".format(interval)


def systemctl(*args, **kwargs):
    """systemctl args, OratabError with the output if it fails ( check=False to just get the result )"""
    check = kwargs.get("check", True)
    results = run_local(["systemctl"] + list(args))
    loggy("command", "systemctl {}".format(" ".join(args)))
    if check and results.rc != 0:
        raise OratabError("systemctl {} failed: {}".format(" ".join(args), results.output), rc=1)
    return results


def require_root(action):
    if not is_root():
        raise OratabError("{} requires root privileges".format(action), rc=1)


def install_timer(interval=None, service_file=None, timer_file=None):
    """Write both units, reload systemd, enable and start the timer."""
    begin("installTimer")
    require_root("Timer installation")
    service_file = service_file or config.systemd_service
    timer_file = timer_file or config.systemd_timer
    interval = config.int_setting("GV_ORATAB_TIMER_INTERVAL", interval)

    loggy("output", "Installing systemd timer (interval: {}s)".format(interval))
    for unit_file, text in ((service_file, service_unit()), (timer_file, timer_unit(interval))):
        try:
            with open(unit_file, 'w') as f:
                f.write(text)
        except OSError as e:
            raise OratabError("Failed to create {}: {}".format(unit_file, e), rc=1)
        debugg("Unit file created: {}".format(unit_file))

    systemctl("daemon-reload")
    systemctl("enable", TIMER_NAME)
    systemctl("start", TIMER_NAME)
    loggy("success", "Timer installation complete. Use 'systemctl status {}' to check status.".format(TIMER_NAME))
    end("installTimer")


def remove_timer(service_file=None, timer_file=None):
    """Stop / disable the timer if needed, delete the units, reload systemd."""
    begin("removeTimer")
    require_root("Timer removal")
    service_file = service_file or config.systemd_service
    timer_file = timer_file or config.systemd_timer

    if systemctl("is-active", "--quiet", TIMER_NAME, check=False).rc == 0:
        systemctl("stop", TIMER_NAME)
    if systemctl("is-enabled", "--quiet", TIMER_NAME, check=False).rc == 0:
        systemctl("disable", TIMER_NAME)

    for unit_file in (service_file, timer_file):
        if os.path.exists(unit_file):
            try:
                os.remove(unit_file)
            except OSError as e:
                raise OratabError("Failed to remove {}: {}".format(unit_file, e), rc=1)
            debugg("Unit file removed: {}".format(unit_file))

    systemctl("daemon-reload")
    loggy("success", "Timer removal complete")
    end("removeTimer")


def monitor(interval=None, max_iterations=None, sleep=time.sleep, **update_kwargs):
    """Update, sleep interval seconds, repeat. Forever unless max_iterations is set."""
    interval = config.int_setting("GV_ORATAB_CHECK_INTERVAL", interval)
    loggy("output", "Starting monitoring loop with {}s interval".format(interval))

    passes = 0
    while max_iterations is None or passes < max_iterations:
        update_oratab(**update_kwargs)
        passes += 1
        if max_iterations is not None and passes >= max_iterations:
            break
        if update_kwargs.get("verbose"):
            loggy("variable", "Next check in {} seconds".format(interval))
        sleep(interval)
    return passes


def validate_environment(path=None):
    """Warn when not running as oracle. The oratab must be readable ( rc 1 )."""
    path = config.setting("GV_ORATAB_FILE", path)
    user = whoami()
    if user != "oracle":
        loggy("output", "Warning: running as {}, not oracle user. Instance detection may be limited.".format(user))
    if not os.access(path, os.R_OK):
        raise OratabError("File is not readable: {}".format(path), rc=1)
    return(True)
