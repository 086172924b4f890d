# These are utility fx's
import getpass
import os
import shutil
import socket
import subprocess

from orapac.dbug import debugg


class CmdResult(object):
    """Return code and output of a command run by run_local()"""

    def __init__(self, rc, stdout, stderr):
        self.rc = rc
        self.stdout = stdout or ""
        self.stderr = stderr or ""

    @property
    def output(self):
        """stdout and stderr together, like 2>&1"""
        return (self.stdout + self.stderr).strip()

    def __repr__(self):
        return "CmdResult(rc={}, output={!r})".format(self.rc, self.output)


def run_local(cmd, input_str=None, env=None, timeout=None):
    """
    Run a command ( list of args, no shell ) on the local host using the subprocess module.
    A missing executable comes back as rc 127 like the shell would report it.
    subprocess.TimeoutExpired is left for the caller.
    """
    debugg("run_local() ...starting... with cmd={}".format(" ".join(cmd)))

    try:
        process = subprocess.run(cmd, input=input_str, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                 env=env, timeout=timeout, universal_newlines=True)
    except FileNotFoundError as e:
        debugg("run_local() :: command not found: {}".format(cmd[0]))
        return CmdResult(127, "", str(e))

    results = CmdResult(process.returncode, process.stdout, process.stderr)
    debugg("run_local()...exiting....rc={}".format(results.rc))
    return(results)


def which(cmd_name):
    """Path of cmd_name on PATH or None"""
    return shutil.which(cmd_name)


def whoami():
    return getpass.getuser()


def is_root():
    return os.geteuid() == 0


def host_name():
    """Short host name, domain stripped"""
    return socket.gethostname().split(".")[0]


def sudo_cmd(cmd):
    """Prefix cmd with sudo unless we are already root."""
    if is_root():
        return list(cmd)
    return ["sudo"] + list(cmd)
