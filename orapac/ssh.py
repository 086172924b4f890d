"""Run a command on a remote host over ssh, key or password ( sshpass ) authentication."""
import os
import subprocess

from orapac import config
from orapac.dbug import debugg
from orapac.errors import SshError
from orapac.loggy import loggy
from orapac.utils import run_local, which

SSH_OPTIONS = ["-o", "StrictHostKeyChecking=no", "-o", "UserKnownHostsFile=/dev/null"]


def validate_params(username, hostname, command, password, keyfile):
    """All failures here are rc 1. Returns the expanded keyfile path ( or None )."""
    if not username:
        raise SshError("Username is required", rc=1)
    if not hostname:
        raise SshError("Hostname is required", rc=1)
    if not command:
        raise SshError("Command is required", rc=1)
    if not password and not keyfile:
        raise SshError("Either password or keyfile must be provided", rc=1)

    if keyfile:
        keyfile = os.path.expanduser(keyfile)
        if not os.path.isfile(keyfile):
            raise SshError("Keyfile not found: {}".format(keyfile), rc=1)
        if not os.access(keyfile, os.R_OK):
            raise SshError("Keyfile not readable: {}".format(keyfile), rc=1)
        return keyfile

    return None


def build_ssh_command(username, hostname, command, port, keyfile=None, use_sshpass=False):
    """argv for the ssh call. The password never goes on the command line ( sshpass -e reads SSHPASS )."""
    cmd = []
    if use_sshpass:
        cmd += ["sshpass", "-e"]
    cmd.append("ssh")
    if keyfile:
        cmd += ["-i", keyfile]
    cmd += SSH_OPTIONS
    cmd += ["-p", str(port), "{}@{}".format(username, hostname), command]
    return cmd


def run_ssh_command(username, hostname, command, password=None, keyfile=None, port=None, timeout=None):
    """
    Run command on hostname as username and return its output ( stdout + stderr ).
        rc 1 - bad / missing parameters
        rc 2 - sshpass missing or the remote command failed
        rc 3 - timed out
    A keyfile wins over a password when both are given.
    """
    debugg("run_ssh_command()...starting...user={} host={} cmd={}".format(username, hostname, command))

    password = config.setting("GV_SSH_PASSWORD", password)
    keyfile = config.setting("GV_SSH_KEYFILE", keyfile)
    try:
        port = config.int_setting("GV_SSH_PORT", port)
        timeout = config.int_setting("GV_SSH_TIMEOUT", timeout)
    except ValueError as e:
        raise SshError("Invalid port or timeout: {}".format(e), rc=1)

    keyfile = validate_params(username, hostname, command, password, keyfile)

    env = None
    use_sshpass = False
    if not keyfile:
        if not which("sshpass"):
            raise SshError("sshpass is required for password authentication", rc=2)
        use_sshpass = True
        env = dict(os.environ)
        env["SSHPASS"] = password

    cmd = build_ssh_command(username, hostname, command, port, keyfile, use_sshpass)
    loggy("command", "ssh -p {} {}@{} {}".format(port, username, hostname, command))

    try:
        results = run_local(cmd, env=env, timeout=timeout)
    except subprocess.TimeoutExpired:
        loggy("error", "SSH command timed out after {} seconds".format(timeout))
        raise SshError("SSH command timed out after {} seconds".format(timeout), rc=3)

    if results.rc != 0:
        loggy("error", "SSH command failed with exit code {}".format(results.rc))
        if results.output:
            loggy("output", results.output)
        raise SshError("SSH command failed with exit code {}: {}".format(results.rc, results.output), rc=2)

    debugg("run_ssh_command()...exiting...")
    return(results.output)
