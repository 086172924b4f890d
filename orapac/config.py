# This file contains:
# orapac global variables and the settings lookup used by every module.
#
# Settings are resolved in this order:
#   1. runtime parameters (function argument, cli flag, module option)
#   2. environment variables named after the setting (GV_DB_HOST ...)
#   3. the constants file ( $ORAPAC_CONSTANTS or ~/.orapac.yml )
#   4. the defaults dictionary below
import os

import yaml

# to verify a value is True ([affirm]ative) it must be in this list:
affirm = ['True', 'TRUE', True, 'true', 'T', 't', 'Yes', 'YES', 'yes', 'y', 'Y']

# Debugging variables:
debugme = False
debug_log = os.path.expanduser("~/.orapac_debug.log")

# constants file location
constants_file = os.path.expanduser("~/.orapac.yml")

# ignore errors and don't fail the play? If ignore_errors is not provided this
# is the default. This will cause the module to fail the play if the module fails.
default_ignore = False

# well known files
oratab_file = "/etc/oratab"
redhat_release = "/etc/redhat-release"
oratab_lock_file = "/tmp/updateOratab.lock"
systemd_service = "/etc/systemd/system/updateOratab.service"
systemd_timer = "/etc/systemd/system/updateOratab.timer"

# Oracle software trees searched when a home can't be read from the process
oracle_base = "/u01/app/oracle"
product_dirs = ["/u01/app/oracle/product", "/opt/oracle/product"]

defaults = {
    "GV_LOGFILE": "",
    "GV_LOGLEVEL": "output",
    "GV_DB_USERNAME": "sys",
    "GV_DB_PASSWORD": "",
    "GV_DB_HOST": "localhost",
    "GV_DB_PORT": "1521",
    "GV_DB_SID": "",
    "GV_DB_SERVICE_NAME": "",
    "GV_DB_CONNECTION_STRING": "",
    "GV_SQLPLUS_PATH": "",
    "GV_SQL_RESULT_JSON": "",
    "GV_SSH_PORT": "22",
    "GV_SSH_TIMEOUT": "300",
    "GV_SSH_KEYFILE": "",
    "GV_SSH_PASSWORD": "",
    "GV_OUTPUT_FORMAT": "table",
    "GV_ORATAB_FILE": oratab_file,
    "GV_ORATAB_CHECK_INTERVAL": "60",
    "GV_ORATAB_TIMER_INTERVAL": "60",
    "GV_ORATAB_BACKUP_RETENTION_DAYS": "3",
    "GV_RACONE_MAX_RETRIES": "30",
    "GV_RACONE_RETRY_INTERVAL": "10",
}

# cache of the constants file, loaded on first use
_constants = None


def load_constants(path=None):
    """
    Read the constants file ( a YAML mapping of GV_* names to values ).
    A missing file is not an error, it just means no constants.
    """
    global _constants

    if path is None:
        path = os.environ.get("ORAPAC_CONSTANTS") or constants_file

    if not os.path.isfile(path):
        _constants = {}
        return(_constants)

    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError("constants file {} must contain a mapping, found {}".format(path, type(data).__name__))

    _constants = dict((str(k), v) for k, v in data.items())
    return(_constants)


def reset_constants():
    """Forget the cached constants so the next lookup re-reads the file."""
    global _constants
    _constants = None


def setting(name, value=None, default=None):
    """
    Return the value of a setting.
        value   - runtime value, wins when not None / empty
        name    - GV_* name looked up in the environment then the constants file
        default - used when nothing else is set ( falls back to defaults{} )
    """
    if value not in (None, ""):
        return(value)

    env_val = os.environ.get(name)
    if env_val not in (None, ""):
        return(env_val)

    if _constants is None:
        load_constants()

    const_val = _constants.get(name)
    if const_val not in (None, ""):
        return(str(const_val))

    if default is not None:
        return(default)

    return(defaults.get(name, ""))


def int_setting(name, value=None, default=None):
    """setting() converted to int. Raises ValueError on junk."""
    return int(setting(name, value, default))


def is_true(value):
    """True if value is in the affirm list."""
    return value in affirm
