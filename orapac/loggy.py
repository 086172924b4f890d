# -*- coding: utf-8 -*-
"""
loggy - categorized logging with level filtering.

Every message has a type. Each type has a priority, lower is more important:

    1 - error      System/function errors (BRIGHT RED)
    2 - fail       Process failures (BRIGHT RED)
    3 - success    Successful completion (BRIGHT GREEN)
    4 - output     Process output  <== default filter
    5 - beginend   Function markers
    6 - variable   Variable values
    7 - command    Command execution
    8 - debug      Detailed debug info

A message is shown when its priority is <= the priority of the filter level.
Screen output goes to stderr so stdout stays usable for results ( json etc. ).
When a log file is set the same line is appended to it without colors.

    loggy("error", "Database connection failed")
    loggy("debug", "Variable X=42", file="/tmp/debug.log", level="debug")
"""
import datetime
import os
import sys

from orapac import config
from orapac.errors import LoggyError

# ANSI color codes
RED_BRIGHT = '\033[1;31m'
GREEN_BRIGHT = '\033[1;32m'
RESET = '\033[0m'

LOG_LEVELS = {
    'error': 1,
    'fail': 2,
    'success': 3,
    'output': 4,
    'beginend': 5,
    'variable': 6,
    'command': 7,
    'debug': 8,
}

VALID_NAMES = ", ".join(sorted(LOG_LEVELS, key=LOG_LEVELS.get))


def color_code(msg_type):
    """Return the ANSI color for a message type or empty string."""
    if msg_type in ('error', 'fail'):
        return(RED_BRIGHT)
    elif msg_type == 'success':
        return(GREEN_BRIGHT)
    return("")


def format_message(msg_type, message, now=None):
    """<timestamp> <type> <message>"""
    if now is None:
        now = datetime.datetime.now()
    return "{} {} {}".format(now.strftime('%Y-%m-%d %H:%M:%S'), msg_type, message)


def should_log(msg_type, level):
    """True if a message of msg_type passes the level filter."""
    return LOG_LEVELS[msg_type] <= LOG_LEVELS[level]


def loggy(msg_type, message, file=None, level=None, quiet=False, stream=None):
    """
    Log message as msg_type.
        file  - append here too. Default GV_LOGFILE ( empty = screen only )
        level - filter level. Default GV_LOGLEVEL ( output )
        quiet - skip the screen, still write the file
    Returns the formatted line when the message passed the filter, else None.
    """
    if not msg_type:
        raise LoggyError("Assertion failed - Required parameter --type not provided")
    if not message:
        raise LoggyError("Assertion failed - Required parameter --message not provided")

    file = config.setting("GV_LOGFILE", file)
    level = config.setting("GV_LOGLEVEL", level)

    if msg_type not in LOG_LEVELS:
        raise LoggyError("Invalid log type '{}'. Valid types: {}".format(msg_type, VALID_NAMES))
    if level not in LOG_LEVELS:
        raise LoggyError("Invalid log level '{}'. Valid levels: {}".format(level, VALID_NAMES))

    if not should_log(msg_type, level):
        return None

    line = format_message(msg_type, message)

    if not quiet:
        if stream is None:
            stream = sys.stderr
        color = color_code(msg_type)
        if color:
            stream.write("{}{}{}\n".format(color, line, RESET))
        else:
            stream.write(line + "\n")
        stream.flush()

    if file:
        log_dir = os.path.dirname(file)
        if log_dir and not os.path.isdir(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        with open(file, 'a') as f:
            f.write(line + "\n")

    return line


def begin(name):
    loggy("beginend", "Starting [{}]".format(name))


def end(name):
    loggy("beginend", "Completed [{}]".format(name))
