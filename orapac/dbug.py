from orapac import config
from orapac.loggy import loggy

# message passed back to the user ( ansible msg )
msg = ""


def add_to_msg(a_msg):
    """Add the arguement to the msg to be passed out"""
    global msg

    if msg:
        msg = msg + " " + a_msg
    else:
        msg = a_msg


def reset_msg():
    global msg
    msg = ""


def set_debugging(value, log_file=None):
    """
    Turn debugging on / off. value is checked against config.affirm.
    log_file overrides the debug log location ( default ~/.orapac_debug.log )
    """
    config.debugme = config.is_true(value)
    if log_file:
        config.debug_log = log_file
    return(config.debugme)


def debugg(dbug_msg):
    """
    If debugging is on, add dbug_msg to msg and append it to the debug log.
    """
    if config.debugme not in config.affirm:
        return()

    add_to_msg(dbug_msg)
    loggy("debug", dbug_msg, file=config.debug_log, level="debug", quiet=True)
    return()
