# -*- coding: utf-8 -*-
"""
Command line entry points. Each one is also a console script ( see setup.py ):

    loggy                  --type T --message M [--file F] [--level L] [--quiet]
    find-oracle-databases  [--output-format table|json] [--verbose]
    run-ssh-command        --username U --hostname H --command C [--password P | --keyfile K]
    sql-to-json            --sql S [connection options] [--engine sqlplus|oracledb]
    json-value             --key K [--json J] [--verbose]
    update-oratab          --monitor | --update-once | --install-timer | --remove-timer
    relocate-racone        --database DB [--target-node N] [--allow-downtime] [--force]

or, without installing:  python -m orapac.cli <command> [options]

Most commands take --menu to be prompted for their options.
"""
import argparse
import getpass
import sys

from orapac import config
from orapac.errors import LoggyError, OrapacError, OratabError
from orapac.loggy import LOG_LEVELS, begin, end, loggy


def ask(prompt, default=None, secret=False):
    """Prompt for a value, default when the answer is blank."""
    if default:
        prompt = "{} [{}]".format(prompt, default)
    prompt = prompt + ": "
    answer = getpass.getpass(prompt) if secret else input(prompt)
    return answer.strip() or default


def ask_yes(prompt):
    return config.is_true((ask(prompt + " (y/n)", "n") or "").strip())


def run(fx, args):
    """Run fx(args), turn an OrapacError into an error line and its exit code."""
    try:
        rc = fx(args)
    except OrapacError as e:
        try:
            loggy("error", str(e))
        except LoggyError:
            sys.stderr.write(str(e) + "\n")
        sys.exit(e.rc)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted\n")
        sys.exit(130)
    sys.exit(rc or 0)


# ---------------------------------------------------------------- loggy

def loggy_parser():
    parser = argparse.ArgumentParser(prog="loggy", description="Categorized logging with level filtering")
    parser.add_argument("--type", dest="msg_type", help="message type: {}".format(", ".join(LOG_LEVELS)))
    parser.add_argument("--message", help="message to log")
    parser.add_argument("--file", help="append the message to this file too")
    parser.add_argument("--level", help="filter level (default output)")
    parser.add_argument("--quiet", action="store_true", help="don't write to the screen")
    parser.add_argument("--menu", action="store_true", help="prompt for the options")
    return parser


def do_loggy(args):
    if args.menu:
        args.msg_type = ask("Message type ({})".format(", ".join(LOG_LEVELS)), args.msg_type or "output")
        args.message = ask("Message", args.message)
        args.file = ask("Log file (blank for none)", args.file)
        args.level = ask("Filter level", args.level or config.setting("GV_LOGLEVEL"))
    loggy(args.msg_type, args.message, file=args.file, level=args.level, quiet=args.quiet)
    return 0


def loggy_main(argv=None):
    args = loggy_parser().parse_args(argv)
    try:
        do_loggy(args)
    except LoggyError as e:
        sys.stderr.write("{}\n".format(e))
        sys.exit(e.rc)
    sys.exit(0)


# ---------------------------------------------------------------- find-oracle-databases

def find_parser():
    parser = argparse.ArgumentParser(prog="find-oracle-databases",
                                     description="List the Oracle databases running on this host")
    parser.add_argument("--output-format", choices=["table", "json"], default=None,
                        help="table (default) or json")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--menu", action="store_true", help="prompt for the options")
    return parser


def do_find(args):
    from orapac import pmon
    from orapac.utils import host_name

    if args.menu:
        args.output_format = ask("Output format (table/json)", args.output_format or "table")
        args.verbose = ask_yes("Verbose")

    output_format = config.setting("GV_OUTPUT_FORMAT", args.output_format)
    if output_format not in ("table", "json"):
        raise OrapacError("Invalid output format '{}'. Use table or json".format(output_format), rc=1)

    begin("findOracleDatabases")
    pmon.validate_environment()
    instances = pmon.running_instances(verbose=args.verbose)
    if output_format == "json":
        print(pmon.format_json(instances, host_name()))
    else:
        print(pmon.format_table(instances, host_name()))
    loggy("success", "Found {} running database(s)".format(len(instances)))
    end("findOracleDatabases")
    return 0


def find_main(argv=None):
    run(do_find, find_parser().parse_args(argv))


# ---------------------------------------------------------------- run-ssh-command

def ssh_parser():
    parser = argparse.ArgumentParser(prog="run-ssh-command", description="Run a command on a remote host")
    parser.add_argument("--username")
    parser.add_argument("--hostname")
    parser.add_argument("--command")
    parser.add_argument("--password", help="password authentication (needs sshpass)")
    parser.add_argument("--keyfile", help="private key file")
    parser.add_argument("--port")
    parser.add_argument("--timeout", help="seconds (default 300)")
    parser.add_argument("--menu", action="store_true", help="prompt for the options")
    return parser


def do_ssh(args):
    from orapac.ssh import run_ssh_command

    if args.menu:
        args.username = ask("Username", args.username)
        args.hostname = ask("Hostname", args.hostname)
        args.command = ask("Command", args.command)
        args.keyfile = ask("Key file (blank for password)", args.keyfile or config.setting("GV_SSH_KEYFILE"))
        if not args.keyfile:
            args.password = ask("Password", secret=True)
        args.port = ask("Port", args.port or config.setting("GV_SSH_PORT"))

    output = run_ssh_command(args.username, args.hostname, args.command, password=args.password,
                             keyfile=args.keyfile, port=args.port, timeout=args.timeout)
    if output:
        print(output)
    return 0


def ssh_main(argv=None):
    run(do_ssh, ssh_parser().parse_args(argv))


# ---------------------------------------------------------------- sql-to-json

def sql_parser():
    parser = argparse.ArgumentParser(prog="sql-to-json", description="Run a query and print the rows as JSON")
    parser.add_argument("--sql")
    parser.add_argument("--connection-string", help="used as is, overrides the other connection options")
    parser.add_argument("--username")
    parser.add_argument("--password")
    parser.add_argument("--hostname", "--host", dest="hostname")
    parser.add_argument("--port")
    parser.add_argument("--sid")
    parser.add_argument("--service-name")
    parser.add_argument("--engine", choices=["sqlplus", "oracledb"], default="sqlplus")
    parser.add_argument("--menu", action="store_true", help="prompt for the options")
    return parser


def do_sql(args):
    from orapac.sqljson import sql_to_json

    if args.menu:
        args.sql = ask("SQL", args.sql)
        args.username = ask("Username", args.username or config.setting("GV_DB_USERNAME"))
        args.password = args.password or ask("Password", secret=True)
        args.hostname = ask("Host", args.hostname or config.setting("GV_DB_HOST"))
        args.port = ask("Port", args.port or config.setting("GV_DB_PORT"))
        args.service_name = ask("Service name (blank to use a SID)", args.service_name)
        if not args.service_name:
            args.sid = ask("SID", args.sid)

    rows, json_text = sql_to_json(args.sql, connection_string=args.connection_string, username=args.username,
                                  password=args.password, hostname=args.hostname, port=args.port, sid=args.sid,
                                  service_name=args.service_name, engine=args.engine)
    print(json_text)
    return 0


def sql_main(argv=None):
    run(do_sql, sql_parser().parse_args(argv))


# ---------------------------------------------------------------- json-value

def json_parser():
    parser = argparse.ArgumentParser(prog="json-value", description="Print one value from a JSON document")
    parser.add_argument("--key", help="path: ID, user.name, items[0], [0].NAME")
    parser.add_argument("--json", help="JSON text (default GV_SQL_RESULT_JSON)")
    parser.add_argument("--verbose", action="store_true", help="print the value type too")
    parser.add_argument("--menu", action="store_true", help="prompt for the options")
    return parser


def do_json(args):
    from orapac.jsonval import json_value

    if args.menu:
        args.key = ask("Key", args.key)
        args.json = ask("JSON (blank for GV_SQL_RESULT_JSON)", args.json)

    result = json_value(args.key, args.json)
    print(result.text)
    if args.verbose:
        print("type: {}".format(result.type))
    return 0


def json_main(argv=None):
    run(do_json, json_parser().parse_args(argv))


# ---------------------------------------------------------------- update-oratab

def positive_int(value):
    if not str(value).isdigit():
        raise OratabError("Invalid interval value: {} (must be a number)".format(value), rc=1)
    if int(value) < 1:
        raise OratabError("Invalid interval value: {} (must be at least 1 second)".format(value), rc=1)
    return int(value)


def oratab_parser():
    parser = argparse.ArgumentParser(prog="update-oratab",
                                     description="Keep /etc/oratab in step with the running instances")
    parser.add_argument("--monitor", action="store_true", help="update every --interval seconds")
    parser.add_argument("--interval", help="monitor interval in seconds (default 60)")
    parser.add_argument("--update-once", action="store_true", help="one update pass")
    parser.add_argument("--cleanup-nonrunning", action="store_true", help="drop entries flagged N")
    parser.add_argument("--install-timer", action="store_true", help="install the systemd timer (root)")
    parser.add_argument("--timer-interval", help="timer interval in seconds (default 60)")
    parser.add_argument("--remove-timer", action="store_true", help="remove the systemd timer (root)")
    parser.add_argument("--oratab", help="oratab file (default /etc/oratab)")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--dry-run", action="store_true", help="show what would change")
    return parser


def do_oratab(args):
    from orapac import oratab

    interval = positive_int(args.interval) if args.interval is not None else None
    timer_interval = positive_int(args.timer_interval) if args.timer_interval is not None else None

    if args.install_timer:
        oratab.validate_environment(args.oratab)
        oratab.install_timer(timer_interval)
        return 0

    if args.remove_timer:
        oratab.validate_environment(args.oratab)
        oratab.remove_timer()
        return 0

    if not args.monitor and not args.update_once:
        oratab_parser().print_usage(sys.stderr)
        raise OratabError("Please specify either --monitor, --update-once, --install-timer, or --remove-timer", rc=1)

    oratab.validate_environment(args.oratab)
    update_kwargs = dict(path=args.oratab, dry_run=args.dry_run, cleanup=args.cleanup_nonrunning,
                         verbose=args.verbose)
    with oratab.OratabLock():
        if args.monitor:
            oratab.monitor(interval, **update_kwargs)
        else:
            oratab.update_oratab(**update_kwargs)
            loggy("output", "Update complete")
    return 0


def oratab_main(argv=None):
    run(do_oratab, oratab_parser().parse_args(argv))


# ---------------------------------------------------------------- relocate-racone

def racone_parser():
    parser = argparse.ArgumentParser(prog="relocate-racone",
                                     description="Relocate a RAC One Node database to another node")
    parser.add_argument("--database")
    parser.add_argument("--target-node", help="default: first other candidate server")
    parser.add_argument("--allow-downtime", action="store_true", help="srvctl relocate -f")
    parser.add_argument("--force", action="store_true", help="don't ask for confirmation")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--dry-run", action="store_true", help="show the relocate command only")
    return parser


def do_racone(args):
    from orapac.racone import RacOneNodeRelocator

    relocator = RacOneNodeRelocator(args.database, target_node=args.target_node, allow_downtime=args.allow_downtime,
                                    force=args.force, dry_run=args.dry_run, verbose=args.verbose)
    relocator.run()
    return 0


def racone_main(argv=None):
    run(do_racone, racone_parser().parse_args(argv))


COMMANDS = {
    "loggy": loggy_main,
    "find-oracle-databases": find_main,
    "run-ssh-command": ssh_main,
    "sql-to-json": sql_main,
    "json-value": json_main,
    "update-oratab": oratab_main,
    "relocate-racone": racone_main,
}


def main(argv=None):
    """python -m orapac.cli <command> [options]"""
    if argv is None:
        argv = sys.argv[1:]
    if not argv or argv[0] not in COMMANDS:
        sys.stderr.write("usage: python -m orapac.cli {{{}}} [options]\n".format(",".join(sorted(COMMANDS))))
        sys.exit(1)
    COMMANDS[argv[0]](argv[1:])


if __name__ == "__main__":
    main()
