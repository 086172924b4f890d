# -*- coding: utf-8 -*-
"""
Run a SQL query against an Oracle database and return the rows as JSON.

The query goes through sqlplus ( default ) or straight through oracledb
( engine="oracledb" ). sqlplus output is read with COLSEP | and the first
line as the column names:

    ID|NAME|CREATED
    1|alpha|2024-01-01
    2|NULL|

becomes

    [{"ID":1,"NAME":"alpha","CREATED":"2024-01-01"},{"ID":2,"NAME":null,"CREATED":null}]

Exit codes ( SqlError.rc ):
    1 - bad parameters
    2 - sqlplus not found or the connection failed
    3 - the query failed
"""
import json
import os
import re

from orapac import config
from orapac.dbug import debugg
from orapac.errors import SqlError
from orapac.loggy import loggy
from orapac.utils import run_local, which

# printed after CONNECT, if it's missing from the output we never got connected
CONNECTED_MARKER = "orapac:connected"
NOT_CONNECTED = ("SP2-0640", "ORA-01017", "ORA-12154", "ORA-12514", "ORA-12505", "ORA-12541", "ORA-01034")

NUMBER_PATTERN = re.compile(r'^-?(0|[1-9][0-9]*)(\.[0-9]+)?$')

SQLPLUS_SETTINGS = [
    "SET HEADING ON",
    "SET UNDERLINE OFF",
    "SET FEEDBACK OFF",
    "SET PAGESIZE 50000",
    "SET LINESIZE 32767",
    "SET TRIMOUT ON",
    "SET TRIMSPOOL ON",
    "SET TAB OFF",
    "SET COLSEP |",
]


def cleanup_sql(sql):
    """Drop every ; trim, and end with exactly one ;"""
    cleaned = (sql or "").replace(";", "").strip()
    if not cleaned:
        raise SqlError("SQL query is required", rc=1)
    return cleaned + ";"


def build_connect_string(username, password, hostname, port, sid=None, service_name=None):
    """
    user/password@host:port/service        when a service name is given
    user/password@(DESCRIPTION=...(SID=x)) when only a SID is given
    sys always connects as sysdba.
    """
    if not username or not password:
        raise SqlError("Oracle username and password are required", rc=1)
    if not sid and not service_name:
        raise SqlError("Either sid or service name must be provided", rc=1)

    if service_name:
        address = "{}:{}/{}".format(hostname, port, service_name)
        loggy("variable", "Using service name connection")
    else:
        from orapac.cx import make_dsn
        address = make_dsn(hostname, port, sid=sid)
        loggy("variable", "Using SID connection")

    con_str = "{}/{}@{}".format(username, password, address)
    if username.lower() == "sys":
        loggy("variable", "SYS user detected, connecting as sysdba")
        con_str = con_str + " as sysdba"
    return con_str


def find_sqlplus(sqlplus_path=None):
    """GV_SQLPLUS_PATH, then PATH, then $ORACLE_HOME/bin/sqlplus"""
    path = config.setting("GV_SQLPLUS_PATH", sqlplus_path)
    if path:
        if os.access(path, os.X_OK):
            return path
        raise SqlError("sqlplus not found or not executable at {}".format(path), rc=2)

    path = which("sqlplus")
    if path:
        return path

    oracle_home = os.environ.get("ORACLE_HOME")
    if oracle_home:
        path = os.path.join(oracle_home, "bin", "sqlplus")
        if os.access(path, os.X_OK):
            return path

    raise SqlError("sqlplus not found in PATH or ORACLE_HOME", rc=2)


def sqlplus_script(sql, connect_string):
    lines = ["WHENEVER SQLERROR EXIT SQL.SQLCODE",
             "WHENEVER OSERROR EXIT FAILURE",
             "CONNECT {}".format(connect_string),
             "PROMPT {}".format(CONNECTED_MARKER)]
    lines += SQLPLUS_SETTINGS
    lines += [sql, "EXIT;", ""]
    return "\n".join(lines)


def execute_query(sql, connect_string, sqlplus_path):
    """Run sql through sqlplus -s /nolog, return the raw output with the marker line removed."""
    loggy("beginend", "Starting Oracle SQL to JSON conversion")
    loggy("command", "Query: {}".format(sql))
    # never log the connect string, it has the password in it
    loggy("variable", "Using Oracle connection (password hidden)")

    results = run_local([sqlplus_path, "-s", "/nolog"], input_str=sqlplus_script(sql, connect_string))
    output = results.output

    # only what sqlplus printed before the marker says anything about the connection,
    # the rest is query output and may hold ORA- text as data
    before, marker, body = output.partition(CONNECTED_MARKER)
    if not marker or any(code in before for code in NOT_CONNECTED) or not_connected(body):
        loggy("fail", "Unable to connect to the database")
        loggy("output", "Error output: {}".format(scrub(output)))
        raise SqlError("Database connection failed: {}".format(scrub(output)), rc=2)

    if results.rc != 0 or has_errors(body):
        loggy("fail", "Oracle query execution failed")
        loggy("output", "Error output: {}".format(body.strip()))
        raise SqlError("Query failed: {}".format(body.strip()), rc=3)

    return body.strip("\n")


def not_connected(body):
    """SP2-0640 Not connected, the CONNECT failed but sqlplus carried on"""
    return any(line.startswith("SP2-0640") for line in body.splitlines())


def has_errors(body):
    """
    sqlplus errors in the query output. ORA- lines alone don't count, a failed
    statement also prints ERROR at line and WHENEVER SQLERROR sets the exit code.
    """
    for line in body.splitlines():
        if line.startswith(("SP2-", "ERROR at line")):
            return True
    return False


def scrub(output):
    """sqlplus echoes nothing with -s but keep only error lines just in case"""
    lines = [l for l in output.splitlines() if l.startswith(("ORA-", "SP2-", "ERROR"))]
    return " ".join(lines) or output.strip()


def convert_value(value):
    """NULL / empty => None, plain integers and decimals => numbers, the rest stays a string"""
    value = value.strip()
    if value == "" or value == "NULL":
        return None
    if NUMBER_PATTERN.match(value):
        if "." in value:
            return float(value)
        return int(value)
    return value


def result_to_rows(output):
    """
    Turn COLSEP | output into a list of dicts keyed by the first line's names.
    Repeated header lines ( page breaks ) are skipped.
    """
    rows = []
    headers = None
    header_line = None

    for line in output.splitlines():
        if not line.strip():
            continue

        if headers is None:
            header_line = line.strip()
            headers = []
            for i, name in enumerate(line.split("|")):
                name = name.strip()
                headers.append(name or "col{}".format(i + 1))
            continue

        if line.strip() == header_line:
            continue

        values = line.split("|")
        row = {}
        for i, value in enumerate(values):
            key = headers[i] if i < len(headers) else "col{}".format(i + 1)
            row[key] = convert_value(value)
        rows.append(row)

    return rows


def rows_to_json(rows):
    return json.dumps(rows or [], separators=(',', ':'))


def sql_to_json(sql, connection_string=None, username=None, password=None, hostname=None, port=None,
                sid=None, service_name=None, engine="sqlplus"):
    """
    Run sql and return (rows, json_text).
    Parameters not passed are taken from the GV_DB_* settings.
    """
    debugg("sql_to_json()...starting...engine={}".format(engine))

    sql = cleanup_sql(sql)
    username = config.setting("GV_DB_USERNAME", username)
    password = config.setting("GV_DB_PASSWORD", password)
    hostname = config.setting("GV_DB_HOST", hostname)
    port = config.setting("GV_DB_PORT", port)
    sid = config.setting("GV_DB_SID", sid)
    service_name = config.setting("GV_DB_SERVICE_NAME", service_name)
    connection_string = config.setting("GV_DB_CONNECTION_STRING", connection_string)

    if engine == "oracledb":
        rows = query_with_oracledb(sql, username, password, hostname, port, sid, service_name,
                                   connection_string=connection_string)
        return rows, rows_to_json(rows)

    if engine != "sqlplus":
        raise SqlError("Unknown engine {}, use sqlplus or oracledb".format(engine), rc=1)

    if not connection_string:
        if not password:
            raise SqlError("Password is required when no connection string is given", rc=1)
        connection_string = build_connect_string(username, password, hostname, port, sid, service_name)

    sqlplus_path = find_sqlplus()
    output = execute_query(sql, connection_string, sqlplus_path)
    rows = result_to_rows(output)
    loggy("success", "Query returned {} row(s)".format(len(rows)))

    debugg("sql_to_json()...exiting...")
    return rows, rows_to_json(rows)


def query_with_oracledb(sql, username, password, hostname, port, sid, service_name, connection_string=None):
    from orapac.cx import OraCon

    if connection_string:
        # user/password@dsn [as sysdba], the same string sqlplus would get
        con = OraCon({"connect_string": connection_string})
    else:
        if not password:
            raise SqlError("Password is required", rc=1)
        con = OraCon({"host": hostname, "port": port, "db": sid, "service_name": service_name,
                      "user": username, "password": password})
    try:
        columns, data = con.query(sql.rstrip(";"))
    finally:
        con.close()

    return [dict(zip(columns, record)) for record in data]
