# to use: from orapac.cx import OraCon
# to instantiate the OraCon class:
#       con = OraCon({"db": "crmd1", "host": "tlrac1.ccci.org", "user": "myuser", "password": "supersecret"})
#       columns, rows = con.query("select name from v$database")
#       con.close()
import datetime
import decimal

import oracledb

from orapac.dbug import debugg
from orapac.errors import SqlError


def make_dsn(host, port, sid=None, service_name=None):
    """
    Given host, port and a sid ( or service name ) return the connect
    descriptor oracledb and sqlplus both understand.
    """
    if sid:
        return oracledb.makedsn(host, int(port), sid=sid)
    return oracledb.makedsn(host, int(port), service_name=service_name)


def split_connect_string(connect_string):
    """
    user/password@dsn [as sysdba] => ( user, password, dsn, sysdba )
    dsn is None when there is no @ part.
    """
    text = connect_string.strip()
    sysdba = text.lower().endswith(" as sysdba")
    if sysdba:
        text = text[:-len(" as sysdba")].rstrip()
    if "@" in text:
        creds, dsn = text.rsplit("@", 1)
    else:
        creds, dsn = text, None
    user, _, password = creds.partition("/")
    return user, password, dsn or None, sysdba


def to_json_value(value):
    """Oracle column value => something json.dumps can handle."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, decimal.Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, bytes):
        return value.hex()
    if hasattr(value, "read"):
        # CLOB / BLOB
        return to_json_value(value.read())
    return value


class OraCon(object):
    """
    to instantiate this class: pass a Python dictionary in the follow format:
    {
    "db" : fscmp1              ( sid )
    "service_name" : fscmp1.ccci.org  * optional, used when db is not given
    "host" : plrac1.ccci.org
    "port" : 1521
    "connect_string" : scott/tiger@plrac1:1521/fscmp1.ccci.org  * optional, replaces all of the above
    "user" : system
    "password" : supersecret
    }

    minimal required for a connection:
        db or service_name, host, user, password
    if user = sys the connection is made as sysdba.
    """

    def __init__(self, info=None):
        info = info or {}
        self.host = info.get('host') or "localhost"
        self.sid = info.get('db') or ""
        self.port = info.get('port') or 1521
        self.user = info.get('user') or ""
        self.password = info.get('password') or ""
        self.service_name = info.get('service_name') or ""
        self.sysdba = False
        self.__given_dsn = None
        if info.get('connect_string'):
            self.user, self.password, self.__given_dsn, self.sysdba = split_connect_string(info['connect_string'])
        self.__status = "None"
        self.__dsn = None
        self.__con = None
        self.connect()

    def show_db(self):
        """
        if we forget what db this object is connected to ask here
        """
        return(self.sid or self.service_name or self.__given_dsn)

    def show_status(self):
        return(self.__status)

    def dsn(self):
        if self.__given_dsn:
            self.__dsn = self.__given_dsn
            return(self.__dsn)
        if not self.sid and not self.service_name:
            raise SqlError("Either sid or service name must be provided", rc=1)
        self.__dsn = make_dsn(self.host, self.port, sid=self.sid, service_name=self.service_name)
        return(self.__dsn)

    def connect(self):
        """Open the connection, sys gets SYSDBA mode."""
        self.dsn()
        debugg("class OraCon :: connect()...starting....user={} dsn={}".format(self.user or "Empty!", self.__dsn))

        if not self.user or not self.password:
            raise SqlError("Oracle username and password are required", rc=1)

        try:
            if self.sysdba or self.user.lower() == "sys":
                self.__con = oracledb.connect(user=self.user, password=self.password, dsn=self.__dsn,
                                              mode=oracledb.AUTH_MODE_SYSDBA)
            else:
                self.__con = oracledb.connect(user=self.user, password=self.password, dsn=self.__dsn)
        except oracledb.DatabaseError as exc:
            error_msg, = exc.args
            debugg("class OraCon error creating connection error {}".format(error_msg))
            self.__status = "connection failed"
            raise SqlError("Database connection failed: {}".format(error_msg), rc=2)

        self.__status = "connected"
        return(self.__status)

    def query(self, sql):
        """
        Run sql and return ( [column names], [[row values], ...] )
        """
        debugg("class OraCon :: query() sql={}".format(sql))

        if self.__status != "connected":
            raise SqlError("Unable to execute query. Connection status is {}".format(self.__status), rc=2)

        cur = self.__con.cursor()
        try:
            cur.execute(sql)
            if cur.description is None:
                return [], []
            columns = [col[0] for col in cur.description]
            rows = [[to_json_value(v) for v in record] for record in cur.fetchall()]
        except oracledb.DatabaseError as exc:
            error_msg, = exc.args
            raise SqlError("Query failed: {}".format(error_msg), rc=3)
        finally:
            cur.close()

        return columns, rows

    def close(self):
        if self.__con is not None:
            self.__con.close()
            self.__con = None
        self.__status = "closed"
