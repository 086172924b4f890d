import datetime
import json
import os

import pytest

from orapac import pmon
from orapac.errors import DiscoveryError
from orapac.pmon import OracleInstance

PS_OUTPUT = """\
root         1 /usr/lib/systemd/systemd --switched-root
oracle    4242 ora_pmon_orcl1
oracle    4300 ora_smon_orcl1
grid      3100 asm_pmon_+ASM1
oracle    5150 ora_pmon_TEST_DB
oracle    6000 grep ora_pmon_orcl1
oracle    6001 ora_pmon_orcl1x-not-a-match
"""


def test_parse_pmon_processes():
    found = pmon.parse_pmon_processes(PS_OUTPUT)
    assert found == [("orcl1", 4242, "oracle"), ("TEST_DB", 5150, "oracle")]


def test_parse_includes_asm_with_wider_pattern():
    found = pmon.parse_pmon_processes(PS_OUTPUT, pmon.ANY_PMON_PATTERN)
    assert ("+ASM1", 3100, "grid") in found
    assert len(found) == 3


def test_running_sids():
    assert pmon.running_sids(PS_OUTPUT) == ["orcl1", "+ASM1", "TEST_DB"]


def test_home_from_environ(tmp_path):
    (tmp_path / "4242").mkdir()
    (tmp_path / "4242" / "environ").write_bytes(
        b"HOME=/home/oracle\0ORACLE_HOME=/u01/app/oracle/product/19c/dbhome_1/\0ORACLE_SID=orcl1\0")
    assert pmon.home_from_environ(4242, str(tmp_path)) == "/u01/app/oracle/product/19c/dbhome_1"


def test_home_from_environ_unreadable(tmp_path):
    assert pmon.home_from_environ(999, str(tmp_path)) is None


def test_home_from_exe(tmp_path):
    (tmp_path / "77").mkdir()
    os.symlink("/app/oracle/19c/dbhome_1/bin/oracle", str(tmp_path / "77" / "exe"))
    assert pmon.home_from_exe(77, str(tmp_path)) == "/app/oracle/19c/dbhome_1"


def test_home_from_exe_other_binary(tmp_path):
    (tmp_path / "78").mkdir()
    os.symlink("/usr/bin/python3", str(tmp_path / "78" / "exe"))
    assert pmon.home_from_exe(78, str(tmp_path)) is None


def test_home_from_oratab(tmp_path):
    oratab = tmp_path / "oratab"
    oratab.write_text("# orcl:/wrong:N\norcl1x:/nope:N\norcl1:/u01/app/oracle/product/12c:Y\n")
    assert pmon.home_from_oratab("orcl1", str(oratab)) == "/u01/app/oracle/product/12c"
    assert pmon.home_from_oratab("missing", str(oratab)) is None


def test_home_from_product_dirs(tmp_path):
    product = tmp_path / "product"
    bin_dir = product / "19c" / "dbhome_1" / "bin"
    bin_dir.mkdir(parents=True)
    sqlplus = bin_dir / "sqlplus"
    sqlplus.write_text("#!/bin/sh\n")
    sqlplus.chmod(0o755)

    assert pmon.home_from_product_dirs([str(tmp_path / "absent"), str(product)]) == str(product / "19c" / "dbhome_1")


def test_get_oracle_home_order(tmp_path):
    proc = tmp_path / "proc"
    (proc / "10").mkdir(parents=True)
    (proc / "10" / "environ").write_bytes(b"ORACLE_HOME=/from/environ\0")
    oratab = tmp_path / "oratab"
    oratab.write_text("orcl:/from/oratab:Y\n")

    assert pmon.get_oracle_home("orcl", 10, str(proc), str(oratab), []) == "/from/environ"
    assert pmon.get_oracle_home("orcl", 11, str(proc), str(oratab), []) == "/from/oratab"
    assert pmon.get_oracle_home("other", 11, str(proc), str(oratab), []) == pmon.UNKNOWN_HOME


def test_running_instances(tmp_path):
    instances = pmon.running_instances(PS_OUTPUT, proc_root=str(tmp_path),
                                       oratab_file=str(tmp_path / "none"), product_dirs=[])
    assert instances == [OracleInstance("orcl1", 4242, "oracle", "UNKNOWN"),
                         OracleInstance("TEST_DB", 5150, "oracle", "UNKNOWN")]


def test_no_running_instances_is_rc_2():
    with pytest.raises(DiscoveryError) as e:
        pmon.running_instances("root 1 /sbin/init\n")
    assert e.value.rc == 2


def test_validate_environment_needs_redhat_release(tmp_path):
    with pytest.raises(DiscoveryError) as e:
        pmon.validate_environment(str(tmp_path / "redhat-release"))
    assert e.value.rc == 1


def test_validate_environment_needs_ps(tmp_path, monkeypatch):
    release = tmp_path / "redhat-release"
    release.write_text("Oracle Linux Server release 8.9\n")
    monkeypatch.setattr(pmon, "which", lambda name: None)
    with pytest.raises(DiscoveryError) as e:
        pmon.validate_environment(str(release))
    assert "ps" in str(e.value)


def test_format_table():
    instances = [OracleInstance("orcl1", 4242, "oracle", "/u01/app/oracle/product/19c/dbhome_1")]
    table = pmon.format_table(instances, "tlorad01")
    lines = table.splitlines()

    assert "Oracle Databases Running on tlorad01" in lines
    assert lines[4].split() == ["DATABASE", "ORACLE_HOME", "USER", "PID"]
    row = [l for l in lines if l.startswith("orcl1")][0]
    assert row.index("/u01") == 21
    assert row.index("oracle ") == 72
    assert row.rstrip().endswith("4242")


def test_format_json():
    now = datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)
    instances = [OracleInstance("orcl1", "4242", "oracle", "/u01/home")]
    records = json.loads(pmon.format_json(instances, "tlorad01", now))

    assert records == [{
        "database": "orcl1",
        "oracle_home": "/u01/home",
        "oracle_user": "oracle",
        "pid": 4242,
        "hostname": "tlorad01",
        "timestamp": "2024-01-02T03:04:05Z",
    }]
