import io
import os
import time

import pytest

from orapac import oratab
from orapac.errors import LockError, OratabError
from orapac.utils import CmdResult

ORATAB = """\
# This file is used by ORACLE utilities.
#
# *:/u01/app/oracle/product/19c/dbhome_1:N

orcl:/u01/app/oracle/product/19c/dbhome_1:N
orcl2:/u01/app/oracle/product/19c/dbhome_1:Y
test:/u01/app/oracle/product/12c/dbhome_1:Y:# keep me
*:/u01/app/oracle/product/19c/dbhome_1:N
"""

PS_OUTPUT = """\
oracle    100 ora_pmon_orcl
oracle    101 ora_pmon_test
grid      102 asm_pmon_+ASM
oracle    103 ora_pmon_newdb
oracle    104 ora_pmon_orcl2x
"""


def test_reconcile_flags_and_appends():
    new_text, changes = oratab.reconcile(ORATAB, ["orcl", "test", "+ASM"], lambda sid: "/guess/" + sid)
    lines = new_text.splitlines()

    assert lines[:4] == ORATAB.splitlines()[:4]
    assert "orcl:/u01/app/oracle/product/19c/dbhome_1:Y" in lines
    assert "orcl2:/u01/app/oracle/product/19c/dbhome_1:N" in lines
    assert "test:/u01/app/oracle/product/12c/dbhome_1:Y:# keep me" in lines
    assert "*:/u01/app/oracle/product/19c/dbhome_1:N" in lines
    assert lines[-1] == "+ASM:/guess/+ASM:Y"
    assert new_text.endswith("\n")
    assert len(changes) == 3


def test_reconcile_exact_name_match():
    new_text, changes = oratab.reconcile("orcl:/h:N\n", ["orcl2"], lambda sid: "/h")
    assert new_text == "orcl:/h:N\norcl2:/h:Y\n"
    assert changes == ["orcl2: added with home /h"]


def test_reconcile_nothing_to_do():
    text = "# comment\norcl:/h:Y\nold:/h:N\n"
    new_text, changes = oratab.reconcile(text, ["orcl"], lambda sid: "/h")
    assert new_text == text
    assert changes == []


def test_cleanup_nonrunning():
    new_text, removed = oratab.cleanup_nonrunning("# c\norcl:/h:Y\nold:/h:N\n*:/h:N\n")
    assert new_text == "# c\norcl:/h:Y\n*:/h:N\n"
    assert removed == ["old"]


def test_guess_oracle_home(tmp_path):
    assert oratab.guess_oracle_home([str(tmp_path / "none")]) == "/u01/app/oracle"

    (tmp_path / "product" / "19c" / "bin").mkdir(parents=True)
    assert oratab.guess_oracle_home([str(tmp_path / "product")]) == str(tmp_path / "product" / "19c")


def test_home_resolver_prefers_process(tmp_path):
    (tmp_path / "100").mkdir()
    (tmp_path / "100" / "environ").write_bytes(b"ORACLE_HOME=/proc/home\0")
    home_for = oratab.home_resolver([("orcl", 100, "oracle"), ("other", 200, "oracle")], str(tmp_path), [])

    assert home_for("orcl") == "/proc/home"
    assert home_for("other") == "/u01/app/oracle"


def test_running_instances():
    assert oratab.running_instances(PS_OUTPUT) == ["orcl", "test", "+ASM", "newdb", "orcl2x"]


def test_prune_backups(tmp_path):
    path = str(tmp_path / "oratab")
    now = 1700000000
    old = tmp_path / "oratab.bak.{}".format(now - 5 * 86400)
    edge = tmp_path / "oratab.bak.{}".format(now - 3 * 86400)
    new = tmp_path / "oratab.bak.{}".format(now - 3600)
    junk = tmp_path / "oratab.bak.notanumber"
    for f in (old, edge, new, junk):
        f.write_text("x")

    deleted = oratab.prune_backups(path, retention_days=3, now=now)

    assert deleted == [str(old)]
    assert edge.exists() and new.exists() and junk.exists()


def test_update_oratab_writes_backup(tmp_path):
    path = tmp_path / "oratab"
    path.write_text(ORATAB)
    stale = tmp_path / "oratab.bak.1"
    stale.write_text("old")
    now = time.time()

    result = oratab.update_oratab(str(path), ps_output=PS_OUTPUT, proc_root=str(tmp_path / "proc"),
                                  guess_dirs=[], now=now)

    assert result.changed
    assert result.backup == "{}.bak.{}".format(path, int(now))
    assert open(result.backup).read() == ORATAB
    assert not stale.exists()
    text = path.read_text()
    assert "orcl:/u01/app/oracle/product/19c/dbhome_1:Y" in text
    assert "orcl2:/u01/app/oracle/product/19c/dbhome_1:N" in text
    assert "newdb:/u01/app/oracle:Y" in text
    assert "orcl2x:/u01/app/oracle:Y" in text


def test_update_oratab_keeps_inode(tmp_path):
    path = tmp_path / "oratab"
    path.write_text("orcl:/h:N\n")
    inode = os.stat(str(path)).st_ino

    oratab.update_oratab(str(path), ps_output="oracle 1 ora_pmon_orcl\n", proc_root=str(tmp_path))

    assert os.stat(str(path)).st_ino == inode
    assert path.read_text() == "orcl:/h:Y\n"


def test_update_oratab_no_change(tmp_path):
    path = tmp_path / "oratab"
    path.write_text("orcl:/h:Y\n")

    result = oratab.update_oratab(str(path), ps_output="oracle 1 ora_pmon_orcl\n", proc_root=str(tmp_path))

    assert not result.changed
    assert result.backup is None
    assert [p.name for p in tmp_path.iterdir()] == ["oratab"]


def test_update_oratab_dry_run(tmp_path):
    path = tmp_path / "oratab"
    path.write_text("orcl:/h:N\n")
    stream = io.StringIO()

    result = oratab.update_oratab(str(path), dry_run=True, verbose=True, ps_output="oracle 1 ora_pmon_orcl\n",
                                  proc_root=str(tmp_path), stream=stream)

    assert result.changed
    assert path.read_text() == "orcl:/h:N\n"
    assert "-orcl:/h:N" in stream.getvalue()
    assert "+orcl:/h:Y" in stream.getvalue()


def test_update_oratab_cleanup(tmp_path):
    path = tmp_path / "oratab"
    path.write_text("orcl:/h:Y\ngone:/h:Y\n")

    result = oratab.update_oratab(str(path), cleanup=True, ps_output="oracle 1 ora_pmon_orcl\n",
                                  proc_root=str(tmp_path))

    assert path.read_text() == "orcl:/h:Y\n"
    assert "gone: removed, not running" in result.changes


def test_update_oratab_unreadable(tmp_path):
    with pytest.raises(OratabError) as e:
        oratab.update_oratab(str(tmp_path / "missing"), ps_output="")
    assert e.value.rc == 1


def test_lock(tmp_path):
    lock_file = tmp_path / "update.lock"
    with oratab.OratabLock(str(lock_file)) as lock:
        assert lock.acquired
        assert lock_file.read_text().strip() == str(os.getpid())
    assert not lock_file.exists()


def test_lock_held_by_live_process(tmp_path, monkeypatch):
    lock_file = tmp_path / "update.lock"
    lock_file.write_text("4242\n")
    monkeypatch.setattr(oratab.OratabLock, "pid_alive", staticmethod(lambda pid: True))

    with pytest.raises(LockError) as e:
        oratab.OratabLock(str(lock_file)).acquire()
    assert e.value.rc == 1
    assert lock_file.read_text() == "4242\n"


def test_stale_lock_is_replaced(tmp_path, monkeypatch):
    lock_file = tmp_path / "update.lock"
    lock_file.write_text("4242\n")
    monkeypatch.setattr(oratab.OratabLock, "pid_alive", staticmethod(lambda pid: False))

    lock = oratab.OratabLock(str(lock_file)).acquire()
    assert lock_file.read_text().strip() == str(os.getpid())
    lock.release()


def test_service_unit():
    unit = oratab.service_unit("/usr/bin/python3")
    assert "Type=oneshot" in unit
    assert "User=oracle" in unit
    assert "ExecStart=/usr/bin/python3 -m orapac.cli update-oratab --update-once" in unit
    assert "Requires=updateOratab.timer" in unit


def test_timer_unit():
    unit = oratab.timer_unit(120)
    assert "OnBootSec=30sec" in unit
    assert "OnUnitActiveSec=120sec" in unit
    assert "AccuracySec=1sec" in unit
    assert "Persistent=true" in unit
    assert "OnUnitActiveSec=60sec" in oratab.timer_unit()


def test_install_timer_needs_root(monkeypatch):
    monkeypatch.setattr(oratab, "is_root", lambda: False)
    with pytest.raises(OratabError) as e:
        oratab.install_timer(60)
    assert e.value.rc == 1


def test_install_and_remove_timer(tmp_path, monkeypatch, fake_runner):
    runner = fake_runner()
    monkeypatch.setattr(oratab, "is_root", lambda: True)
    monkeypatch.setattr(oratab, "run_local", runner)
    service = tmp_path / "updateOratab.service"
    timer = tmp_path / "updateOratab.timer"

    oratab.install_timer(90, str(service), str(timer))

    assert "OnUnitActiveSec=90sec" in timer.read_text()
    assert "--update-once" in service.read_text()
    assert runner.calls == [["systemctl", "daemon-reload"],
                            ["systemctl", "enable", "updateOratab.timer"],
                            ["systemctl", "start", "updateOratab.timer"]]

    runner.calls = []
    oratab.remove_timer(str(service), str(timer))

    assert not service.exists() and not timer.exists()
    assert ["systemctl", "stop", "updateOratab.timer"] in runner.calls
    assert ["systemctl", "disable", "updateOratab.timer"] in runner.calls
    assert runner.calls[-1] == ["systemctl", "daemon-reload"]


def test_remove_timer_inactive(tmp_path, monkeypatch, fake_runner):
    runner = fake_runner({
        ("systemctl", "is-active", "--quiet", "updateOratab.timer"): CmdResult(3, "", ""),
        ("systemctl", "is-enabled", "--quiet", "updateOratab.timer"): CmdResult(1, "", ""),
    })
    monkeypatch.setattr(oratab, "is_root", lambda: True)
    monkeypatch.setattr(oratab, "run_local", runner)

    oratab.remove_timer(str(tmp_path / "s"), str(tmp_path / "t"))

    assert ["systemctl", "stop", "updateOratab.timer"] not in runner.calls
    assert ["systemctl", "disable", "updateOratab.timer"] not in runner.calls


def test_systemctl_failure(monkeypatch, fake_runner):
    monkeypatch.setattr(oratab, "run_local", fake_runner(default=CmdResult(1, "", "Access denied")))
    with pytest.raises(OratabError) as e:
        oratab.systemctl("daemon-reload")
    assert "Access denied" in str(e.value)


def test_monitor(tmp_path):
    path = tmp_path / "oratab"
    path.write_text("orcl:/h:N\n")
    sleeps = []

    passes = oratab.monitor(15, max_iterations=3, sleep=sleeps.append, path=str(path),
                            ps_output="oracle 1 ora_pmon_orcl\n", proc_root=str(tmp_path))

    assert passes == 3
    assert sleeps == [15, 15]
    assert path.read_text() == "orcl:/h:Y\n"


def test_validate_environment(tmp_path, monkeypatch):
    monkeypatch.setattr(oratab, "whoami", lambda: "grid")
    path = tmp_path / "oratab"
    path.write_text("")
    assert oratab.validate_environment(str(path))

    with pytest.raises(OratabError) as e:
        oratab.validate_environment(str(tmp_path / "missing"))
    assert e.value.rc == 1


def test_lock_taken_while_clearing_stale_lock(tmp_path, monkeypatch):
    lock_file = tmp_path / "update.lock"
    lock_file.write_text("4242\n")
    monkeypatch.setattr(oratab.OratabLock, "pid_alive", staticmethod(lambda pid: False))
    real_remove = os.remove

    def remove_then_race(path):
        real_remove(path)
        # another update-oratab gets in first
        with open(path, "w") as f:
            f.write("5151\n")

    monkeypatch.setattr(os, "remove", remove_then_race)

    lock = oratab.OratabLock(str(lock_file))
    with pytest.raises(LockError) as e:
        lock.acquire()
    assert "5151" in str(e.value)
    assert not lock.acquired
    assert lock_file.read_text() == "5151\n"


def test_lock_create_is_exclusive(tmp_path):
    lock_file = tmp_path / "update.lock"
    first = oratab.OratabLock(str(lock_file))
    assert first.create()
    assert not oratab.OratabLock(str(lock_file)).create()
    assert lock_file.read_text().strip() == str(os.getpid())
