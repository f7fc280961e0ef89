"""
Tests for the local running-state probes.
"""

from pvevm.cluster.probes import ContainerRunningProbe, QemuRunningProbe

UNIX_HEADER = "Num       RefCount Protocol Flags    Type St Inode Path\n"


class TestQemuRunningProbe:

    def _setup(self, tmp_path, vmid=100, pid=4321, cmdline_pidfile=None):
        run_dir = tmp_path / "run"
        proc = tmp_path / "proc"
        run_dir.mkdir()
        (proc / str(pid)).mkdir(parents=True)
        pidfile = run_dir / f"{vmid}.pid"
        pidfile.write_text(f"{pid}\n")
        args = ["/usr/bin/kvm", "-id", str(vmid), "-pidfile", str(cmdline_pidfile or pidfile)]
        (proc / str(pid) / "cmdline").write_bytes(b"\0".join(a.encode() for a in args) + b"\0")
        return QemuRunningProbe(run_dir=str(run_dir), proc_root=str(proc))

    def test_running(self, tmp_path):
        assert self._setup(tmp_path).is_running(100) is True

    def test_no_pidfile(self, tmp_path):
        probe = self._setup(tmp_path)
        assert probe.is_running(101) is False

    def test_dead_process(self, tmp_path):
        probe = self._setup(tmp_path)
        (tmp_path / "run" / "100.pid").write_text("9999\n")
        assert probe.is_running(100) is False

    def test_recycled_pid(self, tmp_path):
        probe = self._setup(tmp_path, cmdline_pidfile="/var/run/qemu-server/555.pid")
        assert probe.is_running(100) is False

    def test_garbage_pidfile(self, tmp_path):
        probe = self._setup(tmp_path)
        (tmp_path / "run" / "100.pid").write_text("not a pid")
        assert probe.is_running(100) is False


class TestContainerRunningProbe:

    def _setup(self, tmp_path, lines):
        (tmp_path / "net").mkdir()
        (tmp_path / "net" / "unix").write_text(UNIX_HEADER + "".join(lines))
        return ContainerRunningProbe(proc_root=str(tmp_path))

    def test_running(self, tmp_path):
        probe = self._setup(tmp_path, [
            "0000000000000000: 00000002 00000000 00010000 0001 01 31337 @/var/lib/lxc/200/command\n",
        ])
        assert probe.is_running(200) is True

    def test_other_container(self, tmp_path):
        probe = self._setup(tmp_path, [
            "0000000000000000: 00000002 00000000 00010000 0001 01 31337 @/var/lib/lxc/2000/command\n",
        ])
        assert probe.is_running(200) is False

    def test_unreadable_socket_table(self, tmp_path):
        assert ContainerRunningProbe(proc_root=str(tmp_path)).is_running(200) is False
