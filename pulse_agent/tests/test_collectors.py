"""
Unit tests for host collectors.
"""

from collections import namedtuple
from unittest.mock import Mock, patch

import psutil
import pytest

from pulse_agent.collectors import HostCollector, rank_top_processes
from pulse_agent.models import DiskUsage, MemoryTotals, OsInfo, ProcessInfo

Partition = namedtuple('Partition', ['device', 'mountpoint', 'fstype', 'opts'])
Usage = namedtuple('Usage', ['total', 'used', 'free', 'percent'])


def fake_process(pid, name, cpu_percent, memory_percent):
    proc = Mock()
    proc.info = {
        'pid': pid,
        'name': name,
        'cpu_percent': cpu_percent,
        'memory_percent': memory_percent,
    }
    return proc


class TestRankTopProcesses:
    """Test rank_top_processes"""

    def test_sorted_by_cpu_then_memory(self):
        processes = [
            ProcessInfo(pid=1, name='a', cpu_percent=5.0, mem_percent=1.0),
            ProcessInfo(pid=2, name='b', cpu_percent=50.0, mem_percent=1.0),
            ProcessInfo(pid=3, name='c', cpu_percent=5.0, mem_percent=9.0),
        ]

        ranked = rank_top_processes(processes)

        assert [p.pid for p in ranked] == [2, 3, 1]

    def test_never_more_than_five(self):
        processes = [
            ProcessInfo(pid=i, name=f'proc-{i}', cpu_percent=float(i), mem_percent=0.0)
            for i in range(1, 12)
        ]

        ranked = rank_top_processes(processes)

        assert len(ranked) == 5
        assert [p.pid for p in ranked] == [11, 10, 9, 8, 7]

    def test_excludes_missing_pid_and_empty_name(self):
        processes = [
            ProcessInfo(pid=None, name='ghost', cpu_percent=99.0, mem_percent=0.0),
            ProcessInfo(pid=7, name='', cpu_percent=98.0, mem_percent=0.0),
            ProcessInfo(pid=8, name='real', cpu_percent=1.0, mem_percent=0.0),
        ]

        ranked = rank_top_processes(processes)

        assert [p.pid for p in ranked] == [8]

    def test_missing_percentages_rank_last(self):
        processes = [
            ProcessInfo(pid=1, name='denied', cpu_percent=None, mem_percent=None),
            ProcessInfo(pid=2, name='idle', cpu_percent=0.5, mem_percent=0.1),
        ]

        ranked = rank_top_processes(processes)

        assert [p.pid for p in ranked] == [2, 1]
        assert ranked[1].cpu_percent is None


class TestHostCollector:
    """Test HostCollector"""

    def test_os_info(self):
        os_release = {'NAME': 'Ubuntu', 'VERSION_ID': '22.04'}
        with patch('pulse_agent.collectors.platform.freedesktop_os_release', return_value=os_release, create=True), \
             patch('pulse_agent.collectors.platform.machine', return_value='x86_64'), \
             patch('pulse_agent.collectors.socket.gethostname', return_value='web-01'):
            info = HostCollector().os_info()

        assert isinstance(info, OsInfo)
        assert info.hostname == 'web-01'
        assert info.arch == 'x86_64'
        assert info.distro == 'Ubuntu'
        assert info.release == '22.04'
        assert info.platform

    def test_os_info_without_os_release(self):
        """Should fall back to the kernel release when os-release is missing"""
        with patch('pulse_agent.collectors.platform.freedesktop_os_release', side_effect=OSError, create=True), \
             patch('pulse_agent.collectors.platform.release', return_value='6.1.0'):
            info = HostCollector().os_info()

        assert info.distro is None
        assert info.release == '6.1.0'

    def test_cpu_load(self):
        with patch('pulse_agent.collectors.psutil.cpu_percent', return_value=12.5) as cpu_percent:
            load = HostCollector(cpu_sample_interval=0.2).cpu_load()

        assert load == 12.5
        cpu_percent.assert_called_once_with(interval=0.2)

    def test_memory(self):
        mem = Mock(total=8_000, used=3_000, free=2_000, available=5_000)
        with patch('pulse_agent.collectors.psutil.virtual_memory', return_value=mem):
            totals = HostCollector().memory()

        assert totals == MemoryTotals(total=8_000, used=3_000, free=2_000)

    def test_disks_skip_unreadable_mounts(self):
        partitions = [
            Partition('/dev/sda1', '/', 'ext4', 'rw'),
            Partition('/dev/sr0', '/media/cdrom', 'iso9660', 'ro'),
        ]

        def disk_usage(mountpoint):
            if mountpoint == '/media/cdrom':
                raise PermissionError('denied')
            return Usage(total=100, used=40, free=60, percent=40.0)

        with patch('pulse_agent.collectors.psutil.disk_partitions', return_value=partitions), \
             patch('pulse_agent.collectors.psutil.disk_usage', side_effect=disk_usage):
            disks = HostCollector().disks()

        assert disks == [DiskUsage(fs='/dev/sda1', size=100, used=40, available=60, mount='/')]

    def test_top_processes(self):
        processes = [
            fake_process(1, 'systemd', 0.1, 0.5),
            fake_process(200, 'postgres', 35.0, 12.0),
            fake_process(300, 'nginx', 35.0, 2.0),
            fake_process(None, 'zombie', 80.0, 0.0),
        ]

        with patch('pulse_agent.collectors.psutil.process_iter', return_value=processes):
            top = HostCollector(process_sample_interval=0).top_processes()

        assert [p.name for p in top] == ['postgres', 'nginx', 'systemd']
        assert top[0].cpu_percent == 35.0
        assert top[0].mem_percent == 12.0

    def test_process_priming_skips_vanished_processes(self):
        """Processes that exit between samples should not break collection"""
        vanished = Mock()
        vanished.cpu_percent.side_effect = psutil.NoSuchProcess(pid=99)
        alive = Mock()

        with patch('pulse_agent.collectors.psutil.process_iter',
                   side_effect=[[vanished, alive], [fake_process(5, 'bash', 1.0, 1.0)]]), \
             patch('pulse_agent.collectors.time.sleep') as sleep:
            processes = HostCollector(process_sample_interval=0.5).processes()

        sleep.assert_called_once_with(0.5)
        alive.cpu_percent.assert_called_once_with(interval=None)
        assert processes == [ProcessInfo(pid=5, name='bash', cpu_percent=1.0, mem_percent=1.0)]

    @pytest.mark.integration
    def test_collect_live_host(self):
        """Should read real metrics from this machine"""
        collector = HostCollector(cpu_sample_interval=0.1, process_sample_interval=0.1)

        assert 0 <= collector.cpu_load() <= 100
        assert collector.memory().total > 0
        assert len(collector.top_processes()) <= 5
