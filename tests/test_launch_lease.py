"""Tests for the exclusive launch lease."""

from __future__ import annotations

import os
import time
from pathlib import Path

from executor.launch_lease import LaunchLease


def test_only_one_holder(tmp_path: Path) -> None:
    first = LaunchLease(tmp_path, "discord")
    second = LaunchLease(tmp_path, "discord")

    assert first.try_acquire() is True
    assert second.try_acquire() is False
    assert first.read()["pid"] == os.getpid()

    first.release()
    assert second.try_acquire() is True


def test_release_is_noop_for_non_holder(tmp_path: Path) -> None:
    owner = LaunchLease(tmp_path, "discord")
    owner.try_acquire()
    LaunchLease(tmp_path, "discord").release()
    assert owner.exists()


def test_names_do_not_interfere(tmp_path: Path) -> None:
    assert LaunchLease(tmp_path, "discord").try_acquire()
    assert LaunchLease(tmp_path, "slack").try_acquire()


def test_age_from_mtime(tmp_path: Path) -> None:
    lease = LaunchLease(tmp_path, "discord")
    assert lease.age() is None
    lease.try_acquire()
    past = time.time() - 30
    os.utime(lease.path, (past, past))
    assert lease.age() >= 29


def test_context_manager_releases(tmp_path: Path) -> None:
    lease = LaunchLease(tmp_path, "discord")
    lease.try_acquire()
    with lease:
        assert lease.exists()
    assert not lease.exists()


def test_adopt_takes_over_existing_marker(tmp_path: Path) -> None:
    parent = LaunchLease(tmp_path, "discord")
    parent.try_acquire()
    parent.held = False

    worker = LaunchLease(tmp_path, "discord")
    assert worker.adopt(parent.token) is True
    worker.release()
    assert not parent.exists()


def test_adopt_refuses_marker_of_a_later_launch(tmp_path: Path) -> None:
    first = LaunchLease(tmp_path, "discord")
    first.try_acquire()
    first.held = False
    first.reclaim()
    second = LaunchLease(tmp_path, "discord")
    second.try_acquire()

    late_worker = LaunchLease(tmp_path, "discord")
    assert late_worker.adopt(first.token) is False
    late_worker.release()
    assert second.exists()


def test_release_leaves_marker_taken_over_by_another_launch(tmp_path: Path) -> None:
    owner = LaunchLease(tmp_path, "discord")
    owner.try_acquire()
    LaunchLease(tmp_path, "discord").reclaim()
    newcomer = LaunchLease(tmp_path, "discord")
    newcomer.try_acquire()

    owner.release()
    assert newcomer.exists()
    assert newcomer.read()["token"] == newcomer.token


def test_reclaim_removes_marker(tmp_path: Path) -> None:
    lease = LaunchLease(tmp_path, "discord")
    lease.try_acquire()
    LaunchLease(tmp_path, "discord").reclaim()
    assert not lease.exists()
