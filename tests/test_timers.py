"""Tests for the periodic systemd units."""

from pathlib import Path

import pytest

from certreminder.timers import install_units, render_service_unit, render_timer_unit


def test_service_unit_runs_command():
    unit = render_service_unit(["/usr/bin/python3", "-m", "certreminder", "run", "--config", "/etc/cr config.yaml"])
    assert "Type=oneshot" in unit
    assert "ExecStart=/usr/bin/python3 -m certreminder run --config '/etc/cr config.yaml'" in unit


def test_timer_unit_schedule():
    unit = render_timer_unit("*-*-* 06:00:00")
    assert "OnCalendar=*-*-* 06:00:00" in unit
    assert "Unit=certreminder.service" in unit
    assert "WantedBy=timers.target" in unit


def test_install_units(tmp_path):
    written = install_units(tmp_path, ["certreminder", "run"])
    assert sorted(p.name for p in written) == ["certreminder.service", "certreminder.timer"]
    assert all(isinstance(p, Path) and p.exists() for p in written)


def test_install_refuses_overwrite(tmp_path):
    install_units(tmp_path, ["certreminder", "run"])
    with pytest.raises(FileExistsError):
        install_units(tmp_path, ["certreminder", "run"])
    install_units(tmp_path, ["certreminder", "run"], force=True)
