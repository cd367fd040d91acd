"""
Tests for the driver-detect command line interface.
"""

import json

import pytest

from conftest import make_gpu
from driver_detect import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from reconfiguring the root logger during tests."""
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)


@pytest.fixture
def settings_file(tmp_path):
    """Settings file that does not exist, so only defaults apply."""
    return str(tmp_path / "settings.json")


@pytest.fixture
def devices_file(tmp_path, intel_igpu, nvidia_dgpu):
    path = tmp_path / "devices.json"
    path.write_text(json.dumps([intel_igpu.to_dict(), nvidia_dgpu.to_dict()]))
    return str(path)


class TestGpuCommand:
    """Tests for `driver-detect gpu`."""

    def test_json(self, capsys, settings_file, devices_file):
        rc = cli.main(["--config", settings_file, "--devices-file", devices_file, "gpu", "-j"])
        data = json.loads(capsys.readouterr().out)

        assert rc == 0
        assert data["count"] == 2
        assert data["type"] == ["HYBRID", "OPTIMUS"]
        assert data["primary"]["pci_address"] == "0000:00:02.0"
        assert data["secondary"]["pci_address"] == "0000:01:00.0"
        assert data["detection_device"] == "0000:01:00.0"

    def test_default_command_text(self, capsys, settings_file, devices_file):
        rc = cli.main(["--config", settings_file, "--devices-file", devices_file])
        out = capsys.readouterr().out

        assert rc == 0
        assert "GPUs: 2" in out
        assert "HYBRID | OPTIMUS" in out
        assert "Detection: 0000:01:00.0 [10de:1c03]" in out

    def test_sysfs_backend(self, capsys, settings_file, optimus_sysfs):
        rc = cli.main(["--config", settings_file, "--backend", "sysfs",
                       "--sysfs-root", str(optimus_sysfs), "gpu", "-j"])

        assert rc == 0
        assert json.loads(capsys.readouterr().out)["type"] == ["HYBRID", "OPTIMUS"]

    def test_no_gpus(self, capsys, settings_file, tmp_path):
        rc = cli.main(["--config", settings_file, "--sysfs-root", str(tmp_path / "empty"), "gpu"])

        assert rc == 0
        assert "No GPUs detected!" in capsys.readouterr().out


class TestDevicesCommand:
    """Tests for `driver-detect devices`."""

    def test_text(self, capsys, settings_file, devices_file):
        rc = cli.main(["--config", settings_file, "--devices-file", devices_file, "devices"])
        out = capsys.readouterr().out

        assert rc == 0
        assert "0000:00:02.0" in out
        assert "(boot VGA)" in out
        assert "IDs: 10de:1c03" in out

    def test_json_can_be_replayed(self, capsys, settings_file, optimus_sysfs, tmp_path):
        cli.main(["--config", settings_file, "--sysfs-root", str(optimus_sysfs), "devices", "-j"])
        dump = tmp_path / "dump.json"
        dump.write_text(capsys.readouterr().out)

        cli.main(["--config", settings_file, "--devices-file", str(dump), "gpu", "-j"])
        data = json.loads(capsys.readouterr().out)

        assert data["type"] == ["HYBRID", "OPTIMUS"]


class TestProvidersCommand:
    """Tests for `driver-detect providers`."""

    def test_quiet(self, capsys, settings_file, devices_file):
        rc = cli.main(["--config", settings_file, "--devices-file", devices_file,
                       "providers", "-q"])
        lines = capsys.readouterr().out.split()

        assert rc == 0
        assert lines[0] == "nvidia-glx-driver-current"
        assert "mesa-intel" not in lines

    def test_text(self, capsys, settings_file, devices_file):
        rc = cli.main(["--config", settings_file, "--devices-file", devices_file, "providers"])
        out = capsys.readouterr().out

        assert rc == 0
        assert "Providers for 0000:01:00.0" in out
        assert "nvidia-glx-driver-current (30)" in out

    def test_none_found(self, capsys, settings_file, tmp_path):
        other = make_gpu(0x1AF4, boot_vga=True)
        path = tmp_path / "devices.json"
        path.write_text(json.dumps([other.to_dict()]))

        rc = cli.main(["--config", settings_file, "--devices-file", str(path),
                       "providers", "-j"])

        assert rc == 1
        assert json.loads(capsys.readouterr().out) == []


class TestErrors:
    """Errors are reported, not raised."""

    def test_bad_devices_file(self, caplog, settings_file, tmp_path):
        path = tmp_path / "devices.json"
        path.write_text("nonsense")

        rc = cli.main(["--config", settings_file, "--devices-file", str(path)])

        assert rc == 1
        assert "CATALOG_UNAVAILABLE" in caplog.text

    def test_bad_settings(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"backend": "magic"}))

        assert cli.main(["--config", str(path)]) == 1

    def test_settings_with_wrong_type(self, caplog, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"log_level": ["debug"]}))

        assert cli.main(["--config", str(path)]) == 1
        assert "INVALID_CONFIG" in caplog.text


class TestLogging:
    """Log settings reach setup_logging."""

    @pytest.fixture
    def logging_calls(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "setup_logging",
                            lambda *args, **kwargs: calls.append((args, kwargs)))
        return calls

    def test_log_file_flag(self, logging_calls, settings_file, devices_file, tmp_path):
        log_file = tmp_path / "dd.log"
        rc = cli.main(["--config", settings_file, "--devices-file", devices_file,
                       "--log-file", str(log_file), "--json-logs", "gpu", "-j"])

        assert rc == 0
        args, kwargs = logging_calls[0]
        assert args == ("warning",)
        assert kwargs == {"log_file": log_file, "json_logs": True}

    def test_log_file_from_settings(self, logging_calls, devices_file, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"log_file": str(tmp_path / "dd.log"), "log_level": "info"}))

        cli.main(["--config", str(path), "--devices-file", devices_file, "-v"])

        args, kwargs = logging_calls[0]
        assert args == ("debug",)
        assert kwargs["log_file"] == tmp_path / "dd.log"
        assert kwargs["json_logs"] is False
