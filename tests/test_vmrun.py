"""Tests for hwmanager.vmrun module."""

from __future__ import annotations

import os
import subprocess
from unittest.mock import patch

import pytest

from hwmanager.exceptions import ExternalProcessError, UnsupportedOperationError
from hwmanager.vmrun import VmrunController, build_vmrun_args, parse_list_output


def _completed(cmd, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


class TestBuildArgs:
    @pytest.mark.parametrize(
        "verb,expected",
        [
            ("start", ["start", "C:/vms/a.vmx", "gui"]),
            ("stop", ["stop", "C:/vms/a.vmx", "soft"]),
            ("pause", ["pause", "C:/vms/a.vmx"]),
            ("reset", ["reset", "C:/vms/a.vmx", "soft"]),
        ],
    )
    def test_grammar(self, verb, expected):
        assert build_vmrun_args(verb, "C:/vms/a.vmx") == expected

    def test_unknown_verb(self):
        with pytest.raises(UnsupportedOperationError, match="Unsupported operation 'explode'"):
            build_vmrun_args("explode", "C:/vms/a.vmx")


class TestParseListOutput:
    def test_skips_header_and_blank_lines(self):
        stdout = "Total running VMs: 2\nC:\\vms\\a.vmx\n\nC:\\vms\\b.vmx\n"
        assert parse_list_output(stdout) == ["C:\\vms\\a.vmx", "C:\\vms\\b.vmx"]

    def test_empty(self):
        assert parse_list_output("") == []
        assert parse_list_output("Total running VMs: 0\n") == []


class TestVmrunController:
    def test_invoke_runs_vmrun(self):
        controller = VmrunController("C:/VMware/vmrun.exe", timeout=10)
        with patch("hwmanager.vmrun.run", return_value=_completed([], stdout="ok")) as mock_run:
            output = controller.invoke("start", "C:/vms/a.vmx")
        cmd = mock_run.call_args[0][0]
        assert cmd == ["C:/VMware/vmrun.exe", "start", "C:/vms/a.vmx", "gui"]
        assert mock_run.call_args.kwargs["check"] is False
        assert mock_run.call_args.kwargs["timeout"] == 10
        assert output.returncode == 0
        assert output.stdout == "ok"

    def test_unknown_verb_spawns_nothing(self):
        controller = VmrunController()
        with patch("hwmanager.vmrun.run") as mock_run:
            with pytest.raises(UnsupportedOperationError):
                controller.invoke("explode", "C:/vms/a.vmx")
        mock_run.assert_not_called()

    def test_non_zero_exit_is_lenient_by_default(self):
        controller = VmrunController()
        with (
            patch("hwmanager.vmrun.run", return_value=_completed([], returncode=255, stdout="Error: bad vmx")),
            patch("hwmanager.vmrun.log") as mock_log,
        ):
            output = controller.invoke("stop", "C:/vms/a.vmx")
        assert output.returncode == 255
        level, message = mock_log.call_args[0]
        assert level == "WARN"
        assert "exited with status 255: Error: bad vmx" in message

    def test_non_zero_exit_strict(self):
        controller = VmrunController(strict_exit=True)
        with patch("hwmanager.vmrun.run", return_value=_completed([], returncode=1, stderr="nope")):
            with pytest.raises(ExternalProcessError, match="exited with status 1: nope"):
                controller.invoke("pause", "C:/vms/a.vmx")

    def test_spawn_failure(self):
        controller = VmrunController("missing-vmrun")
        with patch("hwmanager.vmrun.run", side_effect=FileNotFoundError("No such file")):
            with pytest.raises(ExternalProcessError, match="Failed to run missing-vmrun"):
                controller.invoke("start", "C:/vms/a.vmx")

    def test_timeout(self):
        controller = VmrunController(timeout=1)
        with patch("hwmanager.vmrun.run", side_effect=subprocess.TimeoutExpired(["vmrun"], 1)):
            with pytest.raises(ExternalProcessError, match="timed out after 1s"):
                controller.invoke("start", "C:/vms/a.vmx")

    def test_list_running(self):
        controller = VmrunController()
        stdout = "Total running VMs: 1\nC:\\vms\\a.vmx\n"
        with patch("hwmanager.vmrun.run", return_value=_completed([], stdout=stdout)) as mock_run:
            assert controller.list_running() == ["C:\\vms\\a.vmx"]
        assert mock_run.call_args[0][0] == ["vmrun", "list"]

    def test_output_decoded_as_utf8_with_replacement(self):
        controller = VmrunController()
        with patch("hwmanager.vmrun.run", return_value=_completed([])) as mock_run:
            controller.list_running()
        assert mock_run.call_args.kwargs["encoding"] == "utf-8"
        assert mock_run.call_args.kwargs["errors"] == "replace"

    @pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell script standing in for vmrun")
    def test_undecodable_output_does_not_raise(self, tmp_path):
        script = tmp_path / "vmrun"
        script.write_text("#!/bin/sh\nprintf 'Total running VMs: 1\\n/vms/\\377\\376.vmx\\n'\n")
        script.chmod(0o755)
        controller = VmrunController(str(script))
        assert controller.list_running() == ["/vms/\ufffd\ufffd.vmx"]
