"""vmrun invocation behind a narrow VM control port."""

from __future__ import annotations

import subprocess
from typing import List, Optional

from hwmanager.constants import DEFAULT_VMRUN_TIMEOUT, VMRUN_VERBS
from hwmanager.exceptions import ExternalProcessError, UnsupportedOperationError
from hwmanager.models import ProcessOutput
from hwmanager.utils import log, run


def build_vmrun_args(verb: str, vm_definition_path: str) -> List[str]:
    """Arguments after the vmrun binary for ``verb``."""
    try:
        trailing = VMRUN_VERBS[verb]
    except KeyError:
        supported = ", ".join(sorted(VMRUN_VERBS))
        raise UnsupportedOperationError(f"Unsupported operation '{verb}'. Supported: {supported}")
    return [verb, str(vm_definition_path), *trailing]


def parse_list_output(stdout: str) -> List[str]:
    """Running VM paths from ``vmrun list`` (first line is a "Total running VMs" header)."""
    lines = stdout.splitlines()[1:]
    return [line.strip() for line in lines if line.strip()]


class VMControlPort:
    """Interface for issuing lifecycle verbs to VMs."""

    def invoke(self, verb: str, vm_definition_path: str) -> ProcessOutput:
        raise NotImplementedError

    def list_running(self) -> List[str]:
        raise NotImplementedError


class VmrunController(VMControlPort):
    """Run VMware's ``vmrun`` as a subprocess.

    By default only spawn failures and timeouts are errors; a non-zero exit is
    recorded in the returned output and logged. ``strict_exit`` turns it into an
    ExternalProcessError.
    """

    def __init__(
        self,
        vmrun: str = "vmrun",
        *,
        timeout: Optional[float] = DEFAULT_VMRUN_TIMEOUT,
        strict_exit: bool = False,
    ) -> None:
        self.vmrun = vmrun
        self.timeout = timeout
        self.strict_exit = strict_exit

    def _execute(self, args: List[str]) -> ProcessOutput:
        cmd = [self.vmrun, *args]
        try:
            result = run(
                cmd,
                check=False,
                capture_output=True,
                timeout=self.timeout,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired:
            # subprocess.run kills the child before re-raising
            raise ExternalProcessError(f"{' '.join(cmd)} timed out after {self.timeout}s")
        except OSError as exc:
            raise ExternalProcessError(f"Failed to run {self.vmrun}: {exc}")

        output = ProcessOutput(
            args=cmd,
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
        if output.returncode != 0:
            detail = (output.stderr or output.stdout).strip()
            message = f"{' '.join(cmd)} exited with status {output.returncode}"
            if detail:
                message += f": {detail}"
            if self.strict_exit:
                raise ExternalProcessError(message)
            log("WARN", message)
        return output

    def invoke(self, verb: str, vm_definition_path: str) -> ProcessOutput:
        args = build_vmrun_args(verb, vm_definition_path)
        log("INFO", f"vmrun {verb}: {vm_definition_path}")
        return self._execute(args)

    def list_running(self) -> List[str]:
        output = self._execute(["list"])
        return parse_list_output(output.stdout)
