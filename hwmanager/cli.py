"""CLI entry points for the VMware hardware manager."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from hwmanager.commands import CommandSurface
from hwmanager.config import parse_env
from hwmanager.constants import VMRUN_VERBS
from hwmanager.exceptions import ManagerError
from hwmanager.models import CommandResult, Container, HardwareProfile
from hwmanager.utils import log


def _fail(result: CommandResult) -> int:
    log("ERROR", result.error or "unknown error")
    return 1


def print_profiles(profiles: List[HardwareProfile]) -> None:
    if not profiles:
        log("WARN", "No hardware profiles saved")
        return
    for profile in profiles:
        print(f"  {profile.id}  {profile.name}")
        print(f"      bios:       {profile.bios_path}")
        print(f"      executable: {profile.executable_path}")


def print_containers(containers: List[Container], statuses: Optional[dict] = None) -> None:
    if not containers:
        log("WARN", "No containers saved")
        return
    for container in containers:
        profile = container.hardware_profile_id or "-"
        line = f"  {container.id}  {container.name}  (profile={profile})"
        if statuses is not None:
            line += f"  [{statuses.get(container.id, 'unknown')}]"
        print(line)
        print(f"      vmx: {container.vm_definition_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hwmanager", description="VMware Workstation hardware profile manager")
    parser.add_argument("--config", help="Path to a hwmanager.yaml file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("install-path", help="Discover the VMware Workstation installation path")

    validate = sub.add_parser("validate", help="Check an installation path")
    validate.add_argument("path")

    scan = sub.add_parser("scan", help="Find .vmx files below a directory")
    scan.add_argument("root")
    scan.add_argument("--import", dest="do_import", action="store_true", help="Save new entries as containers")

    profiles = sub.add_parser("profiles", help="Manage hardware profiles")
    profiles_sub = profiles.add_subparsers(dest="action", required=True)
    profiles_sub.add_parser("list")
    add = profiles_sub.add_parser("add")
    add.add_argument("name")
    add.add_argument("bios_path")
    add.add_argument("executable_path")
    remove = profiles_sub.add_parser("remove")
    remove.add_argument("profile_id")
    probe = profiles_sub.add_parser("probe", help="Save the installation's own BIOS/executable as the default profile")
    probe.add_argument("--path", help="Installation path (default: configured path)")

    containers = sub.add_parser("containers", help="Manage containers")
    containers_sub = containers.add_subparsers(dest="action", required=True)
    containers_sub.add_parser("list")
    containers_sub.add_parser("status")
    cadd = containers_sub.add_parser("add")
    cadd.add_argument("vmx_path")
    cadd.add_argument("--name")
    cadd.add_argument("--profile")
    cremove = containers_sub.add_parser("remove")
    cremove.add_argument("container_id")
    assign = containers_sub.add_parser("assign")
    assign.add_argument("container_id")
    assign.add_argument("profile_id", help="Profile id, or 'none' to clear")

    settings = sub.add_parser("settings", help="Show or change settings")
    settings_sub = settings.add_subparsers(dest="action", required=True)
    settings_sub.add_parser("show")
    set_path = settings_sub.add_parser("set-path")
    set_path.add_argument("path", nargs="?", help="Installation path (default: auto-discover)")

    sub.add_parser("running", help="List running VMs")

    op = sub.add_parser("op", help="Run a lifecycle verb on a .vmx file")
    op.add_argument("verb", help=f"One of: {', '.join(VMRUN_VERBS)}")
    op.add_argument("vmx_path")
    op.add_argument("--profile", help="Hardware profile id to apply for this run")

    run = sub.add_parser("run", help="Run a lifecycle verb on saved containers")
    run.add_argument("verb", help=f"One of: {', '.join(VMRUN_VERBS)}")
    run.add_argument("container_ids", nargs="+")
    return parser


def _profiles(surface: CommandSurface, args) -> int:
    if args.action == "list":
        result = surface.list_profiles()
        if not result.ok:
            return _fail(result)
        print_profiles(result.value)
        return 0
    if args.action == "add":
        result = surface.add_profile(args.name, args.bios_path, args.executable_path)
        if not result.ok:
            return _fail(result)
        print(result.value.id)
        return 0
    if args.action == "remove":
        result = surface.remove_profile(args.profile_id)
        return 0 if result.ok else _fail(result)
    # probe
    result = surface.scan_default_profiles(args.path)
    if not result.ok:
        return _fail(result)
    if not result.value:
        log("WARN", "No default BIOS/executable pair found")
        return 1
    saved = surface.import_profiles(result.value)
    if not saved.ok:
        return _fail(saved)
    log("SUCCESS", "Default hardware profile saved")
    return 0


def _containers(surface: CommandSurface, args) -> int:
    if args.action in ("list", "status"):
        result = surface.list_containers()
        if not result.ok:
            return _fail(result)
        statuses = None
        if args.action == "status":
            status_result = surface.container_statuses()
            if not status_result.ok:
                return _fail(status_result)
            statuses = status_result.value
        print_containers(result.value, statuses)
        return 0
    if args.action == "add":
        result = surface.add_container(args.vmx_path, args.name, args.profile)
        if not result.ok:
            return _fail(result)
        print(result.value.id)
        return 0
    if args.action == "remove":
        result = surface.remove_container(args.container_id)
        return 0 if result.ok else _fail(result)
    # assign
    profile_id = None if args.profile_id.lower() == "none" else args.profile_id
    result = surface.assign_profile(args.container_id, profile_id)
    return 0 if result.ok else _fail(result)


def _settings(surface: CommandSurface, args) -> int:
    if args.action == "show":
        result = surface.load_settings()
        if not result.ok:
            return _fail(result)
        for key, value in result.value.to_dict().items():
            print(f"  {key}: {value if value is not None else '-'}")
        return 0
    path = args.path
    if path is None:
        discovered = surface.get_installation_path()
        if not discovered.ok:
            return _fail(discovered)
        path = discovered.value
    result = surface.set_installation_path(path)
    if not result.ok:
        return _fail(result)
    log("SUCCESS", f"Installation path set to {result.value.installation_path}")
    return 0


def dispatch(surface: CommandSurface, args) -> int:
    if args.command == "install-path":
        result = surface.get_installation_path()
        if not result.ok:
            return _fail(result)
        print(result.value)
        return 0
    if args.command == "validate":
        result = surface.validate_installation_path(args.path)
        if not result.ok:
            return _fail(result)
        log("SUCCESS", f"Valid installation: {result.value}")
        return 0
    if args.command == "scan":
        result = surface.submit_scan(args.root, include_config=False).result()
        if not result.ok:
            return _fail(result)
        for entry in result.value:
            print(f"  {entry.name}  {entry.path}")
        if args.do_import:
            imported = surface.import_containers(result.value)
            if not imported.ok:
                return _fail(imported)
            log("SUCCESS", f"{len(imported.value)} containers saved")
        return 0
    if args.command == "profiles":
        return _profiles(surface, args)
    if args.command == "containers":
        return _containers(surface, args)
    if args.command == "settings":
        return _settings(surface, args)
    if args.command == "running":
        result = surface.list_running_vms()
        if not result.ok:
            return _fail(result)
        for path in result.value:
            print(f"  {path}")
        return 0
    if args.command == "op":
        result = surface.vm_operation(args.verb, args.vmx_path, args.profile)
        if not result.ok:
            return _fail(result)
        log("SUCCESS", f"{args.verb} completed for {args.vmx_path}")
        return 0
    # run
    results = surface.batch_operation(args.verb, args.container_ids)
    failed = 0
    for container_id, result in zip(args.container_ids, results):
        if result.ok:
            log("SUCCESS", f"{args.verb} completed for container {container_id}")
        else:
            failed += 1
            log("ERROR", f"{container_id}: {result.error}")
    return 1 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = parse_env(config_path=Path(args.config) if args.config else None)
    except ManagerError as exc:
        log("ERROR", str(exc))
        return 1

    surface = CommandSurface(config)
    try:
        return dispatch(surface, args)
    except ManagerError as exc:
        log("ERROR", str(exc))
        return 1
    except Exception as exc:
        log("ERROR", f"Unexpected error: {exc}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        surface.shutdown()
