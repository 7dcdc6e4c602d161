#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import jsonschema

from prune_lock import build_reverse_index, closure, excise, read_lock, write_lock
from yarn_lock import is_berry, parse

LOCK_FILE = "yarn.lock"
TRUE_VALUES = {"true", "True", "TRUE"}
FALSE_VALUES = {"false", "False", "FALSE", ""}


def repo_root_from_here() -> Path:
    return Path(__file__).resolve().parents[1]


class CommitFailed(RuntimeError):
    pass


def run(cmd: List[str], cwd: Path, capture: bool = True) -> Tuple[int, str]:
    """Run a command; with capture=False its output streams straight to the log."""
    try:
        if not capture:
            sys.stdout.flush()
            p = subprocess.run(cmd, cwd=str(cwd))
            return p.returncode, ""
        p = subprocess.run(cmd, cwd=str(cwd), stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
    except OSError as e:
        return 127, f"{cmd[0]}: {e}"
    return p.returncode, p.stdout.strip()


def get_input(name: str) -> str:
    # GitHub upper-cases input names and keeps dashes: INPUT_COMMIT-MESSAGE.
    return os.environ.get(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()


def parse_bool(value: str) -> Union[bool, str]:
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return value


def collect_inputs(args: argparse.Namespace) -> Dict[str, Any]:
    """Command-line options win; anything not given falls back to INPUT_* env."""
    if args.packages:
        packages = " ".join(args.packages)
    else:
        packages = get_input("packages")
    return {
        "packages": packages.split(),
        "directory": args.directory if args.directory is not None else (get_input("directory") or "."),
        "commit": parse_bool(args.commit if args.commit is not None else get_input("commit")),
        "commit-message": args.commit_message if args.commit_message is not None else get_input("commit-message"),
        "skip-hooks": parse_bool(args.skip_hooks if args.skip_hooks is not None else get_input("skip-hooks")),
    }


def validate_inputs(inputs: Dict[str, Any], schema_path: Path) -> None:
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    try:
        jsonschema.validate(instance=inputs, schema=schema)
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "inputs"
        raise SystemExit(f"Invalid input {where}: {e.message}")


def install_command(lock_text: str) -> List[str]:
    # Berry refuses to touch the lock under CI unless told otherwise.
    if is_berry(lock_text):
        return ["yarn", "install", "--no-immutable"]
    return ["yarn", "install"]


def commit_changes(directory: Path, message: str, skip_hooks: bool) -> str:
    commit_cmd = ["git", "commit", "-m", message]
    if skip_hooks:
        commit_cmd.append("-n")
    for cmd in (["git", "add", LOCK_FILE], commit_cmd):
        rc, out = run(cmd, cwd=directory)
        if rc != 0:
            raise CommitFailed(out or f"{' '.join(cmd)} exited with status {rc}")
    rc, out = run(["git", "rev-parse", "HEAD"], cwd=directory)
    if rc != 0:
        raise CommitFailed(out or f"git rev-parse exited with status {rc}")
    return out.strip()


def set_output(name: str, value: str) -> None:
    out_file = os.environ.get("GITHUB_OUTPUT")
    if not out_file:
        return
    with open(out_file, "a", encoding="utf-8") as f:
        f.write(f"{name}={value}\n")


def warn(message: str) -> None:
    print(f"::warning::{message}", file=sys.stderr)


def build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Drop packages and their dependents from yarn.lock, reinstall, and optionally commit.",
        epilog="Options not given fall back to the INPUT_* variables GitHub Actions sets.",
    )
    ap.add_argument("packages", nargs="*", help="Packages to refresh (default: $INPUT_PACKAGES, space separated).")
    ap.add_argument("--directory", default=None, help="Directory holding yarn.lock (default: .)")
    ap.add_argument("--commit", action="store_const", const="true", default=None, help="Commit the refreshed lock file.")
    ap.add_argument("--commit-message", default=None, help="Commit message (default: 'Refresh <packages> dependencies').")
    ap.add_argument("--skip-hooks", action="store_const", const="true", default=None, help="Pass -n to git commit.")
    ap.add_argument("--schema", default=str(repo_root_from_here() / "schemas" / "lock_breaker_inputs.schema.json"),
                    help="Inputs JSON Schema (default: schemas/lock_breaker_inputs.schema.json)")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    inputs = collect_inputs(args)
    package_names: List[str] = inputs["packages"]
    if not package_names:
        raise SystemExit("No packages specified")
    validate_inputs(inputs, Path(args.schema))

    directory = inputs["directory"]
    lock_path = os.path.join(directory, LOCK_FILE)
    if not os.path.exists(lock_path):
        raise SystemExit(f"{LOCK_FILE} not found at {lock_path}")

    print(f"Refreshing {', '.join(package_names)} dependencies in {directory}")

    # Every package is resolved against the lock as read, never a partial rewrite.
    lock_text = read_lock(Path(lock_path))
    entries = parse(lock_text)
    index = build_reverse_index(entries)

    removed = set()
    dependents: Dict[str, List[str]] = {}
    updated_packages: List[str] = []
    for name in package_names:
        print(f'Refreshing "{name}".')
        found = closure(entries, [name], index)
        dependents[name] = sorted(found - {name})
        removed |= found
        print(f'Entries for package "{name}" and its dependents have been removed from {LOCK_FILE}.')
        updated_packages.append(name)

    write_lock(Path(lock_path), excise(entries, removed))

    install = install_command(lock_text)
    print(f"Running {' '.join(install)}...")
    rc, out = run(install, cwd=Path(directory), capture=False)
    if rc != 0:
        raise SystemExit(out or f"{' '.join(install)} failed with exit code {rc}")

    commit_sha = ""
    if inputs["commit"]:
        message = inputs["commit-message"] or f"Refresh {', '.join(package_names)} dependencies"
        try:
            commit_sha = commit_changes(Path(directory), message, skip_hooks=inputs["skip-hooks"])
            print(f"Changes committed: {commit_sha}")
        except CommitFailed as e:
            warn(f"Failed to commit changes: {e}")

    outputs = {"updated-packages": " ".join(updated_packages), "commit-sha": commit_sha}
    for key, value in outputs.items():
        set_output(key, value)

    report = {
        "ok": True,
        "directory": directory,
        "packages": package_names,
        "removed": sorted(removed),
        "dependents": dependents,
        "install_command": install,
        "committed": bool(commit_sha),
        "outputs": outputs,
    }
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
