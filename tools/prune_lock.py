#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from yarn_lock import Entry, package_name, parse


@dataclass
class PruneResult:
    text: str
    removed: Set[str]


def _check_targets(targets: Iterable[str]) -> List[str]:
    # A bare string would otherwise be pruned character by character.
    if targets is None or isinstance(targets, str):
        raise TypeError("targets must be an iterable of package names")
    out: List[str] = []
    for t in targets:
        if not isinstance(t, str):
            raise TypeError(f"package name must be str, not {type(t).__name__}")
        if t and t not in out:
            out.append(t)
    return out


def build_reverse_index(entries: List[Entry]) -> Dict[str, List[str]]:
    """Map each dependency name to the package names that declare it, in file order.

    A dependent block contributes every name in its header, not only its identity.
    """
    index: Dict[str, List[str]] = {}
    for e in entries:
        if not e.is_package:
            continue
        for token in e.dependencies:
            name = package_name(token)
            if not name:
                continue
            dependents = index.setdefault(name, [])
            for alias in e.aliases:
                if alias not in dependents:
                    dependents.append(alias)
    return index


def build_alias_index(entries: List[Entry]) -> Dict[str, List[str]]:
    """Map each package name to the names sharing a header block with it."""
    siblings: Dict[str, List[str]] = {}
    for e in entries:
        if len(e.aliases) < 2:
            continue
        for alias in e.aliases:
            known = siblings.setdefault(alias, [])
            for other in e.aliases:
                if other != alias and other not in known:
                    known.append(other)
    return siblings


def closure(entries: List[Entry], targets: Iterable[str], index: Optional[Dict[str, List[str]]] = None) -> Set[str]:
    """Targets plus every package that transitively depends on one of them.

    Worklist over the reverse index; a name is expanded at most once so
    cyclic lock graphs terminate. Removing a block removes all of its
    header names, so those join the closure too.
    """
    if entries is None:
        raise TypeError("entries must be a list of Entry")
    names = _check_targets(targets)
    if index is None:
        index = build_reverse_index(entries)
    siblings = build_alias_index(entries)

    seen: Set[str] = set(names)
    queue = deque(names)
    while queue:
        name = queue.popleft()
        for other in siblings.get(name, []) + index.get(name, []):
            if other not in seen:
                seen.add(other)
                queue.append(other)
    return seen


def excise(entries: List[Entry], names: Set[str]) -> str:
    return "".join(e.raw_span for e in entries if not e.is_package or not names.intersection(e.aliases))


def prune(entries: List[Entry], targets: Iterable[str]) -> PruneResult:
    removed = closure(entries, targets)
    return PruneResult(text=excise(entries, removed), removed=removed)


def read_lock(path: Path) -> str:
    # newline="" keeps CRLF lock files byte-identical on rewrite.
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError:
        raise SystemExit(f"{path} is not valid UTF-8")


def write_lock(path: Path, text: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8", newline="") as f:
        f.write(text)
    tmp.replace(path)


def main() -> int:
    ap = argparse.ArgumentParser(description="Remove packages and everything that depends on them from a yarn.lock.")
    ap.add_argument("packages", nargs="+", help="Package names to remove (scoped names like @types/node allowed).")
    ap.add_argument("--lock-file", default="yarn.lock", help="Lock file path (default: yarn.lock)")
    ap.add_argument("--write", action="store_true", help="Rewrite the lock file (default: dry-run).")
    args = ap.parse_args()

    lock_path = Path(args.lock_file).resolve()
    if not lock_path.exists():
        raise SystemExit(f"Lock file not found: {lock_path}")

    entries = parse(read_lock(lock_path))
    result = prune(entries, args.packages)
    if args.write:
        write_lock(lock_path, result.text)

    before = sum(1 for e in entries if e.is_package)
    after = sum(1 for e in entries if e.is_package and not result.removed.intersection(e.aliases))
    out = {
        "lock_file": str(lock_path),
        "targets": args.packages,
        "removed": sorted(result.removed),
        "removed_count": len(result.removed),
        "entries_before": before,
        "entries_after": after,
        "write_mode": bool(args.write),
    }
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
