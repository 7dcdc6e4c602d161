#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

INDENT = "  "
DEPENDENCIES_KEY = "dependencies:"

# Column-0 block header: `"a@^1", a@^2:` (classic) or `"a@npm:^1":` (berry).
HEADER_RE = re.compile(r"^(?P<header>[^\s#].*?):[ \t]*$")
BERRY_METADATA_RE = re.compile(r"^__metadata:[ \t]*$", re.MULTILINE)
# Lines end at "\n" only; str.splitlines would also break on \x0c, \x85 and \u2028.
LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")
NPM_PROTOCOL = "npm:"


@dataclass
class Entry:
    """One column-0 block of a yarn.lock file.

    `identity` is None for blocks that are not package entries (the banner
    comment before the first header, berry's `__metadata:`). `aliases` lists
    every package name the header resolves, identity first: classic locks
    coalesce npm aliases into the real package's header.
    """
    identity: Optional[str]
    version_specifiers: List[str] = field(default_factory=list)
    raw_span: str = ""
    dependencies: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.identity is not None and self.identity not in self.aliases:
            self.aliases.insert(0, self.identity)

    @property
    def is_package(self) -> bool:
        return self.identity is not None


def split_specifier(spec: str) -> Optional[Tuple[str, str]]:
    # The name ends at the first `@` after position 0 so `@scope/name` stays whole.
    spec = spec.strip().strip('"')
    at = spec.find("@", 1)
    if at <= 0:
        return None
    return spec[:at], spec[at + 1:]


def package_name(token: str) -> str:
    """Bare package name of a header specifier or dependency token.

    Strips quotes, `{}` workspace braces, a trailing `:` (berry) and any
    `@range` / `@workspace:path` decoration.
    """
    name = token.strip()
    if name.endswith(":"):
        name = name[:-1]
    name = name.strip('"')
    if name.startswith("{") and name.endswith("}"):
        name = name[1:-1].strip().strip('"')
    at = name.find("@", 1)
    if at > 0:
        name = name[:at]
    return name


def parse_header(line: str) -> Optional[Tuple[List[str], List[str]]]:
    """Names and ranges of a header line, or None if it names no package.

    `string-width-cjs@npm:string-width@^4.2.0` names both `string-width-cjs`
    and `string-width`.
    """
    m = HEADER_RE.match(line)
    if not m:
        return None
    names: List[str] = []
    ranges: List[str] = []
    for spec in m.group("header").split(","):
        parts = split_specifier(spec)
        if parts is None:
            continue
        name, rng = parts
        found = [name]
        if rng.startswith(NPM_PROTOCOL):
            target = split_specifier(rng[len(NPM_PROTOCOL):])
            if target is not None:
                found.append(target[0])
        for n in found:
            if n not in names:
                names.append(n)
        ranges.append(rng)
    if not names:
        return None
    return names, ranges


def dependency_token(line: str) -> str:
    s = line.strip()
    if s.startswith('"'):
        end = s.find('"', 1)
        if end > 0:
            return s[:end + 1]
    return s.split()[0]


def parse(raw_text: str) -> List[Entry]:
    """Split lock text into blocks, in file order.

    Never fails on malformed text: anything that is not a header or an
    indented body line is filler and stays with the preceding block, so
    joining every `raw_span` gives back the input unchanged.
    """
    if not isinstance(raw_text, str):
        raise TypeError(f"lock text must be str, not {type(raw_text).__name__}")

    entries: List[Entry] = []
    current = Entry(identity=None)
    in_body = False
    in_deps = False

    for line in LINE_RE.findall(raw_text):
        bare = line.rstrip("\r\n")
        if bare and not bare[0].isspace() and HEADER_RE.match(bare):
            if current.raw_span:
                entries.append(current)
            parsed = parse_header(bare)
            if parsed is None:
                current = Entry(identity=None)
            else:
                names, ranges = parsed
                current = Entry(identity=names[0], version_specifiers=ranges, aliases=names)
            current.raw_span = line
            in_body = True
            in_deps = False
            continue

        current.raw_span += line
        if not in_body or not bare.startswith(INDENT):
            in_body = False
            in_deps = False
            continue
        if current.identity is None:
            continue

        if bare.rstrip() == INDENT + DEPENDENCIES_KEY:
            in_deps = True
        elif in_deps and bare.startswith(INDENT * 2) and bare.strip():
            current.dependencies.append(dependency_token(bare))
        else:
            in_deps = False

    if current.raw_span:
        entries.append(current)
    return entries


def render(entries: List[Entry]) -> str:
    return "".join(e.raw_span for e in entries)


def is_berry(raw_text: str) -> bool:
    return BERRY_METADATA_RE.search(raw_text) is not None


def main() -> int:
    ap = argparse.ArgumentParser(description="Dump the package entries of a yarn.lock file as JSON.")
    ap.add_argument("--lock-file", default="yarn.lock", help="Lock file path (default: yarn.lock)")
    ap.add_argument("--package", action="append", default=[], help="Only show entries for this package (repeatable).")
    args = ap.parse_args()

    lock_path = Path(args.lock_file).resolve()
    if not lock_path.exists():
        raise SystemExit(f"Lock file not found: {lock_path}")
    with lock_path.open("r", encoding="utf-8", newline="") as f:
        text = f.read()
    entries = parse(text)

    rows = []
    for e in entries:
        if not e.is_package:
            continue
        if args.package and not set(e.aliases) & set(args.package):
            continue
        rows.append({
            "identity": e.identity,
            "aliases": e.aliases,
            "version_specifiers": e.version_specifiers,
            "dependencies": [package_name(d) for d in e.dependencies],
        })
    lossless = render(entries) == text
    out = {"lock_file": str(lock_path), "lossless": lossless, "entry_count": len(rows), "entries": rows}
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0 if lossless else 1


if __name__ == "__main__":
    raise SystemExit(main())
