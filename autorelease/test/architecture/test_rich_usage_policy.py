from __future__ import annotations

from _gate import require_arch_checks_enabled
from _utils import iter_source_files, matches_prefix, package_root, parse_imports


def test_rich_is_only_imported_by_console() -> None:
    require_arch_checks_enabled()

    root = package_root()
    allowlist = {"output/console.py"}

    offenders: list[str] = []
    for path in iter_source_files():
        rel = path.relative_to(root).as_posix()
        if rel in allowlist:
            continue
        for ref in parse_imports(path, include_type_checking=True):
            if matches_prefix(ref.module, "rich"):
                offenders.append(f"{rel}:{ref.line}: imports {ref.module}")

    assert not offenders, "Rich must stay behind ConsoleProtocol:\n" + "\n".join(offenders)
