#!/usr/bin/env python3
"""Smoke test for the LSP showOwner path against a real server process."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

try:
    from codeowners_lsp.lsp_client import run_show_owner
except ModuleNotFoundError:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from codeowners_lsp.lsp_client import run_show_owner


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("path", nargs="?", default="src/codeowners_lsp/server.py")
    parser.add_argument("--root", default=".")
    parser.add_argument("--manifest", default=None)
    parser.add_argument("--timeout", type=float, default=10.0)
    args = parser.parse_args()

    root = Path(args.root).resolve()
    result = run_show_owner(
        (root / args.path).resolve(),
        root=root,
        manifest_path=args.manifest,
        timeout_seconds=args.timeout,
    )
    if result.message is None:
        raise SystemExit("Missing window/showMessage notification for showOwner")
    print(result.message)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
