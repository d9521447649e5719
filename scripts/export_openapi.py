from __future__ import annotations

import argparse
import json
from pathlib import Path


def _write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # Keep ASCII-only output for repo diffs; non-ASCII will be \u-escaped.
    payload = json.dumps(data, ensure_ascii=True, indent=2, sort_keys=True)
    path.write_text(payload + "\n", encoding="utf-8")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export the FastAPI OpenAPI spec to apidocs/ as a JSON snapshot."
    )
    parser.add_argument(
        "--out-dir",
        default="apidocs",
        help="Output directory (default: apidocs)",
    )
    parser.add_argument(
        "--name",
        default="openapi.json",
        help="Snapshot file name (default: openapi.json)",
    )
    args = parser.parse_args()

    # Import the app lazily so argparse --help stays fast.
    from snippy_backend.main import app

    out_path = Path(args.out_dir) / args.name
    _write_json(out_path, app.openapi())
    print(f"wrote {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
