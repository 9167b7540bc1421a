from __future__ import annotations

import argparse
import json
from collections.abc import Sequence
from pathlib import Path

from sprout_connector.main import app
from sprout_connector.models.video_contracts import build_video_table_schema

OPENAPI_FILE_NAME = "openapi.json"
TABLE_SCHEMA_FILE_NAME = "videos-table.json"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export the connector's OpenAPI document and Videos table schema.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("openapi"),
        help="Directory to write into (default: ./openapi).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    output_dir: Path = _parse_args(argv).output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    documents = {
        OPENAPI_FILE_NAME: app.openapi(),
        TABLE_SCHEMA_FILE_NAME: build_video_table_schema().model_dump(by_alias=True),
    }
    for file_name, document in documents.items():
        path = output_dir / file_name
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        print(f"Wrote {path}")


if __name__ == "__main__":
    main()
