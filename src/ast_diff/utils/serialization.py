"""Flat JSON records for mappings and edit actions.

One record per mapping and one per action, emitted as JSON lines with sorted
keys so identical diffs serialize to identical bytes.
"""

import json
from pathlib import Path

from ast_diff.models import FileDiff, MappingRecord, ProjectDiff


def file_diff_to_records(diff: FileDiff) -> list[dict]:
    """Mapping records (source preorder) followed by action records (script order)."""
    records: list[dict] = [
        {"type": "mapping", "file": diff.file_path, "src": m.src, "dst": m.dst}
        for m in diff.mappings
    ]
    for action in diff.actions:
        fields = action.model_dump(mode="json")
        record = {
            "type": "action",
            "file": diff.file_path,
            "kind": fields.pop("kind"),
            "node": fields.pop("node_id"),
        }
        record.update(fields)
        records.append(record)
    return records


def project_diff_to_records(diff: ProjectDiff) -> list[dict]:
    records: list[dict] = []
    for file_diff in diff.file_diffs:
        records.extend(file_diff_to_records(file_diff))
    for failed in diff.failed:
        records.append(
            {
                "type": "failure",
                "file": failed.file_path,
                "error_type": failed.error_type,
                "message": failed.message,
            }
        )
    return records


def dumps_records(records: list[dict]) -> str:
    """Serialize records as JSON lines (sorted keys, compact separators)."""
    return "".join(
        json.dumps(record, sort_keys=True, separators=(",", ":"), ensure_ascii=False) + "\n"
        for record in records
    )


def write_records(path: str, diff: ProjectDiff) -> None:
    """Write the records of ``diff`` to ``path``, creating parent directories."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(dumps_records(project_diff_to_records(diff)), encoding="utf-8")


def load_mapping_records(path: str) -> dict[str, list[MappingRecord]]:
    """Read the mapping records of a JSON-lines file, grouped by file path.

    Non-mapping records are skipped.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a line is not valid JSON
    """
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Records file not found: {path}")

    grouped: dict[str, list[MappingRecord]] = {}
    for lineno, line in enumerate(source.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}:{lineno}: invalid JSON record: {exc}") from exc
        if record.get("type") != "mapping":
            continue
        grouped.setdefault(record["file"], []).append(
            MappingRecord(src=record["src"], dst=record["dst"])
        )
    return grouped
