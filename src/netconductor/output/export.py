"""Data import/export functionality."""

import csv
import json
from pathlib import Path
from typing import Any

from ..core.exceptions import ValidationError


def export_json(
    data: dict | list,
    output_file: str,
    pretty: bool = True,
) -> str:
    """
    Export data to JSON file.

    Args:
        data: Data to export
        output_file: Output file path
        pretty: Pretty print JSON

    Returns:
        Path to output file
    """
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        if pretty:
            json.dump(data, f, indent=2, default=_json_serializer)
        else:
            json.dump(data, f, default=_json_serializer)

    return str(output_path)


def export_csv(
    data: list[dict],
    output_file: str,
    fieldnames: list[str] | None = None,
) -> str:
    """
    Export list of dicts to CSV file.

    Args:
        data: List of dictionaries to export
        output_file: Output file path
        fieldnames: CSV column names (auto-detected if None)

    Returns:
        Path to output file
    """
    if not data:
        return output_file

    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if fieldnames is None:
        fieldnames = list(data[0].keys())

    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(data)

    return str(output_path)


def load_json(input_file: str) -> Any:
    """Read a JSON input file (external topology, node patches, ...)."""
    try:
        with open(input_file) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {input_file}", str(e)) from e


def diff_rows(diffs: list[dict]) -> list[dict]:
    """Flatten partition diff dicts into CSV rows."""
    return [
        {
            "network": d.get("network"),
            "source_snapshot": d["source_snapshot"],
            "target_snapshot": d["target_snapshot"],
            "layer": d["layer"],
            "score": d["score"],
            "separated": len(d["separated_sets"]),
            "merged": len(d["merged_sets"]),
        }
        for d in diffs
    ]


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for special types."""
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, Path):
        return str(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
