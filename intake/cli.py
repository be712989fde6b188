"""Command-line interface for offline normalization and snapshot inspection.

Normalizes recognition-output JSON files one at a time or a folder at a
time (exported to CSV), and reports on stored session snapshots.
"""

import argparse
import csv
import json
import sys
from pathlib import Path

from intake.normalization.models import DocumentCapture, DocumentType, RecognitionOutput
from intake.normalization.normalizer import DocumentNormalizer
from intake.session.storage import FileSnapshotStore, decode_snapshot
from intake.utils.clock import utcnow
from intake.utils.config import AppConfig, load_config
from intake.utils.exceptions import SnapshotError
from intake.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_META_COLUMNS = [
    "filename",
    "status",
    "document_type",
    "overall_confidence",
    "requires_review",
    "error",
]


def _find_outputs(input_dir: Path) -> list[Path]:
    """Find all recognition-output JSON files in a directory."""
    return sorted(set(input_dir.glob("*.json")) | set(input_dir.glob("*.JSON")))


def normalize_file(
    file_path: Path,
    normalizer: DocumentNormalizer,
    document_type: str = "other",
) -> DocumentCapture:
    """Normalize one recognition-output JSON file.

    Args:
        file_path: JSON file holding the recognition payload.
        normalizer: Normalizer to apply.
        document_type: Declared document type.

    Returns:
        Normalized document capture.
    """
    data = json.loads(file_path.read_text(encoding="utf-8"))
    output = RecognitionOutput.from_dict(data)
    doc_type = data.get("document_type", document_type)
    return normalizer.normalize(output, DocumentType(doc_type))


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: str = "other",
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Normalize every JSON file in a folder and export the results to CSV.

    Args:
        input_dir: Directory containing recognition-output files.
        output_csv: Path for the output CSV file.
        document_type: Default document type for files that declare none.
        verbose: Whether to print per-file progress.
        config: Configuration; loaded from disk when omitted.

    Returns:
        Summary dict with total, successful, failed and review counts.
    """
    config = config or load_config()
    normalizer = DocumentNormalizer(config.normalization)

    files = _find_outputs(input_dir)
    if not files:
        logger.warning("No recognition outputs found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0, "review": 0}

    logger.info("Found %d recognition outputs to normalize", len(files))

    results: list[dict[str, object]] = []
    successful = failed = review = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Normalizing [{i}/{len(files)}]: {file_path.name}")
        try:
            capture = normalize_file(file_path, normalizer, document_type)
        except (OSError, ValueError) as exc:
            logger.error("Failed to normalize %s: %s", file_path.name, exc)
            results.append({"filename": file_path.name, "status": "failed", "error": str(exc)})
            failed += 1
            continue

        row: dict[str, object] = {
            "filename": file_path.name,
            "status": "success",
            "document_type": str(capture.document_type),
            "overall_confidence": round(capture.overall_confidence, 3),
            "requires_review": capture.requires_review,
            "error": None,
        }
        row.update(capture.extracted_fields)
        results.append(row)
        successful += 1
        review += int(capture.requires_review)

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {
        "total": len(files),
        "successful": successful,
        "failed": failed,
        "review": review,
    }
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Normalization Complete")
    print(f"{'=' * 50}")
    print(f"Total:         {summary['total']}")
    print(f"Successful:    {summary['successful']}")
    print(f"Failed:        {summary['failed']}")
    print(f"Needs review:  {summary['review']}")
    print(f"Output:        {output_csv}")


def describe_snapshot(
    directory: Path, key: str, config: AppConfig | None = None
) -> dict[str, object]:
    """Summarize a stored session snapshot.

    Args:
        directory: Snapshot directory.
        key: Storage key of the snapshot.
        config: Configuration providing the expiry window.

    Returns:
        Snapshot facts, or ``{"exists": False}`` when nothing is stored.

    Raises:
        SnapshotError: If the stored snapshot cannot be read.
    """
    config = config or load_config()
    raw = FileSnapshotStore(directory).get(key)
    if raw is None:
        return {"exists": False}

    snapshot = decode_snapshot(raw)
    session = snapshot.session
    age = (utcnow() - session.last_activity).total_seconds()
    return {
        "exists": True,
        "session_id": session.id,
        "saved_at": snapshot.saved_at.isoformat(),
        "current_step": session.current_step.value,
        "completed_steps": sorted(session.completed_steps),
        "language": session.language,
        "documents": len(session.documents),
        "forms": {k: str(v.status) for k, v in session.forms.items()},
        "age_seconds": round(age, 1),
        "expired": age >= config.session.snapshot_expiry,
    }


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Onboarding intake tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    doc_types = [t.value for t in DocumentType]

    single_parser = subparsers.add_parser(
        "normalize", help="Normalize one recognition-output JSON file"
    )
    single_parser.add_argument("file", type=Path, help="Recognition output JSON")
    single_parser.add_argument(
        "-t", "--type", choices=doc_types, default="other", dest="doc_type"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser(
        "batch", help="Normalize a folder of recognition outputs"
    )
    batch_parser.add_argument("input_dir", type=Path, help="Input directory")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t", "--type", choices=doc_types, default="other", dest="doc_type"
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true")

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Inspect a stored session snapshot"
    )
    snapshot_parser.add_argument("directory", type=Path, help="Snapshot directory")
    snapshot_parser.add_argument("--key", default=None, help="Storage key")

    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(config.log_level)

    if args.command == "normalize":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        normalizer = DocumentNormalizer(config.normalization)
        capture = normalize_file(args.file, normalizer, args.doc_type)
        output_str = capture.model_dump_json(indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.doc_type, args.verbose, config)
    elif args.command == "snapshot":
        key = args.key or config.session.storage_key
        try:
            info = describe_snapshot(args.directory, key, config)
        except SnapshotError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(info, indent=2))
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
