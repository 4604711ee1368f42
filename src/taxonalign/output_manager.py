"""Output generation for TaxonAlign.

This module turns crosscheck outcomes into flat report rows, writes them with
polars alongside a JSON summary, and formats alignments for the console.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import polars as pl

from taxonalign.crosscheck import CrosscheckAnalysis, CrosscheckOutcome
from taxonalign.types.data_classes import AlignmentResult

logger = logging.getLogger(__name__)

OUTPUT_BASENAME = "crosscheck"
SUMMARY_FILENAME = "crosscheck_summary.json"

OUTPUT_SCHEMA = {
    "source_id": pl.Utf8,
    "query_name": pl.Utf8,
    "query_authority": pl.Utf8,
    "found": pl.Boolean,
    "method": pl.Utf8,
    "candidate_count": pl.Int64,
    "reference_id": pl.Utf8,
    "reference_name": pl.Utf8,
    "reference_authority": pl.Utf8,
    "reference_status": pl.Utf8,
    "reference_rank": pl.Utf8,
    "accepted_id": pl.Utf8,
    "accepted_name": pl.Utf8,
    "authority_equivalent": pl.Boolean,
    "authority_soft_match": pl.Boolean,
    "rank_mismatches": pl.Utf8,
    "findings": pl.Utf8,
    "detail": pl.Utf8,
}


def outcome_to_row(outcome: CrosscheckOutcome) -> Dict[str, Any]:
    """Map a crosscheck outcome to a flat output row.

    Args:
        outcome: The outcome to map

    Returns:
        Dictionary with one value per OUTPUT_SCHEMA column
    """
    primary = outcome.match.primary
    accepted = outcome.match.accepted
    return {
        "source_id": outcome.query.source_id,
        "query_name": outcome.query.display_name,
        "query_authority": outcome.query.authority,
        "found": outcome.found,
        "method": outcome.match.method_label,
        "candidate_count": len(outcome.match.candidates),
        "reference_id": primary.id if primary else None,
        "reference_name": primary.scientific_name if primary else None,
        "reference_authority": primary.authorship if primary else None,
        "reference_status": primary.status if primary else None,
        "reference_rank": primary.rank if primary else None,
        "accepted_id": accepted.id if accepted else None,
        "accepted_name": accepted.scientific_name if accepted else None,
        "authority_equivalent": outcome.authority_equivalent,
        "authority_soft_match": outcome.authority_soft_match,
        "rank_mismatches": ",".join(row.rank for row in outcome.rank_mismatches),
        "findings": ",".join(kind.value for kind in outcome.kinds),
        "detail": outcome.detail,
    }


def write_crosscheck_output(
    outcomes: Iterable[CrosscheckOutcome],
    analysis: CrosscheckAnalysis,
    output_dir: Union[str, Path],
    output_format: str = "csv",
) -> List[str]:
    """Write crosscheck rows and the run summary.

    Args:
        outcomes: Outcomes to write, one row each
        analysis: Analysis whose summary is written as JSON
        output_dir: Directory to save output files (created if missing)
        output_format: "csv" or "parquet"

    Returns:
        List of written file paths

    Raises:
        ValueError: If ``output_format`` is not supported
    """
    if output_format not in ("csv", "parquet"):
        raise ValueError(f"Unsupported output format: {output_format}")

    output_dir_path = Path(output_dir)
    output_dir_path.mkdir(parents=True, exist_ok=True)

    rows = [outcome_to_row(outcome) for outcome in outcomes]
    output_df = pl.DataFrame(rows, schema=OUTPUT_SCHEMA)

    output_file_path = output_dir_path / f"{OUTPUT_BASENAME}.{output_format}"
    if output_format == "parquet":
        output_df.write_parquet(output_file_path)
    else:
        output_df.write_csv(output_file_path)
    logger.info(f"Wrote {len(rows):,} crosscheck rows to {output_file_path}")

    summary_path = output_dir_path / SUMMARY_FILENAME
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(analysis.summary(), f, indent=2)
    logger.info(f"Wrote crosscheck summary to {summary_path}")

    return [str(output_file_path), str(summary_path)]


def format_alignment(result: AlignmentResult, missing: str = "-") -> str:
    """Format an alignment as a plain-text table, flagging inconsistent ranks with '*'."""
    headers = ["rank"] + list(result.source_labels)
    body: List[List[str]] = []
    for row in result:
        cells = [row.rank] + [row.values.get(label, missing) for label in result.source_labels]
        if not row.is_consistent:
            cells[0] = f"{row.rank} *"
        body.append(cells)

    widths = [len(h) for h in headers]
    for cells in body:
        widths = [max(w, len(c)) for w, c in zip(widths, cells)]

    def render(cells: List[str]) -> str:
        return "  ".join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()

    lines = [render(headers), render(["-" * w for w in widths])]
    lines.extend(render(cells) for cells in body)
    return "\n".join(lines)

