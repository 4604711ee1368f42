"""Command-line interface for TaxonAlign.

This module provides the command-line interface for TaxonAlign.
It includes the argument parser and command dispatching logic.
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from taxonalign import __version__
from taxonalign.cancellation import CancellationToken
from taxonalign.config import config
from taxonalign.crosscheck import run_crosscheck
from taxonalign.exceptions import OperationCancelledError
from taxonalign.input_parser import iter_query_taxa, read_query_frame
from taxonalign.ladder import align_ladders, ladder_from_lineage, ladder_from_query, ladder_from_record
from taxonalign.logging_config import setup_logging
from taxonalign.output_manager import format_alignment, write_crosscheck_output
from taxonalign.resolution import MatchResolver
from taxonalign.store import TaxonStore, open_taxon_source
from taxonalign.types.data_classes import QueryTaxon

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

# -----------------------------------------------------------------------------
# Parser Setup
# -----------------------------------------------------------------------------
def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with the 'crosscheck' and 'align' commands."""
    parser = argparse.ArgumentParser(
        description="TaxonAlign: Match taxa between reference taxonomies and align their rank hierarchies.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Global options
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=config.log_level,
        help="Set logging level"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Optional file to write logs to (in addition to console output)"
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version number and exit"
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- 'crosscheck' command ---
    parser_crosscheck = subparsers.add_parser(
        "crosscheck", help="Crosscheck every taxon of a query file against a reference taxonomy"
    )
    parser_crosscheck.add_argument(
        "-q", "--query",
        type=str,
        required=True,
        help="Path to the query CSV, TSV or Parquet file (e.g. an IUCN taxonomy export)"
    )
    parser_crosscheck.add_argument(
        "-r", "--reference",
        type=str,
        required=True,
        help="Reference SQLite file, SQLAlchemy URL, or CSV/TSV/Parquet export"
    )
    parser_crosscheck.add_argument(
        "-t", "--table",
        type=str,
        default=config.reference_table,
        help="Reference table name when the reference is a database"
    )
    parser_crosscheck.add_argument(
        "-o", "--output-dir",
        type=str,
        default=config.output_dir,
        help="Directory to save the crosscheck report and summary"
    )
    parser_crosscheck.add_argument(
        "--output-format",
        choices=["csv", "parquet"],
        default=config.output_format,
        help="Output file format"
    )
    parser_crosscheck.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Maximum number of query rows to inspect (0 = all)"
    )
    parser_crosscheck.add_argument(
        "--max-samples",
        type=int,
        default=config.max_samples,
        help="Maximum number of examples kept per finding category"
    )
    parser_crosscheck.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar"
    )

    # --- 'align' command ---
    parser_align = subparsers.add_parser(
        "align", help="Resolve one name and print the aligned rank ladders"
    )
    parser_align.add_argument(
        "name",
        nargs="?",
        help="Scientific name to resolve"
    )
    parser_align.add_argument(
        "-r", "--reference",
        type=str,
        required=True,
        help="Reference SQLite file, SQLAlchemy URL, or CSV/TSV/Parquet export"
    )
    parser_align.add_argument(
        "-t", "--table",
        type=str,
        default=config.reference_table,
        help="Reference table name when the reference is a database"
    )
    name_group = parser_align.add_argument_group("Name Components")
    name_group.add_argument("--genus", help="Genus, used when the name is not found")
    name_group.add_argument("--species", help="Specific epithet")
    name_group.add_argument("--infra", help="Infraspecific epithet")
    name_group.add_argument("--infra-type", help="Infraspecific rank, e.g. subspecies or variety")
    name_group.add_argument("--authority", help="Authority to compare against the match")

    return parser

# -----------------------------------------------------------------------------
# Dispatch Functions
# -----------------------------------------------------------------------------
def open_store(reference: str) -> TaxonStore:
    """Open a reference location as a TaxonStore using the configured table and label."""
    source = open_taxon_source(reference, config.reference_table)
    return TaxonStore(source, label=config.reference_label)


def run_crosscheck_command(args: argparse.Namespace) -> int:
    """Run the crosscheck workflow."""
    if args.max_samples <= 0:
        logging.error("--max-samples must be greater than zero")
        return EXIT_ERROR

    config.ensure_directories()
    start_time = time.time()
    token = CancellationToken()

    try:
        logging.info(f"Starting crosscheck of {args.query} against {args.reference}")
        store = open_store(args.reference)
        frame = read_query_frame(args.query)

        outcomes, analysis = run_crosscheck(
            iter_query_taxa(frame),
            store,
            limit=args.limit,
            max_samples=config.max_samples,
            query_label=config.query_label,
            reference_label=config.reference_label,
            lineage_label=config.lineage_label,
            cancel_token=token,
            show_progress=config.show_progress,
            total=frame.height,
        )

        print(analysis.generate_report())

        written = write_crosscheck_output(outcomes, analysis, config.output_dir, config.output_format)
        for file_path in written:
            logging.info(f"  {file_path}")
        elapsed_time = time.time() - start_time
        logging.info(f"Crosscheck completed in {elapsed_time:.2f} seconds")
        return EXIT_OK

    except (KeyboardInterrupt, OperationCancelledError):
        token.cancel()
        logging.warning("Crosscheck cancelled")
        return EXIT_CANCELLED
    except Exception as e:
        logging.error(f"Crosscheck failed: {e}", exc_info=True)
        return EXIT_ERROR


def run_align_command(args: argparse.Namespace) -> int:
    """Resolve one name and print the alignment of its ladders."""
    query = QueryTaxon(
        scientific_name=args.name,
        genus=args.genus,
        species=args.species,
        infra_epithet=args.infra,
        infra_type=args.infra_type,
        authority=args.authority,
    )
    if not query.has_name and not query.has_components:
        logging.error("Provide a name or --genus and --species")
        return EXIT_ERROR

    try:
        store = open_store(args.reference)
        match = MatchResolver(store).resolve(query)
        if not match.found:
            print(f"No match for '{query.display_name}' in {config.reference_label}")
            return EXIT_OK

        primary = match.primary
        print(f"Match: {primary.scientific_name} {primary.authorship or ''}".rstrip())
        print(f"  ID: {primary.id}  status: {primary.status or '?'}  rank: {primary.rank or '?'}")
        print(f"  Method: {match.method_label}  candidates: {len(match.candidates)}")
        if match.accepted is not None and match.accepted.id != primary.id:
            print(f"  Accepted: {match.accepted.scientific_name} (ID: {match.accepted.id})")

        classified = match.accepted or primary
        chain = store.get_parent_chain(classified)
        alignment = align_ladders([
            ladder_from_query(query, config.query_label),
            ladder_from_record(classified, config.reference_label),
            ladder_from_lineage(chain, config.lineage_label),
        ])
        print()
        print(format_alignment(alignment))
        return EXIT_OK

    except KeyboardInterrupt:
        return EXIT_CANCELLED
    except Exception as e:
        logging.error(f"Alignment failed: {e}", exc_info=True)
        return EXIT_ERROR

# -----------------------------------------------------------------------------
# Main Entry Point
# -----------------------------------------------------------------------------
def main(args: Optional[List[str]] = None) -> int:
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.show_config:
        print(config.get_config_summary())
        return EXIT_OK

    if parsed_args.command is None:
        parser.print_help()
        return EXIT_ERROR

    config.update_from_args(vars(parsed_args))
    setup_logging(parsed_args.log_level, parsed_args.log_file)

    if parsed_args.command == "crosscheck":
        return run_crosscheck_command(parsed_args)
    elif parsed_args.command == "align":
        return run_align_command(parsed_args)
    else:
        parser.error("Unknown command")
        return EXIT_ERROR

if __name__ == "__main__":
    sys.exit(main())
