"""
Command Line Interface

Entry point for running an extraction from the command line.

Usage:
    python -m gmaps_leads "Paris, France" "bakery"
    python -m gmaps_leads "Austin, TX" "plumbers" --limit 60 --min-rating 4
    python -m gmaps_leads "Berlin" "cafes" --start-server --no-csv -o cafes.json
"""

import argparse
import asyncio
import logging
import sys

from .config import BATCH_SIZE
from .config_manager import ExtractorConfig
from .exceptions import GMapsLeadsError
from .export import default_output_name, filter_records, write_csv, write_json
from .extractor import LeadsExtractor
from .models import ExtractionQuery


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Google Maps Leads Extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m gmaps_leads "Paris, France" "bakery"
  python -m gmaps_leads "Austin, TX" "plumbers" --limit 60 --min-rating 4
  python -m gmaps_leads "Berlin" "cafes" --start-server --no-csv -o cafes.json
        """
    )

    # Required arguments
    parser.add_argument(
        "location",
        help="Location to search (e.g., 'Paris, France', 'Austin, TX')"
    )
    parser.add_argument(
        "niche",
        help="Business niche to search (e.g., 'bakery', 'plumbers')"
    )

    # Optional arguments
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=30,
        help="Maximum number of leads to extract (default: 30)"
    )
    parser.add_argument(
        "-o", "--output",
        help="Output JSON file path (default: no JSON output)"
    )
    parser.add_argument(
        "--csv",
        help="Output CSV file path (default: output/{niche}_in_{location}.csv)"
    )
    parser.add_argument(
        "--no-csv",
        action="store_true",
        help="Disable CSV output"
    )
    parser.add_argument(
        "--min-rating",
        type=float,
        default=0,
        help="Only export leads with at least this rating (default: 0)"
    )
    parser.add_argument(
        "--min-reviews",
        type=int,
        default=0,
        help="Only export leads with at least this many reviews (default: 0)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=BATCH_SIZE,
        help=f"Leads requested per batch (default: {BATCH_SIZE})"
    )
    parser.add_argument(
        "--api-url",
        help="API server URL (default: GMAPS_LEADS_API_URL or http://localhost:8000)"
    )
    parser.add_argument(
        "--start-server",
        action="store_true",
        help="Start the API server in the background if it is not running"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show info logging"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress output"
    )
    return parser


async def run_search(args: argparse.Namespace) -> int:
    verbose = not args.quiet
    query = ExtractionQuery(args.location, args.niche, args.limit)
    config = ExtractorConfig(api_url=args.api_url, batch_size=args.batch_size)

    def on_progress(progress):
        if verbose:
            print(f"  [{progress.percentage:3d}%] {progress.message}")

    async with LeadsExtractor(config, auto_start_server=args.start_server) as extractor:
        health = await extractor.health()
        if health.get("status") != "ok":
            print(f"\nError: {health.get('message')}", file=sys.stderr)
            return 1

        if verbose:
            print("=" * 70)
            print(f"EXTRACTING: up to {query.limit} '{query.niche}' in {query.location}")
            print("=" * 70)

        leads = await extractor.search_businesses(query, on_progress)

    filtered = filter_records(leads, args.min_rating, args.min_reviews)
    if verbose and len(filtered) != len(leads):
        print(f"\n  Filtered out {len(leads) - len(filtered)} leads below rating/review thresholds")

    if not args.no_csv:
        csv_path = args.csv or default_output_name(query.location, query.niche, "csv")
        write_csv(filtered, csv_path)
        if verbose:
            print(f"  CSV output: {csv_path}")

    if args.output:
        write_json(filtered, args.output, metadata={
            'location': query.location,
            'niche': query.niche,
            'limit': query.limit,
            'total_found': len(leads),
        })
        if verbose:
            print(f"  JSON output: {args.output}")

    if verbose:
        print(f"\nDone! Collected {len(filtered)} leads.")
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(run_search(args))
    except (GMapsLeadsError, ValueError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
