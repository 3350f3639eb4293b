#!/usr/bin/env python3
"""
Run one visibility analysis from the command line.

Usage:
    python scripts/run_analyze.py --name "Acme Roofing" --area "Newark, NJ"
    python scripts/run_analyze.py --place-id ChIJ... --website acmeroofing.com
    python scripts/run_analyze.py --website acmeroofing.com --site-only

Environment Variables:
    GOOGLE_PLACES_API_KEY: Required for directory lookups.
    OPENAI_API_KEY: Optional. Enables qualitative sub-scores.
"""

import os
import sys
import json
import asyncio
import argparse
import logging

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from visibility.assemble import assemble
from visibility.engine import VisibilityEngine
from visibility.models import ServiceRequest
from visibility.settings import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score a local business's visibility")
    parser.add_argument("--name", help="Business name")
    parser.add_argument("--area", help="Service area, e.g. 'Newark, NJ'")
    parser.add_argument("--website", help="Business website")
    parser.add_argument("--type", dest="business_type", help="Trade / business type, e.g. roofing")
    parser.add_argument("--place-id", help="Pre-resolved directory place id")
    parser.add_argument("--fast", action="store_true", help="Skip homepage parsing and optional enrichment")
    parser.add_argument("--site-only", action="store_true", help="Score the website alone")
    parser.add_argument("--no-cache", action="store_true", help="Bypass cached directory details")
    return parser


async def run(args: argparse.Namespace) -> int:
    request = ServiceRequest(
        business_name=args.name,
        website_url=args.website,
        service_area=args.area,
        business_type=args.business_type,
        fast=args.fast,
        site_only=args.site_only,
        place_id=args.place_id,
        no_cache=args.no_cache,
    )
    engine = VisibilityEngine.from_settings(get_settings())
    try:
        outcome = await engine.analyze(request)
    finally:
        await engine.aclose()

    status_code, body = assemble(outcome, engine.weights)
    print(json.dumps(body, indent=2, ensure_ascii=False))
    logger.info("Status %s (%s), %d directory request(s)", body["status"], status_code,
                engine.places.get_stats()["total_requests"])
    return 0 if status_code == 200 else 1


def main():
    args = build_parser().parse_args()
    if not (args.name or args.place_id or args.website):
        print("Provide --name (with --area), --place-id, or --website", file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
