import argparse
import json
import logging
import sys

from .api.schemas import ComparableSearchRequest
from .config import get_settings, require_configured
from .errors import CmaError
from .providers.fixture import FixtureListingsClient
from .providers.repliers import RepliersClient
from .search import ComparableSearch


def build_parser():
    parser = argparse.ArgumentParser(
        description="Comparable property search for CMA reports",
    )

    parser.add_argument(
        "--search",
        help="Subject address, e.g. '2402 Rockingham Cir, Austin, TX 78704'",
        required=False,
    )
    parser.add_argument(
        "--fixture",
        default=None,
        help="JSON file of raw listings to search offline instead of the API",
    )
    parser.add_argument(
        "--statuses",
        default=None,
        help="Comma-separated listing statuses (default: Active,Closed)",
    )
    parser.add_argument(
        "--sold-days",
        type=int,
        default=None,
        help="Lookback window in days for closed listings",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of comparables to return (1-50)",
    )
    parser.add_argument("--city", default=None, help="Criteria search: city")
    parser.add_argument("--zip", default=None, help="Criteria search: zip code")

    parser.add_argument("--subject-lat", type=float, default=None)
    parser.add_argument("--subject-lon", type=float, default=None)
    parser.add_argument("--subject-beds", type=float, default=None)
    parser.add_argument("--subject-baths", type=float, default=None)
    parser.add_argument("--subject-sqft", type=float, default=None)
    parser.add_argument("--subject-type", default=None)

    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit one JSON log line per tier/status attempt",
    )
    return parser


def _request_from_args(args):
    payload = {
        "search": args.search,
        "limit": args.limit,
        "city": args.city,
        "zip": args.zip,
    }
    if args.statuses:
        payload["statuses"] = args.statuses
    if args.sold_days is not None:
        payload["dateSoldDays"] = args.sold_days
    subject = {
        "lat": args.subject_lat,
        "lon": args.subject_lon,
        "beds": args.subject_beds,
        "baths": args.subject_baths,
        "sqft": args.subject_sqft,
        "propertyType": args.subject_type,
    }
    if any(v is not None for v in subject.values()):
        payload["subjectProperty"] = subject
    return ComparableSearchRequest.model_validate(payload)


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.log_level:
        logging.basicConfig(
            level=getattr(logging, args.log_level.upper(), logging.INFO),
            stream=sys.stderr,
        )

    settings = get_settings()
    request = _request_from_args(args)
    client = None
    try:
        if args.fixture:
            client = FixtureListingsClient(args.fixture)
        else:
            require_configured(settings)
            client = RepliersClient.from_settings(settings)
        engine = ComparableSearch(client, settings=settings)
        response = engine.search(request)
    except CmaError as exc:
        print(json.dumps({"error": str(exc)}))
        return 2
    finally:
        if isinstance(client, RepliersClient):
            client.close()

    if args.log_json:
        for attempt in engine.last_attempts:
            print(json.dumps(attempt.to_dict()))
    print(json.dumps(response.to_payload(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
