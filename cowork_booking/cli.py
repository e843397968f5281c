import argparse
import logging
import sys

from cowork_booking import run

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configures logging to stderr with local time."""
    import time

    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_arguments():
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Book a coworking space at the café.")
    parser.add_argument("--list-spaces", action="store_true", help="List bookable spaces and exit.")
    parser.add_argument("--space", type=str, help="Id of the space to book.")
    parser.add_argument("--date", type=str, help="Date in YYYY-MM-DD format. Defaults to today.")
    parser.add_argument("--start", type=str, help="Start time in HH:MM format. Defaults to the first free slot.")
    parser.add_argument("--end", type=str, help="End time in HH:MM format. Defaults to two hours after the start.")
    parser.add_argument("--duration", type=int, default=1, help="Number of days, weeks or months. Defaults to 1.")
    parser.add_argument(
        "--duration-type",
        choices=["hour", "day", "week", "month"],
        default="hour",
        help="Billing granularity. Defaults to hour.",
    )
    parser.add_argument("--guests", type=int, default=1, help="Number of people. Defaults to 1.")
    parser.add_argument("--payment", type=str, default="onsite", help="Payment method id. Defaults to onsite.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args()


def main():
    args = parse_arguments()
    setup_logging(args.verbose)
    run.run(
        space_id=args.space,
        date_str=args.date,
        start_time=args.start,
        end_time=args.end,
        duration=args.duration,
        duration_type=args.duration_type,
        guests=args.guests,
        payment_method=args.payment,
        list_spaces=args.list_spaces,
    )


if __name__ == "__main__":
    main()
