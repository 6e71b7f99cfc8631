"""Example usage of LineTracker with saved API responses."""

import json
import logging
import sys
from datetime import date
from pathlib import Path as FilePath

# Add src to path so we can import headwaytrack
sys.path.insert(0, str(FilePath(__file__).parent.parent / "src"))

from headwaytrack.line_tracker import LineTracker
from headwaytrack.lines import previous_monday
from headwaytrack.models import Headway, Path

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def load_responses(path_file: str, headways_file: str):
    """
    Load a saved path response and saved headway responses.

    Args:
        path_file: JSON file holding the "success" body of a path endpoint.
        headways_file: JSON file mapping stop id to a list of headway records.

    Returns:
        (Path, fetcher) where the fetcher serves the saved headways.
    """
    with open(path_file, "r") as f:
        path = Path.from_dict(json.load(f))
    with open(headways_file, "r") as f:
        saved = json.load(f)

    def fetch_headways_for(stop_id: str, from_time: int, to_time: int):
        records = saved.get(stop_id, [])
        headways = [Headway.from_dict(r) for r in records]
        return [h for h in headways if from_time <= h.current_departure < to_time]

    return path, fetch_headways_for


def print_line_data(tracker: LineTracker):
    """Print the line-wide overview."""
    overview = tracker.overview()

    print(f"\n{'='*70}")
    print(overview.intro)
    print(f"{'='*70}\n")
    print(f"  {overview.earliest}")
    print(f"  {overview.latest}")
    print(f"  {overview.average}")

    projected = tracker.projected_path()
    print(f"\nProjected {len(projected.shapes)} shapes and {len(projected.stops)} stops "
          f"onto a {tracker.canvas_size:g}px canvas")
    print("\n" + "=" * 70 + "\n")


def print_stop_details(tracker: LineTracker):
    """Print the details table for the focused stop."""
    details = tracker.details()
    if details.stop is not None:
        print(f"\n{details.stop.name} ({details.stop.id})")
    if details.message:
        print(details.message)
        return
    for label, value in tracker.detail_rows():
        print(f"  {label:<18} {value}")


def interactive_mode(tracker: LineTracker):
    """
    Run in interactive mode, allowing user to select stops by name or id.
    """
    stops = tracker.path.stops if tracker.path else ()
    print("Enter a stop name or stop ID to see its lateness")
    print("(Type 'quit' to exit)\n")

    while True:
        try:
            user_input = input("Enter stop (or 'quit'): ").strip()

            if user_input.lower() in ["quit", "q", "exit"]:
                print("Goodbye!")
                break

            if not user_input:
                continue

            needle = user_input.lower()
            matching = [s for s in stops if s.id == user_input or needle in s.name.lower()]
            if not matching:
                print(f"No stop found matching '{user_input}'")
                continue

            tracker.select(matching[0])
            print_stop_details(tracker)

        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: example.py PATH_JSON HEADWAYS_JSON [LINE] [WEEK_START]")
        sys.exit(1)

    line = sys.argv[3] if len(sys.argv) > 3 else "Red"
    week_start = date.fromisoformat(sys.argv[4]) if len(sys.argv) > 4 else previous_monday(date.today())

    try:
        path, fetcher = load_responses(sys.argv[1], sys.argv[2])
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load saved responses: {e}")
        print(f"Error: {e}")
        sys.exit(1)

    tracker = LineTracker(line, path)
    tracker.load_headways(fetcher, week_start)
    print_line_data(tracker)
    interactive_mode(tracker)
