import argparse
import logging
import sys
import threading

from gpx_trainer import __version_date__, get_git_hash
from gpx_trainer.config import DEFAULTS, bike_params_from_config, get_setting, load_config
from gpx_trainer.formatters import format_distance, format_duration, format_gradient
from gpx_trainer.models import Mode
from gpx_trainer.parser import parse_gpx
from gpx_trainer.session import RideSession, RideStatus
from gpx_trainer.simulation import Engine
from gpx_trainer.store import DEFAULT_DATA_DIR, RideStore, StoreError
from gpx_trainer.trainer import MockTrainer, TrainerError

logger = logging.getLogger(__name__)


def build_parser(config: dict | None = None) -> argparse.ArgumentParser:
    """Build argument parser with defaults from config file."""
    if config is None:
        config = {}

    def get_default(key: str):
        return get_setting(config, key)

    parser = argparse.ArgumentParser(
        prog="gpx-trainer",
        description="Ride a smart trainer through a virtual drivetrain, optionally along a GPX route.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--version",
        action="version",
        version=f"gpx-trainer {__version_date__} ({get_git_hash()})",
    )
    parser.add_argument(
        "--data-dir",
        default=get_default("data_dir") or str(DEFAULT_DATA_DIR),
        help=f"Directory for ride history (default: {DEFAULT_DATA_DIR})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ride = sub.add_parser("ride", help="Start a ride session")
    ride.add_argument("--gpx", default=None, help="GPX route to ride (SIM mode unless --erg is given)")
    ride.add_argument(
        "--erg",
        type=float,
        nargs="?",
        const=get_default("erg_target_power"),
        default=None,
        metavar="WATTS",
        help=f"Ride in ERG mode at a fixed target power (default: {DEFAULTS['erg_target_power']:.0f})",
    )
    ride.add_argument("--mock", action="store_true", help="Use the simulated trainer")
    ride.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: ride until Ctrl-C)",
    )
    ride.add_argument(
        "--weight",
        type=float,
        default=get_default("rider_weight"),
        help=f"Rider weight in kg (default: {DEFAULTS['rider_weight']})",
    )
    ride.add_argument(
        "--scaling",
        type=float,
        default=get_default("resistance_scaling"),
        help=f"Resistance scaling factor, 0.1-0.5 (default: {DEFAULTS['resistance_scaling']})",
    )
    ride.add_argument(
        "--smoothing",
        type=float,
        default=get_default("gradient_smoothing"),
        help=f"Gradient smoothing factor, 0-0.95 (default: {DEFAULTS['gradient_smoothing']})",
    )
    ride.add_argument(
        "--status-interval",
        type=float,
        default=1.0,
        help="Seconds between status lines (default: 1.0)",
    )

    route = sub.add_parser("route", help="Show a GPX route summary and its climbs")
    route.add_argument("gpx_file", help="Path to GPX file")
    route.add_argument(
        "--climb-gradient",
        type=float,
        default=get_default("climb_gradient_threshold"),
        help=f"Minimum climb gradient in percent (default: {DEFAULTS['climb_gradient_threshold']})",
    )
    route.add_argument(
        "--climb-elevation",
        type=float,
        default=get_default("climb_elevation_threshold"),
        help=f"Minimum climb elevation gain in meters (default: {DEFAULTS['climb_elevation_threshold']})",
    )

    sub.add_parser("history", help="List saved rides")
    return parser


def format_status(status: RideStatus) -> str:
    line = (
        f"{format_duration(status.elapsed)}  {status.power:4.0f} W  {status.cadence:3.0f} rpm  "
        f"{status.speed:5.1f} km/h  {format_distance(status.distance)}  "
        f"{status.gear:>5}  {format_gradient(status.gradient):>6}  {status.mode}"
    )
    if status.climb_ahead is not None:
        climb = status.climb_ahead
        line += (
            f"  climb in {climb.start_distance - status.distance:.0f} m "
            f"(+{climb.elevation_gain:.0f} m, {climb.avg_gradient:.1f}%)"
        )
    if status.paused:
        line += "  [PAUSED]"
    return line


def _load_route(path: str):
    try:
        return parse_gpx(path)
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error parsing GPX file: {e}", file=sys.stderr)
        sys.exit(1)


def run_ride(args: argparse.Namespace, config: dict) -> None:
    config = {
        **config,
        "rider_weight": args.weight,
        "resistance_scaling": args.scaling,
        "gradient_smoothing": args.smoothing,
    }
    try:
        params = bike_params_from_config(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.mock:
        print("Error: no Bluetooth trainer link in this build, use --mock", file=sys.stderr)
        sys.exit(1)

    engine = Engine(params)
    route = None
    if args.gpx:
        route = _load_route(args.gpx)
        print(f"Loaded route: {route.name} ({format_distance(route.total_distance)})")
    if args.erg is not None:
        engine.set_mode(Mode.ERG)
        engine.set_target_power(args.erg)
    elif route is not None:
        engine.set_mode(Mode.SIM)
    else:
        engine.set_mode(Mode.FREE)

    session = RideSession(
        engine,
        MockTrainer(),
        RideStore(args.data_dir),
        route=route,
        status_interval=args.status_interval,
        on_status=lambda status: print(format_status(status)),
        climb_gradient=get_setting(config, "climb_gradient_threshold"),
        climb_elevation=get_setting(config, "climb_elevation_threshold"),
        climb_lookahead=get_setting(config, "climb_lookahead"),
    )

    print("Connecting to trainer...")
    try:
        session.start()
    except TrainerError as e:
        print(f"Error: could not connect to trainer: {e}", file=sys.stderr)
        sys.exit(1)
    print("Connected! Press Ctrl-C to finish the ride.")

    finished = threading.Event()
    try:
        finished.wait(args.duration)
    except KeyboardInterrupt:
        print("")

    try:
        ride = session.stop()
    except StoreError as e:
        print(f"Error saving ride: {e}", file=sys.stderr)
        sys.exit(1)

    if ride is None:
        print("No data recorded, ride not saved.")
        return
    stats = ride.stats()
    print("=== Ride Summary ===")
    print(f"Duration:    {format_duration(stats.duration)}")
    print(f"Distance:    {format_distance(stats.distance)}")
    print(f"Avg Power:   {stats.avg_power:.0f} W (max {stats.max_power:.0f} W)")
    print(f"Avg Cadence: {stats.avg_cadence:.0f} rpm")
    print(f"Avg Speed:   {stats.avg_speed:.1f} km/h (max {stats.max_speed:.1f} km/h)")
    print(f"Ride saved:  {session.store.ride_path(ride.id)}")


def run_route(args: argparse.Namespace) -> None:
    route = _load_route(args.gpx_file)
    if len(route.points) < 2:
        print("Error: GPX file contains fewer than 2 track points.", file=sys.stderr)
        sys.exit(1)

    print("=== GPX Route ===")
    print(f"Name:           {route.name}")
    print(f"Distance:       {format_distance(route.total_distance)}")
    print(f"Elevation Gain: {route.total_ascent:.0f} m")
    print(f"Elevation Loss: {route.total_descent:.0f} m")

    climbs = route.detect_climbs(args.climb_gradient, args.climb_elevation)
    print(f"Climbs:         {len(climbs)}")
    for i, climb in enumerate(climbs, start=1):
        print(
            f"  Climb {i}: km {climb.start_distance / 1000:.2f}-{climb.end_distance / 1000:.2f}  "
            f"+{climb.elevation_gain:.0f} m  avg {climb.avg_gradient:.1f}%  max {climb.max_gradient:.1f}%"
        )


def run_history(args: argparse.Namespace) -> None:
    rides = RideStore(args.data_dir).list_rides()
    if not rides:
        print("No rides yet.")
        return
    for r in rides:
        route = f"  {r.route_name}" if r.route_name else ""
        print(
            f"{r.id}  {format_duration(r.duration)}  {format_distance(r.distance)}  "
            f"{r.avg_power:.0f} W{route}"
        )


def main(argv: list[str] | None = None) -> None:
    config = load_config()
    parser = build_parser(config)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "ride":
        run_ride(args, config)
    elif args.command == "route":
        run_route(args)
    elif args.command == "history":
        run_history(args)
