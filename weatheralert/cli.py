"""CLI entry point for the weather alert service."""

import argparse
import logging

from weatheralert.config.loader import load_config
from weatheralert.config.schema import AppConfig
from weatheralert.daemon import AlertDaemon, daemon_status, stop_daemon
from weatheralert.errors import CityNotFound, InvalidThreshold, PersistenceError, ProviderError
from weatheralert.models.alert import AlertCondition, NumericThreshold
from weatheralert.models.common import normalize_city, parse_date_bound
from weatheralert.pipeline.alert_runner import build_lookup, build_runner
from weatheralert.reporting.formatters import format_summary_text
from weatheralert.storage import alert_repo, location_repo, user_repo
from weatheralert.storage.database import init_db
from weatheralert.storage.history_repo import HistoryStore

DEFAULT_CONFIG = "configs/default.yaml"
DEFAULT_DB = "data/weatheralert.db"

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weatheralert",
        description="Weather lookups and threshold alerts for saved locations",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config YAML path")
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite DB path")

    sub = parser.add_subparsers(dest="command")

    # run / daemon
    sub.add_parser("run", help="Run one alert check now")
    daemon_p = sub.add_parser("daemon", help="Run alert checks on a schedule")
    daemon_p.add_argument("--interval", type=int, help="Minutes between runs")
    daemon_p.add_argument("--now", action="store_true", help="Also run immediately")
    daemon_p.add_argument("--stop", action="store_true", help="Stop the running daemon")
    daemon_p.add_argument("--status", action="store_true", help="Show daemon status")

    # weather / history
    weather_p = sub.add_parser("weather", help="Current weather for a city")
    weather_p.add_argument("city")
    weather_p.add_argument("--location", type=int, help="Saved location id to log history for")
    history_p = sub.add_parser("history", help="Logged weather for a saved location")
    history_p.add_argument("location_id", type=int)
    history_p.add_argument("--start", required=True, help="YYYY-MM-DD or ISO timestamp")
    history_p.add_argument("--end", required=True, help="YYYY-MM-DD or ISO timestamp")

    # user
    user_p = sub.add_parser("user", help="User operations")
    user_sub = user_p.add_subparsers(dest="user_command")
    user_add = user_sub.add_parser("add", help="Register a notification target")
    user_add.add_argument("email")
    user_add.add_argument("--name", default="")

    # location
    loc_p = sub.add_parser("location", help="Saved location operations")
    loc_sub = loc_p.add_subparsers(dest="location_command")
    loc_add = loc_sub.add_parser("add", help="Save a location")
    loc_add.add_argument("user_id", type=int)
    loc_add.add_argument("label")
    loc_add.add_argument("city")
    loc_add.add_argument("--lat", type=float)
    loc_add.add_argument("--lon", type=float)
    loc_list = loc_sub.add_parser("list", help="List a user's locations")
    loc_list.add_argument("user_id", type=int)
    loc_rm = loc_sub.add_parser("remove", help="Delete a location and its alerts")
    loc_rm.add_argument("location_id", type=int)

    # alert
    alert_p = sub.add_parser("alert", help="Alert operations")
    alert_sub = alert_p.add_subparsers(dest="alert_command")
    alert_add = alert_sub.add_parser("add", help="Create an alert")
    alert_add.add_argument("location_id", type=int)
    alert_add.add_argument("condition", choices=[c.value for c in AlertCondition])
    alert_add.add_argument("threshold", nargs="?")
    alert_list = alert_sub.add_parser("list", help="List alerts")
    alert_list.add_argument("--user", type=int)
    for name in ("enable", "disable", "remove"):
        p = alert_sub.add_parser(name, help=f"{name.capitalize()} an alert")
        p.add_argument("alert_id", type=int)

    # config
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "run":
        return _cmd_run(config, args)
    elif args.command == "daemon":
        return _cmd_daemon(config, args)
    elif args.command == "weather":
        return _cmd_weather(config, args)
    elif args.command == "history":
        return _cmd_history(args)
    elif args.command == "user":
        return _cmd_user(args)
    elif args.command == "location":
        return _cmd_location(config, args)
    elif args.command == "alert":
        return _cmd_alert(args)
    elif args.command == "config":
        return _cmd_config(config, args)
    else:
        parser.print_help()
        return 1


def _cmd_run(config: AppConfig, args) -> int:
    runner = build_runner(config, args.db)
    summary = runner.run()
    print(format_summary_text(summary))
    return 0 if not summary.errors and not summary.skipped else 1


def _cmd_daemon(config: AppConfig, args) -> int:
    if args.stop:
        return stop_daemon()
    if args.status:
        return daemon_status()
    daemon = AlertDaemon(config, args.db, interval_minutes=args.interval)
    daemon.start(run_now=args.now)
    return 0


def _cmd_weather(config: AppConfig, args) -> int:
    conn = init_db(args.db)
    try:
        location = (
            location_repo.get_location(conn, args.location)
            if args.location is not None
            else None
        )
    finally:
        conn.close()
    if args.location is not None:
        if location is None:
            print(f"Error: location {args.location} not found")
            return 1
        if location.city != normalize_city(args.city):
            print(f"Error: location {args.location} is saved for {location.city!r}")
            return 1

    lookup = build_lookup(config, args.db)
    try:
        result = lookup.lookup(args.city, args.location)
    except CityNotFound as e:
        print(f"Error: {e}")
        return 2
    except ProviderError as e:
        print(f"Error: weather provider unavailable: {e}")
        return 1

    s = result.snapshot
    print(f"{s.provider_city_name or s.city} ({result.source.value})")
    print(f"  {s.description}, {s.temperature:g}°C (feels like {s.feels_like:g}°C)")
    print(f"  Min/Max: {s.min_temp:g}/{s.max_temp:g}°C | Humidity: {s.humidity:g}%")
    print(f"  Wind: {s.wind_speed:g} m/s @ {s.wind_deg:g}° | Clouds: {s.cloudiness:g}%")
    print(f"  Rain: {s.rain_volume:g} mm | Pressure: {s.pressure:g} hPa")
    return 0


def _cmd_history(args) -> int:
    try:
        start = parse_date_bound(args.start)
        end = parse_date_bound(args.end, end_of_day=True)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    init_db(args.db).close()
    try:
        records = HistoryStore(args.db).query(args.location_id, start, end)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    print(f"{len(records)} records for location {args.location_id}")
    for r in records:
        print(
            f"  {r.logged_at} {r.snapshot.temperature:g}°C "
            f"{r.snapshot.humidity:g}% {r.snapshot.description} [{r.source.value}]"
        )
    return 0


def _cmd_user(args) -> int:
    if args.user_command != "add":
        print("Use: user add EMAIL [--name NAME]")
        return 1
    conn = init_db(args.db)
    try:
        user = user_repo.create_user(conn, args.email, args.name)
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1
    finally:
        conn.close()
    print(f"User {user.id}: {user.email}")
    return 0


def _cmd_location(config: AppConfig, args) -> int:
    conn = init_db(args.db)
    try:
        if args.location_command == "add":
            if user_repo.get_user(conn, args.user_id) is None:
                print(f"Error: user {args.user_id} not found")
                return 1
            lookup = build_lookup(config, args.db)
            try:
                first = lookup.lookup(args.city)
            except CityNotFound as e:
                print(f"Error: {e}")
                return 2
            except ProviderError as e:
                logger.warning("Could not verify %s, saving anyway: %s", args.city, e)
                first = None

            loc = location_repo.create_location(
                conn, args.user_id, args.label, args.city, args.lat, args.lon
            )
            print(f"Location {loc.id}: {loc.label} ({loc.city})")
            if first is not None:
                try:
                    lookup.history.save(loc.id, loc.city, first.snapshot, first.source)
                except PersistenceError:
                    logger.exception("Failed to record initial weather for %s", loc.city)
            return 0
        elif args.location_command == "list":
            for loc in location_repo.list_locations(conn, args.user_id):
                print(f"  {loc.id}: {loc.label} ({loc.city})")
            return 0
        elif args.location_command == "remove":
            if not location_repo.delete_location(conn, args.location_id):
                print(f"Error: location {args.location_id} not found")
                return 1
            print(f"Location {args.location_id} removed")
            return 0
        print("Use: location add | list | remove")
        return 1
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1
    finally:
        conn.close()


def _cmd_alert(args) -> int:
    conn = init_db(args.db)
    try:
        if args.alert_command == "add":
            alert = alert_repo.create_alert(
                conn, args.location_id, args.condition, args.threshold
            )
            print(f"Alert {alert.id}: {alert.condition} {_show_threshold(alert.threshold)}")
            return 0
        elif args.alert_command == "list":
            for a in alert_repo.list_alerts(conn, args.user):
                state = "on" if a.is_enabled else "off"
                print(
                    f"  {a.id}: location {a.location_id} {a.condition} "
                    f"{_show_threshold(a.threshold)} [{state}] "
                    f"last notified {a.last_notified or 'never'}"
                )
            return 0
        elif args.alert_command in ("enable", "disable"):
            enabled = args.alert_command == "enable"
            if not alert_repo.set_enabled(conn, args.alert_id, enabled):
                print(f"Error: alert {args.alert_id} not found")
                return 1
            print(f"Alert {args.alert_id} {args.alert_command}d")
            return 0
        elif args.alert_command == "remove":
            if not alert_repo.delete_alert(conn, args.alert_id):
                print(f"Error: alert {args.alert_id} not found")
                return 1
            print(f"Alert {args.alert_id} removed")
            return 0
        print("Use: alert add | list | enable | disable | remove")
        return 1
    except (InvalidThreshold, PersistenceError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        conn.close()


def _cmd_config(config: AppConfig, args) -> int:
    if args.config_command == "show":
        print(
            config.model_dump_json(
                indent=2,
                exclude={"provider": {"api_key"}, "notifier": {"email": {"password"}}},
            )
        )
        return 0
    print("Use: config show")
    return 1


def _show_threshold(threshold) -> str:
    if isinstance(threshold, NumericThreshold):
        return f"{threshold.value:g}"
    return f'"{threshold.text}"'
