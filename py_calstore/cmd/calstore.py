"""Calendar store command-line tool."""

import argparse
import sys
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SQL-backed CalDAV calendar store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the tables
  py-calstore --database sqlite:///calendars.db init

  # Create a calendar for alice and share it with bob
  py-calstore create-calendar alice work --name "Work" --color "#FF0000"
  py-calstore share 1 bob

  # Store an event and read it back as bob
  py-calstore put alice 1 meeting.ics ./meeting.ics
  py-calstore get bob 1 meeting.ics

The database URL defaults to $CALSTORE_DATABASE_URL or sqlite:///calstore.db.
        """,
    )
    parser.add_argument(
        "--database",
        default=None,
        help="SQLAlchemy database URL (default: $CALSTORE_DATABASE_URL or sqlite:///calstore.db)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging (including SQL statements)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="create the database tables")

    p = sub.add_parser("calendars", help="list calendars visible to a principal")
    p.add_argument("principal")

    p = sub.add_parser("create-calendar", help="create a calendar")
    p.add_argument("principal")
    p.add_argument("uri")
    p.add_argument("--name", help="display name")
    p.add_argument("--description", help="calendar description")
    p.add_argument("--color", help="calendar color (#RRGGBB or #RRGGBBAA)")
    p.add_argument("--components", help="comma-separated component types (default: VEVENT,VTODO)")

    p = sub.add_parser("delete-calendar", help="delete a calendar and its objects")
    p.add_argument("calendar_id", type=int)

    p = sub.add_parser("share", help="share a calendar with a principal")
    p.add_argument("calendar_id", type=int)
    p.add_argument("principal")

    p = sub.add_parser("objects", help="list calendar objects visible to a principal")
    p.add_argument("principal")
    p.add_argument("calendar_id", type=int)

    p = sub.add_parser("put", help="create or replace an object in a calendar the principal owns")
    p.add_argument("principal")
    p.add_argument("calendar_id", type=int)
    p.add_argument("uri")
    p.add_argument("file", type=Path)

    p = sub.add_parser("get", help="print a calendar object as a principal sees it")
    p.add_argument("principal")
    p.add_argument("calendar_id", type=int)
    p.add_argument("uri")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the calendar store tool."""
    args = _build_parser().parse_args(argv)

    if args.debug:
        from py_calstore.debug import setup_debug_logging, setup_sql_debug_logging

        setup_debug_logging()
        setup_sql_debug_logging()

    from py_calstore import Backend, CalStoreError, StoreConfig
    from py_calstore.caldav import (
        CALENDAR_COLOR,
        CALENDAR_DESCRIPTION,
        DISPLAYNAME,
        SUPPORTED_CALENDAR_COMPONENT_SET,
        SupportedComponentSet,
        validate_calendar_object,
    )

    config = StoreConfig(echo_sql=args.debug)
    if args.database:
        config.database_url = args.database

    backend = Backend.from_config(config)

    try:
        if args.command == "init":
            print(f"Database ready: {config.database_url}")

        elif args.command == "calendars":
            for calendar in backend.get_calendars_for_user(args.principal):
                name = calendar.properties.get(DISPLAYNAME, "")
                print(f"{calendar.id}\t{calendar.uri}\t{name}\tctag={calendar.ctag}")

        elif args.command == "create-calendar":
            properties: dict[str, object] = {}
            if args.name:
                properties[DISPLAYNAME] = args.name
            if args.description:
                properties[CALENDAR_DESCRIPTION] = args.description
            if args.color:
                properties[CALENDAR_COLOR] = args.color
            if args.components:
                properties[SUPPORTED_CALENDAR_COMPONENT_SET] = SupportedComponentSet.from_string(args.components)
            calendar_id = backend.create_calendar(args.principal, args.uri, properties)
            print(calendar_id)

        elif args.command == "delete-calendar":
            backend.delete_calendar(args.calendar_id)

        elif args.command == "share":
            backend.share_calendar(args.calendar_id, args.principal)

        elif args.command == "objects":
            for obj in backend.get_calendar_objects(args.principal, args.calendar_id):
                print(f"{obj.uri}\t{obj.component_type}\t{obj.mod_time.isoformat()}\t\"{obj.etag}\"")

        elif args.command == "put":
            calendar = backend.get_calendar(args.principal, args.calendar_id)
            if calendar.shared:
                print(f"Error: {args.principal} does not own calendar {args.calendar_id}", file=sys.stderr)
                return 1
            data = args.file.read_text()
            try:
                validate_calendar_object(data)
            except ValueError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            if backend.objects.get_object(args.calendar_id, args.uri) is None:
                obj = backend.create_calendar_object(args.calendar_id, args.uri, data)
            else:
                obj = backend.update_calendar_object(args.calendar_id, args.uri, data)
            print(f"\"{obj.etag}\"")

        elif args.command == "get":
            obj = backend.get_calendar_object(args.principal, args.calendar_id, args.uri)
            if obj is None:
                print(f"Error: calendar object not found: {args.uri}", file=sys.stderr)
                return 1
            sys.stdout.write(obj.data)

    except CalStoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        backend.database.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
