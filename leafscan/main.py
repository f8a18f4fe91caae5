import logging
import sys

from leafscan.consts import DEFAULT_COLUMN_ROLES
from leafscan.errors import FatalError
from leafscan.extraction import FieldLayout
from leafscan.header import parse_header
from leafscan.pages import ScanStats, classify_pages, iter_table_records
from leafscan.reading import load_database

logger = logging.getLogger("leafscan")

USAGE = (
    "usage: python -m leafscan.main [-v] <database file> .dbinfo|.pages|.rows\n"
    "       python -m leafscan.main .layout \"CREATE TABLE ...\""
)


def format_value(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def run(args) -> int:
    verbose = "-v" in args
    args = [arg for arg in args if arg != "-v"]
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if len(args) == 2 and args[0] == ".layout":
        try:
            layout = FieldLayout.from_create_table(args[1], DEFAULT_COLUMN_ROLES)
        except ValueError as e:
            logger.error("%s", e)
            return 1
        print(" ".join(role or "-" for role in layout.roles))
        return 0

    if len(args) != 2:
        print(USAGE, file=sys.stderr)
        return 2

    database_file_path, command = args
    try:
        data = load_database(database_file_path)
        header = parse_header(data)
    except FatalError as e:
        logger.error("%s", e)
        return 1

    if command == ".dbinfo":
        print(f"database page size: {header.page_size}")
        print(f"number of pages: {header.page_count}")
        print(f"reserved bytes per page: {header.reserved_space}")
    elif command == ".pages":
        for index, page_type in classify_pages(data, header):
            print(f"{index}|{page_type.name.lower() if page_type else 'unknown'}")
    elif command == ".rows":
        stats = ScanStats()
        for record in iter_table_records(data, header, stats=stats):
            print("|".join([str(record.row_id)] + [format_value(v) for v in record.values()]))
        logger.info(
            "%d records from %d pages, skipped pages %s, skipped cells %s",
            stats.records_decoded,
            stats.pages_scanned,
            dict(stats.skipped_pages),
            dict(stats.skipped_cells),
        )
    else:
        print(USAGE, file=sys.stderr)
        return 2

    return 0


def main():
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
