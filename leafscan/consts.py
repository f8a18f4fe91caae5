# https://www.sqlite.org/fileformat.html#the_database_header
DB_FILE_HEADER_SIZE = 100
MAGIC = b"SQLite"
PAGE_SIZE_OFFSET = 16
RESERVED_SPACE_OFFSET = 20
PAGE_COUNT_OFFSET = 28

MIN_PAGE_SIZE = 512
MAX_PAGE_SIZE = 32768

# https://www.sqlite.org/fileformat.html#b_tree_pages
LEAF_PAGE_HEADER_SIZE = 8
CELL_COUNT_OFFSET = 3
CELL_POINTER_SIZE = 2

# A table leaf cell keeps at most U - 35 payload bytes on the page, the rest spills
# into overflow pages
MAX_LOCAL_PAYLOAD_MARGIN = 35

MAX_VARINT_SIZE = 9
LAST_SEVEN_BITS_MASK = 0b_0111_1111
CONTINUATION_BIT = 0b_1000_0000

# Page 1 holds the schema table and page 2 the pointer map in the layouts we read
DEFAULT_START_PAGE = 2

# the columns of the table we read by default, and the role each one plays
DEFAULT_COLUMNS = (
    "origin_url",
    "action_url",
    "username_element",
    "username_value",
    "password_element",
    "password_value",
)
DEFAULT_COLUMN_ROLES = {
    "origin_url": "url",
    "username_value": "username",
    "password_value": "secret",
}
DEFAULT_FIELD_ROLES = tuple(DEFAULT_COLUMN_ROLES.get(column) for column in DEFAULT_COLUMNS)

