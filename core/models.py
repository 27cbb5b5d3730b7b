from typing import Any, NamedTuple, Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Custom URLs and group names must match this to be accepted.
CUSTOM_URL_PATTERN = r"^[\w\-]+$"

MAX_CONTENT_LENGTH = 200_000
MAX_PASSWORD_LENGTH = 256
MAX_CUSTOM_URL_LENGTH = 100

MIN_CONTENT_LENGTH = 1
MIN_PASSWORD_LENGTH = 5
MIN_CUSTOM_URL_LENGTH = 2

# Group names that would shadow a top-level route.
RESERVED_NAMES = ("admin", "api", "group", "new", "")

# The version paste: seeded on first start, never editable or deletable.
VERSION_PASTE_URL = "v"
VERSION_PASTE_GROUP = "server"


class Result(NamedTuple):
    """Outcome of every mutating core operation.

    Serializes to the JSON array ``[success, message, record]``. ``message``
    is user-visible: it is echoed into ``?msg=`` / ``?err=`` redirect params.
    """

    ok: bool
    message: str
    record: Optional[Any] = None
