"""Wall-clock access for services.

Library hours are expressed in local wall-clock time, so every "now" in the
ledgers is a naive local datetime taken from here.
"""

from datetime import datetime


def now() -> datetime:
    return datetime.now()
