import datetime
from typing import Iterable, List, Optional

import sqlite_utils
from ulid import ULID

from .migrations import migrate

TEXTS_SQL = """
select id, text, text_length, model_order, source, datetime_utc
from texts
order by texts.rowid desc{limit}
"""

TEXTS_SQL_SEARCH = """
select texts.id, texts.text, texts.text_length, texts.model_order,
    texts.source, texts.datetime_utc
from texts
join texts_fts on texts_fts.rowid = texts.rowid
where texts_fts match :query
order by texts_fts.rank{limit}
"""


def log_texts(
    db: sqlite_utils.Database,
    texts: Iterable[str],
    model_order: int,
    source: Optional[str] = None,
) -> List[str]:
    "Record generated texts, returning their new IDs"
    migrate(db)
    now = str(datetime.datetime.now(datetime.timezone.utc))
    rows = [
        {
            "id": str(ULID()).lower(),
            "text": text,
            "text_length": len(text),
            "model_order": model_order,
            "source": source,
            "datetime_utc": now,
        }
        for text in texts
    ]
    if rows:
        db["texts"].insert_all(rows)
    return [row["id"] for row in rows]


def recent_texts(
    db: sqlite_utils.Database, count: Optional[int] = 10, query: Optional[str] = None
) -> List[dict]:
    """
    Logged texts, most recent first - or best match first when searching
    with ``query``. A count of 0 or None returns everything.
    """
    migrate(db)
    limit = ""
    if count:
        limit = " limit {}".format(int(count))
    sql = TEXTS_SQL_SEARCH if query else TEXTS_SQL
    return list(db.query(sql.format(limit=limit), {"query": query}))
