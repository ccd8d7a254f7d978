import datetime
from typing import Callable, List

MIGRATIONS: List[Callable] = []
migration = MIGRATIONS.append


def migrate(db):
    ensure_migrations_table(db)
    already_applied = {r["name"] for r in db["_markovtext_migrations"].rows}
    for fn in MIGRATIONS:
        name = fn.__name__
        if name not in already_applied:
            fn(db)
            db["_markovtext_migrations"].insert(
                {
                    "name": name,
                    "applied_at": str(
                        datetime.datetime.now(datetime.timezone.utc)
                    ),
                }
            )
            already_applied.add(name)


def ensure_migrations_table(db):
    if not db["_markovtext_migrations"].exists():
        db["_markovtext_migrations"].create(
            {
                "name": str,
                "applied_at": str,
            },
            pk="name",
        )


@migration
def m001_initial(db):
    db["texts"].create(
        {
            "id": str,
            "text": str,
            "text_length": int,
            "model_order": int,
            "source": str,
            "datetime_utc": str,
        },
        pk="id",
    )


@migration
def m002_fts_for_texts(db):
    db["texts"].enable_fts(["text"], create_triggers=True)
