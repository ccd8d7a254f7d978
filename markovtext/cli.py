import asyncio
import click
from click_default_group import DefaultGroup
import httpx
import json
import pathlib
import pydantic
import random
import sqlite_utils
import sys
import textwrap
from typing import List

from markovtext import (
    GenerationOptions,
    GenerationQueue,
    MarkovTextError,
    UnknownSourceError,
    build,
    clear_setting,
    generate_many,
    get_plugins,
    get_settings,
    get_source,
    get_source_loaders,
    resolve_options,
    set_setting,
    user_dir,
)

from .migrations import migrate
from .plugins import pm, load_plugins
from .sources import parse_texts
from .store import log_texts, recent_texts
from .utils import configure_http_logging, corpus_lines, truncate_string

# Stop streaming after this many refills in a row queue nothing new
MAX_EMPTY_BATCHES = 3


def read_inputs(inputs) -> List[str]:
    "Read corpus texts from files, URLs or - for standard input"
    texts = []
    for value in inputs or ["-"]:
        if value.startswith("http://") or value.startswith("https://"):
            try:
                with httpx.Client(follow_redirects=True, max_redirects=3) as client:
                    response = client.get(value)
                    response.raise_for_status()
            except httpx.HTTPError as ex:
                raise click.ClickException("Could not load {}: {}".format(value, ex))
            if "json" in response.headers.get("content-type", ""):
                try:
                    texts.append("\n".join(parse_texts(response.json(), value)))
                except (ValueError, MarkovTextError) as ex:
                    raise click.ClickException(str(ex))
            else:
                texts.append(response.text)
        elif value == "-":
            texts.append(sys.stdin.read())
        else:
            path = pathlib.Path(value)
            if not path.is_file():
                raise click.ClickException("File not found: {}".format(value))
            texts.append(path.read_text("utf-8"))
    return texts


def render_errors(errors):
    output = []
    for error in errors:
        output.append(", ".join(str(loc) for loc in error["loc"]))
        output.append("  " + error["msg"])
    return "\n".join(output)


def options_or_exit(**overrides) -> GenerationOptions:
    try:
        return resolve_options(**overrides)
    except pydantic.ValidationError as ex:
        raise click.ClickException(render_errors(ex.errors()))


def source_or_exit(source):
    try:
        return get_source(source)
    except UnknownSourceError as ex:
        raise click.ClickException(ex.args[0])


def texts_db_path():
    return user_dir() / "texts.db"


def logs_on():
    return not (user_dir() / "texts-off").exists()


@click.group(
    cls=DefaultGroup,
    default="generate",
    default_if_no_args=True,
)
@click.version_option()
def cli():
    """
    Generate text from a corpus using a word-level Markov chain

    Generate three lines from a text file:

    \b
        markovtext generate corpus.txt -n 3

    Stream lines with a typewriter effect from a JSON endpoint that
    returns batches of texts:

    \b
        markovtext stream https://example.com/api/markov-text
    """
    configure_http_logging()


@cli.command(name="generate")
@click.argument("inputs", nargs=-1)
@click.option("-n", "--count", type=int, default=1, help="Number of lines to generate")
@click.option("-o", "--order", type=int, help="Number of words in each n-gram")
@click.option("--max-tokens", type=int, help="Maximum words per line")
@click.option("--max-sentences", type=int, help="Stop each line after this many sentences")
@click.option("--seed", type=int, help="Random seed, for repeatable output")
@click.option("--clean", is_flag=True, help="Strip stage directions and split sentences")
@click.option("json_", "--json", is_flag=True, help="Output as a JSON array")
@click.option("--no-log", is_flag=True, help="Don't log generated lines to the database")
@click.option("--log", is_flag=True, help="Log generated lines even if logging is off")
def generate(
    inputs, count, order, max_tokens, max_sentences, seed, clean, json_, no_log, log
):
    """
    Generate lines from a corpus

    INPUTS can be file paths, URLs or - for standard input, which is also
    used if no inputs are given. Each non-blank line is one corpus line.

    \b
        markovtext generate diary.txt -n 5 --order 3
        cat posts/*.md | markovtext --clean --max-sentences 2
    """
    options = options_or_exit(
        order=order, max_tokens=max_tokens, max_sentences=max_sentences
    )
    lines = corpus_lines(read_inputs(inputs), clean=clean)
    model = build(lines, options.order)
    if model.is_empty:
        raise click.ClickException(
            "No corpus line has more than {} words - try a lower --order".format(
                options.order
            )
        )
    generated = generate_many(
        model,
        count,
        rng=random.Random(seed),
        max_tokens=options.max_tokens,
        max_sentences=options.max_sentences,
    )
    if json_:
        click.echo(json.dumps(generated, indent=2))
    else:
        for line in generated:
            click.echo(line)
    if (logs_on() or log) and not no_log:
        db = sqlite_utils.Database(texts_db_path())
        log_texts(db, generated, options.order, source=", ".join(inputs) or "-")


@cli.command()
@click.argument("inputs", nargs=-1)
@click.option("-o", "--order", type=int, help="Number of words in each n-gram")
@click.option("--clean", is_flag=True, help="Strip stage directions and split sentences")
def stats(inputs, order, clean):
    "Show statistics for the model built from a corpus"
    options = options_or_exit(order=order)
    lines = corpus_lines(read_inputs(inputs), clean=clean)
    model = build(lines, options.order)
    info = {
        "lines": len(lines),
        "characters": sum(len(line) for line in lines),
    }
    info.update(model.stats())
    click.echo(json.dumps(info, indent=2))


@cli.command()
@click.argument("source", envvar="MARKOVTEXT_SOURCE")
@click.option("-o", "--order", type=int, help="Number of words in each n-gram")
@click.option("--cap", "session_cap", type=int, help="Maximum lines to show")
@click.option("--min-length", type=int, help="Skip lines shorter than this")
@click.option("--batch-size", type=int, help="Corpus lines to fetch per batch")
@click.option("--max-sentences", type=int, help="Stop each line after this many sentences")
@click.option("--min-words", type=int, help="Skip lines with fewer words than this")
@click.option(
    "--reject-artifacts/--keep-artifacts",
    default=None,
    help="Skip lines that are only digits or contain _ [ or ]",
)
@click.option("--seed", type=int, help="Random seed, for repeatable output")
@click.option(
    "--delay", type=float, default=0.02, help="Seconds between each typed character"
)
@click.option("--no-log", is_flag=True, help="Don't log generated lines to the database")
def stream(
    source,
    order,
    session_cap,
    min_length,
    batch_size,
    max_sentences,
    min_words,
    reject_artifacts,
    seed,
    delay,
    no_log,
):
    """
    Type out generated lines, fetching corpus batches from SOURCE

    SOURCE is a URL returning JSON texts, a local file, or prefix:value for
    a source registered by a plugin. Defaults to $MARKOVTEXT_SOURCE.
    """
    options = options_or_exit(
        order=order,
        session_cap=session_cap,
        min_length=min_length,
        batch_size=batch_size,
        max_sentences=max_sentences,
        min_words=min_words,
        reject_artifacts=reject_artifacts,
    )
    text_source = source_or_exit(source)
    queue = GenerationQueue.from_options(
        text_source, options, rng=random.Random(seed)
    )
    try:
        delivered = asyncio.run(_stream(queue, options.batch_size, delay))
    except MarkovTextError as ex:
        raise click.ClickException(str(ex))
    if delivered and logs_on() and not no_log:
        db = sqlite_utils.Database(texts_db_path())
        log_texts(db, delivered, options.order, source=str(text_source))


async def _stream(queue: GenerationQueue, batch_size: int, delay: float) -> List[str]:
    delivered = []
    async with queue:
        if not await queue.is_available():
            raise click.ClickException(
                "Text source is not available: {}".format(queue.source)
            )
        empty_batches = 0
        while queue.has_more_texts():
            text = queue.get_next_text()
            if text is None:
                await queue.load_text_batch(batch_size)
                if queue.pending:
                    empty_batches = 0
                else:
                    empty_batches += 1
                    if empty_batches >= MAX_EMPTY_BATCHES:
                        click.echo(
                            "Stopping: no new lines after {} batches".format(
                                empty_batches
                            ),
                            err=True,
                        )
                        break
                continue
            for character in text:
                click.echo(character, nl=False)
                if delay:
                    await asyncio.sleep(delay)
            click.echo()
            delivered.append(text)
    return delivered


@cli.command()
@click.argument("source", envvar="MARKOVTEXT_SOURCE")
def check(source):
    "Check that a text source is reachable"
    text_source = source_or_exit(source)

    async def inner():
        async with GenerationQueue(text_source) as queue:
            return await queue.is_available()

    if asyncio.run(inner()):
        click.echo("Available: {}".format(text_source))
    else:
        click.echo("Not available: {}".format(text_source), err=True)
        sys.exit(1)


@cli.group(
    cls=DefaultGroup,
    default="list",
    default_if_no_args=True,
)
def texts():
    "Explore logged generated texts"


@texts.command(name="list")
@click.option(
    "-n",
    "--count",
    type=int,
    default=10,
    help="Number of texts to show - 0 for all",
)
@click.option("-q", "--query", help="Search for texts matching this string")
@click.option("-t", "--truncate", is_flag=True, help="Truncate long texts")
@click.option("json_", "--json", is_flag=True, help="Output as JSON")
def texts_list(count, query, truncate, json_):
    "Show logged texts, most recent first"
    path = texts_db_path()
    if not path.exists():
        raise click.ClickException("No texts database found at {}".format(path))
    db = sqlite_utils.Database(path)
    rows = recent_texts(db, count=count, query=query)
    if json_:
        click.echo(json.dumps(rows, indent=2))
        return
    for row in rows:
        text = truncate_string(row["text"]) if truncate else row["text"]
        click.echo("{}  {}".format(row["datetime_utc"].split(".")[0], text))


@texts.command(name="path")
def texts_path():
    "Output the path to the texts.db file"
    click.echo(texts_db_path())


@texts.command(name="status")
def texts_status():
    "Show current status of text logging"
    path = texts_db_path()
    if not path.exists():
        click.echo("No texts database found at {}".format(path))
        return
    if logs_on():
        click.echo("Logging is ON for all generated texts")
    else:
        click.echo("Logging is OFF")
    db = sqlite_utils.Database(path)
    migrate(db)
    click.echo("Found texts database at {}".format(path))
    click.echo("Number of texts logged:\t{}".format(db["texts"].count))


@texts.command(name="on")
def texts_turn_on():
    "Turn on logging for generated texts"
    path = user_dir() / "texts-off"
    if path.exists():
        path.unlink()


@texts.command(name="off")
def texts_turn_off():
    "Turn off logging for generated texts"
    path = user_dir() / "texts-off"
    path.touch()


@cli.group(
    cls=DefaultGroup,
    default="list",
    default_if_no_args=True,
)
def settings():
    "Manage default generation options"


@settings.command(name="list")
def settings_list():
    """
    List generation options, marking the ones that have been set

    \b
        markovtext settings list
    """
    stored = get_settings()
    for key, value in resolve_options().model_dump().items():
        suffix = "" if key in stored else "  (default)"
        click.echo(f"{key}: {value}{suffix}")


@settings.command(name="set")
@click.argument("key")
@click.argument("value")
def settings_set(key, value):
    """
    Set a default generation option

    \b
        markovtext settings set order 3
    """
    try:
        set_setting(key, value)
    except pydantic.ValidationError as ex:
        raise click.ClickException(render_errors(ex.errors()))
    click.echo(f"Set default option {key}={value}", err=True)


@settings.command(name="clear")
@click.argument("key", required=False)
def settings_clear(key):
    """
    Clear one stored option, or all of them

    \b
        markovtext settings clear order
    """
    keys = [key] if key else list(get_settings().keys())
    cleared = [key_ for key_ in keys if clear_setting(key_)]
    if cleared:
        click.echo("Cleared {}".format(", ".join(cleared)))
    else:
        click.echo("No options to clear", err=True)


@cli.command(name="sources")
def sources_list():
    "Show text source prefixes registered by plugins"
    found = False
    for prefix, loader in get_source_loaders().items():
        if found:
            # Extra newline on all after the first
            click.echo("")
        found = True
        docs = "Undocumented"
        if loader.__doc__:
            docs = textwrap.dedent(loader.__doc__).strip()
        click.echo(f"{prefix}:")
        click.echo(textwrap.indent(docs, "  "))
    if not found:
        click.echo("No text sources found")


@cli.command(name="plugins")
@click.option("--all", help="Include built-in default plugins", is_flag=True)
def plugins_list(all):
    "List installed plugins"
    click.echo(json.dumps(get_plugins(all), indent=2))


load_plugins()

pm.hook.register_commands(cli=cli)
