#!/usr/bin/env python
"""
verses.py - unified CLI for the Bible Verses App

Commands:

  python verses.py status
      Corpus size, refresh settings, current verse and schedule summary

  python verses.py search "living water" --book John --limit 10
      Substring search over verse text

  python verses.py expand "John 3:16"
      Grow a verse into a sentence-complete quotation

  python verses.py schedule "Psalms 23:1" --when tomorrow
      Schedule a verse for the widget (today / tomorrow / next_week / ISO time)

  python verses.py populate --count 7
      Pre-schedule random verses at the configured refresh cadence

  python verses.py watch
      Timer loop: promote due verses every minute

  python verses.py import-bible bible.xlsx data/bible-kjv.json --version KJV
      Build a corpus JSON file from an Excel/CSV table
"""

import argparse
import sys
import time
from pathlib import Path

from bva import config
from bva.config import Settings
from bva.context import ContextExpander, get_verse_window
from bva.index import ScriptureIndex
from bva.loader import import_corpus_from_table, load_corpus
from bva.model import Collection, RefreshFrequency, WidgetSettings
from bva.paths import ensure_basic_dirs
from bva.picker import VersePicker
from bva.scheduling import SchedulingEngine, is_today_past_due, schedule_time_for_preset
from bva.search import get_passage, print_search_results, search_verses
from bva.status import print_history, print_scheduled, print_status
from bva.store import SqliteKeyValueStore, StorageService
from bva.util import from_iso, info, ok, utc_now, warn
from bva.widget import SharedStateWidgetBridge, WebhookWidgetBridge


# ---------- Wiring ----------


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.db:
        settings.db_path = Path(args.db)
    if args.corpus:
        settings.corpus_path = Path(args.corpus)
    if args.widget_state:
        settings.widget_state_path = Path(args.widget_state)
    if args.widget_url:
        settings.widget_url = args.widget_url
    return settings


def build_engine(args: argparse.Namespace) -> SchedulingEngine:
    """
    Load the corpus and assemble index, picker, store and engine.
    """
    settings = resolve_settings(args)
    ensure_basic_dirs()

    corpus = load_corpus(settings.corpus_path)
    index = ScriptureIndex(corpus)

    if settings.widget_url:
        bridge = WebhookWidgetBridge(settings.widget_url)
    else:
        bridge = SharedStateWidgetBridge(settings.widget_state_path)

    store = StorageService(SqliteKeyValueStore(settings.db_path), bridge=bridge)
    picker = VersePicker(index, scope_start=settings.scope_start)
    return SchedulingEngine(
        store,
        index,
        picker=picker,
        expander=ContextExpander(index),
        bridge=bridge,
    )


def _resolve_verse(engine: SchedulingEngine, ref: str):
    verse = engine.index.parse_reference(ref)
    if verse is None:
        warn(f"Could not resolve reference: {ref!r}")
    return verse


# ---------- Command handlers ----------


def cmd_status(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    print_status(engine)
    return 0


def cmd_books(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    for name in engine.index.get_all_books():
        print(name)
    return 0


def cmd_chapters(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    chapters = engine.index.get_chapters(args.book)
    if not chapters:
        warn(f"No chapters found for book {args.book!r}.")
        return 1
    print(" ".join(str(c) for c in chapters))
    return 0


def cmd_read(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verses = engine.index.get_verses_in_chapter(args.book, args.chapter)
    if not verses:
        warn(f"Chapter not found: {args.book} {args.chapter}")
        return 1
    for v in verses:
        print(f"{v.verse_number:>3}  {v.text}")
    return 0


def cmd_verse(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verse = _resolve_verse(engine, args.ref)
    if verse is None:
        return 1
    print_search_results([verse])
    return 0


def cmd_search(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    rows = search_verses(engine.index, args.query, book=args.book, limit=args.limit)
    print_search_results(rows)
    return 0


def cmd_passage(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    print_search_results(get_passage(engine.index, args.ref))
    return 0


def cmd_context(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    rows = get_verse_window(engine.index, args.ref, before=args.before, after=args.after)
    print_search_results(rows)
    return 0


def cmd_expand(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verse = _resolve_verse(engine, args.ref)
    if verse is None:
        return 1
    print_search_results([engine.expander.expand(verse)])
    return 0


def cmd_random(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    scope = engine.index.get_books_from(args.from_book) if args.from_book else engine.book_scope
    verse = engine.picker.pick_random(book_scope=scope)
    if verse is None:
        warn("Nothing to pick from: the scope holds no verses.")
        return 1
    print_search_results([engine.expander.expand(verse)])
    return 0


def cmd_schedule(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verse = _resolve_verse(engine, args.ref)
    if verse is None:
        return 1

    if args.when in ("today", "tomorrow", "next_week"):
        if args.when == "today" and is_today_past_due():
            warn("Today's slot has already passed; the verse will show on the next tick.")
        when = schedule_time_for_preset(args.when)
    else:
        try:
            when = schedule_time_for_preset("custom", custom=from_iso(args.when))
        except ValueError as e:
            warn(f"Invalid --when value {args.when!r}: {e}")
            return 1

    reveal = engine.schedule_explicit(verse, when, collection_id=args.collection)
    ok(f"Scheduled {verse.reference} for {when.isoformat()} (id {reveal.id})")
    return 0


def cmd_cancel(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    if engine.cancel(args.id):
        ok(f"Cancelled {args.id}")
    else:
        info(f"No pending reveal with id {args.id}")
    return 0


def cmd_pending(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    print_scheduled(engine.list_scheduled(), engine.clock())
    return 0


def cmd_history(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    print_history(engine.feed(limit=args.limit), engine.clock())
    return 0


def cmd_promote(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verse = engine.promote_next_due()
    if verse is None:
        info("Nothing due.")
    else:
        print_search_results([verse])
    return 0


def cmd_foreground(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verse = engine.on_app_foreground()
    if verse is None:
        warn("Nothing to show.")
        return 1
    print_search_results([verse])
    return 0


def cmd_populate(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    reveals = engine.populate_schedule(args.count)
    if not reveals:
        info("No verses scheduled (onAppOpen mode or no fresh verses).")
    print_scheduled(reveals, engine.clock())
    return 0


def cmd_settings(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    if args.frequency is None and args.hours is None:
        s = engine.store.get_settings()
        info(f"refreshFrequency={s.refresh_frequency.value}, customHours={s.custom_hours}")
        return 0

    current = engine.store.get_settings()
    frequency = RefreshFrequency(args.frequency) if args.frequency else current.refresh_frequency
    hours = args.hours if args.hours is not None else current.custom_hours
    if hours is not None and hours <= 0:
        warn("--hours must be a positive integer.")
        return 1
    engine.store.save_widget_settings(WidgetSettings(frequency, hours))
    ok(f"Saved refreshFrequency={frequency.value}, customHours={hours}")
    return 0


def cmd_theme(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    if args.name:
        engine.store.save_theme_name(args.name)
    if args.primary is not None:
        engine.store.save_custom_colors(args.primary or None)
    info(f"theme={engine.store.get_theme_name()}, colors={engine.store.get_custom_colors()}")
    return 0


def cmd_watch(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    """
    Timer loop: promote due reveals every `interval` seconds and top the
    schedule up whenever it runs dry.
    """
    engine.on_app_foreground()
    done = 0
    while args.iterations is None or done < args.iterations:
        if not engine.store.list_pending():
            engine.populate_schedule()
        verse = engine.tick()
        if verse is not None:
            info(f"Now showing {verse.reference}")
        done += 1
        if args.iterations is None or done < args.iterations:
            time.sleep(args.interval)
    return 0


def cmd_import_bible(engine_unused, args: argparse.Namespace) -> int:
    corpus = import_corpus_from_table(
        Path(args.table),
        Path(args.out),
        version=args.version,
        sheet_name=args.sheet,
        max_rows=args.max_rows,
        dry_run=args.dry_run,
    )
    return 0 if corpus is not None else 1


def cmd_collections(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    collections = engine.store.get_collections()
    if not collections:
        info("No collections.")
    for c in collections:
        refs = ", ".join(v.reference for v in c.verses)
        print(f"{c.id}  {c.name}: {refs}")
    return 0


def cmd_collection_add(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    verses = []
    for ref in args.refs:
        verse = _resolve_verse(engine, ref)
        if verse is None:
            return 1
        verses.append(verse)

    now = utc_now()
    collection = Collection(
        id=engine.id_factory(),
        name=args.name,
        verses=verses,
        created_at=now,
        updated_at=now,
    )
    engine.store.save_collection(collection)
    ok(f"Saved collection {collection.name!r} (id {collection.id})")
    return 0


def cmd_collection_delete(engine: SchedulingEngine, args: argparse.Namespace) -> int:
    engine.store.delete_collection(args.id)
    ok(f"Deleted collection {args.id}")
    return 0


# ---------- Parser setup ----------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verses",
        description=f"{config.APP_NAME} CLI (v{config.__version__})",
    )
    parser.add_argument("--db", type=str, default=None, help="Path to the SQLite state file")
    parser.add_argument("--corpus", type=str, default=None, help="Path to the corpus JSON file")
    parser.add_argument("--widget-state", type=str, default=None, help="Path to the widget shared-state JSON")
    parser.add_argument("--widget-url", type=str, default=None, help="Push widget updates to this URL instead")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Print a status report").set_defaults(func=cmd_status)
    sub.add_parser("books", help="List books in corpus order").set_defaults(func=cmd_books)

    p = sub.add_parser("chapters", help="List chapter numbers of a book")
    p.add_argument("book", type=str)
    p.set_defaults(func=cmd_chapters)

    p = sub.add_parser("read", help="Print one chapter")
    p.add_argument("book", type=str)
    p.add_argument("chapter", type=int)
    p.set_defaults(func=cmd_read)

    p = sub.add_parser("verse", help="Look up a single verse (e.g. 'John 3:16')")
    p.add_argument("ref", type=str)
    p.set_defaults(func=cmd_verse)

    p = sub.add_parser("search", help="Search verses for a text phrase")
    p.add_argument("query", type=str, help="Search text")
    p.add_argument("--book", type=str, default=None, help="Restrict to one book")
    p.add_argument("--limit", type=int, default=20, help="Maximum number of verses (default: 20)")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("passage", help="Fetch a passage by reference (e.g. 'John 3:16-18')")
    p.add_argument("ref", type=str)
    p.set_defaults(func=cmd_passage)

    p = sub.add_parser("context", help="Fetch a window of verses around a reference")
    p.add_argument("ref", type=str)
    p.add_argument("--before", type=int, default=2, help="Verses before the center (default: 2)")
    p.add_argument("--after", type=int, default=2, help="Verses after the center (default: 2)")
    p.set_defaults(func=cmd_context)

    p = sub.add_parser("expand", help="Expand a verse into a complete quotation")
    p.add_argument("ref", type=str)
    p.set_defaults(func=cmd_expand)

    p = sub.add_parser("random", help="Pick a random verse")
    p.add_argument("--from", dest="from_book", type=str, default=None,
                   help="First book of the scope (default: configured scope)")
    p.set_defaults(func=cmd_random)

    p = sub.add_parser("schedule", help="Schedule a verse for the widget")
    p.add_argument("ref", type=str)
    p.add_argument("--when", type=str, default="tomorrow",
                   help="today, tomorrow, next_week or an ISO date-time (default: tomorrow)")
    p.add_argument("--collection", type=str, default=None, help="Optional collection id tag")
    p.set_defaults(func=cmd_schedule)

    p = sub.add_parser("cancel", help="Cancel a scheduled verse by id")
    p.add_argument("id", type=str)
    p.set_defaults(func=cmd_cancel)

    sub.add_parser("pending", help="List scheduled verses").set_defaults(func=cmd_pending)

    p = sub.add_parser("history", help="List recently displayed verses")
    p.add_argument("--limit", type=int, default=config.FEED_CAP)
    p.set_defaults(func=cmd_history)

    sub.add_parser("promote", help="Promote the earliest due verse").set_defaults(func=cmd_promote)
    sub.add_parser("foreground", help="Run the app-foreground refresh").set_defaults(func=cmd_foreground)

    p = sub.add_parser("populate", help="Pre-schedule random verses")
    p.add_argument("--count", type=int, default=config.DEFAULT_POPULATE_COUNT)
    p.set_defaults(func=cmd_populate)

    p = sub.add_parser("settings", help="Show or change widget refresh settings")
    p.add_argument("--frequency", choices=[f.value for f in RefreshFrequency], default=None)
    p.add_argument("--hours", type=int, default=None, help="Hours between verses for 'custom'")
    p.set_defaults(func=cmd_settings)

    p = sub.add_parser("theme", help="Show or change the widget theme")
    p.add_argument("--name", type=str, default=None)
    p.add_argument("--primary", type=str, default=None, help="Primary color hex ('' to clear)")
    p.set_defaults(func=cmd_theme)

    p = sub.add_parser("watch", help="Promote due verses on a timer")
    p.add_argument("--interval", type=float, default=config.TICK_SECONDS)
    p.add_argument("--iterations", type=int, default=None)
    p.set_defaults(func=cmd_watch)

    p = sub.add_parser("import-bible", help="Build a corpus JSON file from an Excel/CSV table")
    p.add_argument("table", type=str, help="Path to the .xlsx or .csv file")
    p.add_argument("out", type=str, help="Output corpus JSON path")
    p.add_argument("--version", type=str, default="", help="Translation label (e.g. KJV)")
    p.add_argument("--sheet", type=str, default=None, help="Worksheet name (default: active sheet)")
    p.add_argument("--max-rows", type=int, default=None, help="Limit data rows (for testing)")
    p.add_argument("--dry-run", action="store_true", help="Parse and report only")
    p.set_defaults(func=cmd_import_bible, needs_corpus=False)

    sub.add_parser("collections", help="List collections").set_defaults(func=cmd_collections)

    p = sub.add_parser("collection-add", help="Create a collection from references")
    p.add_argument("name", type=str)
    p.add_argument("refs", nargs="+")
    p.set_defaults(func=cmd_collection_add)

    p = sub.add_parser("collection-delete", help="Delete a collection by id")
    p.add_argument("id", type=str)
    p.set_defaults(func=cmd_collection_delete)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "needs_corpus", True):
        return args.func(None, args)

    try:
        engine = build_engine(args)
    except (FileNotFoundError, ValueError) as e:
        warn(f"Could not load corpus: {e}")
        return 1

    return args.func(engine, args)


if __name__ == "__main__":
    sys.exit(main())
