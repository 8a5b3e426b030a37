#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Build today's reading + homily record.

  GEN_API_KEYS=sk-a,sk-b python -m daily_homily --language Spanish --out public/daily.json

FEED CHECK (no generation, no writes):
  python -m daily_homily --feed-only
"""

from __future__ import annotations
import argparse, dataclasses, json, logging, os, sys, tempfile
from pathlib import Path
from typing import List, Optional

from .aggregator import build_service, sanitize_feed
from .config import Settings
from .errors import DailyReadingError
from .feed import FeedClient
from .schema import validate_output

logger = logging.getLogger("daily_homily")


def atomic_write_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name, dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="daily-homily",
                                description="Fetch today's Mass readings and generate a homily.")
    p.add_argument("--language", default="English", help="target language, e.g. English, Spanish, Italian, German")
    p.add_argument("--tz", help="IANA time zone for 'today' (default: APP_TZ)")
    p.add_argument("--out", type=Path, help="write the record here (atomically)")
    p.add_argument("--dry-run", action="store_true", help="print the record instead of writing it")
    p.add_argument("--feed-only", action="store_true", help="fetch and print the cleaned feed, skip generation")
    p.add_argument("--validate", type=Path, metavar="PATH", help="validate an existing record and exit")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def validate_file(path: Path) -> int:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        print(f"[invalid] {path} not found", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"[invalid] {path}: JSON decode error at line {e.lineno} col {e.colno}: {e.msg}", file=sys.stderr)
        return 1
    errs = validate_output(data)
    for err in errs:
        print(f"[invalid] {path} {err}", file=sys.stderr)
    if errs:
        return 1
    print(f"[ok] {path} valid")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s] %(message)s")

    if args.validate:
        return validate_file(args.validate)

    settings = Settings.from_env()
    if args.tz:
        settings = dataclasses.replace(settings, app_tz=args.tz)
    logger.info("tz=%s provider=%s model=%s language=%s",
                settings.app_tz, settings.provider, settings.model, args.language)

    try:
        if args.feed_only:
            client = FeedClient(region=settings.feed_region, base_url=settings.feed_base_url,
                                timeout=settings.feed_timeout, tz=settings.app_tz)
            clean = sanitize_feed(client.fetch_today())
            print(json.dumps(dataclasses.asdict(clean), ensure_ascii=False, indent=2))
            return 0
        record = build_service(settings).get_daily_reading(args.language).to_dict()
    except DailyReadingError as e:
        print(f"[error] {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    errs = validate_output(record)
    if errs:
        print("[error] record failed validation: " + "; ".join(errs), file=sys.stderr)
        return 1

    if args.dry_run or not args.out:
        print(json.dumps(record, ensure_ascii=False, indent=2))
        return 0

    atomic_write_json(args.out, record)
    logger.info("wrote %s", args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
