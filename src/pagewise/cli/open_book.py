"""CLI command that ingests a packaged document and prints a JSON summary."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from pagewise.config import ReaderSettings
from pagewise.ingestion.handles import FileContentHandle
from pagewise.ingestion.models import ProcessResult
from pagewise.session import ReadingSession

logger = logging.getLogger(__name__)


def _summary(result: ProcessResult) -> dict[str, object]:
    metadata = result.metadata
    return {
        "success": result.success,
        "title": metadata.title if metadata else None,
        "author": metadata.author if metadata else None,
        "language_hint": metadata.language_hint if metadata else None,
        "language": metadata.language.value if metadata and metadata.language else None,
        "chapters": [
            {"index": chapter.index, "href": chapter.href, "title": chapter.title}
            for chapter in result.chapters
        ],
        "failures": [
            {"index": failure.index, "href": failure.href, "error": failure.error.message}
            for failure in result.failures
        ],
        "error": (
            {"stage": result.error.stage, "kind": result.error.kind, "message": result.error.message}
            if result.error
            else None
        ),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Open a packaged document and print its reading order")
    parser.add_argument("--path", required=True, help="Packaged document to open")
    parser.add_argument("--chapter", type=int, default=None, help="Also print the render tree of this chapter")
    parser.add_argument("--no-classify", action="store_true", help="Skip language classification")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    try:
        settings = ReaderSettings.from_env()
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    source = Path(args.path)
    if not source.is_file():
        logger.error("Not a file: %s", source)
        return 1

    session, result = asyncio.run(
        ReadingSession.open(FileContentHandle(source), settings, classify=not args.no_classify)
    )
    payload = _summary(result)

    if session is not None:
        with session:
            if args.chapter is not None:
                try:
                    session.select_chapter(args.chapter)
                except ValueError as exc:
                    logger.error("%s", exc)
                    return 1
                payload["tree"] = session.current_tree().to_dict()
            payload["direction"] = session.presentation().direction.value

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
