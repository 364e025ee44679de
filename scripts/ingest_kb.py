#!/usr/bin/env python3
"""
Knowledge Base Ingestion CLI

Chunks, embeds and stores documents (PDF, DOCX, TXT, MD) in kb_vectors.
Run: python scripts/ingest_kb.py reports/salary_survey_2024.pdf --replace
"""
import argparse
import logging
import os
import sys

from karirkit.core.errors import KarirKitError
from karirkit.core.logging_config import configure_logging
from karirkit.services.ingestion_service import get_ingestion_service
from karirkit.utils.file_upload import extract_text

logger = logging.getLogger("ingest_kb")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest documents into the knowledge base")
    parser.add_argument("files", nargs="+", help="documents to ingest")
    parser.add_argument("--source", help="source name (single file only), defaults to the filename")
    parser.add_argument("--replace", action="store_true", help="delete the source's existing chunks first")
    parser.add_argument("--log-level", default=None, help="logging level, e.g. DEBUG")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.source and len(args.files) > 1:
        logger.error("--source can only be used with a single file")
        return 2

    service = get_ingestion_service()
    failures = 0
    for path in args.files:
        filename = os.path.basename(path)
        try:
            with open(path, "rb") as f:
                text = extract_text(f.read(), filename)
            result = service.ingest_text(
                text,
                args.source or filename,
                {"filename": filename},
                replace=args.replace
            )
        except (OSError, KarirKitError) as e:
            logger.error("Failed to ingest %s: %s", path, e)
            failures += 1
            continue
        logger.info("%s: %d chunks stored, %d replaced", path, result["chunks"], result["replaced"])

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
