#!/usr/bin/env python3
"""
CLI script to run the microformats2 parser.

Reads HTML files and prints the canonical microformats2 JSON for each.

Defaults come from MF2_* environment variables (a .env file is loaded
automatically); command-line flags override them.

Usage:
    python run_parser.py page.html
    python run_parser.py page.html --url https://example.com/post/1
    python run_parser.py page1.html page2.html -o parsed.json
    python run_parser.py page.html --id main-content --no-classic
"""

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from mf2_parser.main import MicroformatsParser
from mf2_parser.schemas import ParserOptions
from mf2_parser.exceptions import ParseDepthError


def main():
    parser = argparse.ArgumentParser(description="Parse microformats2 from HTML files")
    parser.add_argument("files", nargs="+", help="HTML files to parse")
    parser.add_argument("--url", "-u", help="URL the documents were retrieved from")
    parser.add_argument("--id", dest="element_id", help="Only parse inside the element with this id")
    parser.add_argument("--no-classic", action="store_true", help="Don't upgrade classic microformats")
    parser.add_argument("--lang", action="store_true", help="Include language information")
    parser.add_argument("--alternates", action="store_true", help="Include rel=alternate links separately")
    parser.add_argument("--output", "-o", help="Output JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    # Flags left at their defaults fall back to the environment
    options = ParserOptions.from_env(
        base_url=args.url,
        convert_classic=False if args.no_classic else None,
        lang=True if args.lang else None,
        enable_alternates=True if args.alternates else None,
    )
    mf2 = MicroformatsParser(
        options,
        log_level=logging.DEBUG if args.verbose else logging.WARNING
    )

    results = []

    for filepath in args.files:
        path = Path(filepath)

        try:
            raw_bytes = path.read_bytes()
            result = mf2.parse(raw_bytes, url=options.base_url, element_id=args.element_id)
            results.append(result.to_dict())

        except ParseDepthError as e:
            results.append({"file": path.name, "status": "error", **e.to_response()})
        except (OSError, ValueError) as e:
            results.append({
                "file": path.name,
                "status": "error",
                "error": str(e)
            })

    # A single document prints as itself, several as a list
    payload = results[0] if len(results) == 1 else results

    # ensure_ascii=False preserves unicode characters in the JSON
    output = json.dumps(payload, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"Saved to: {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
