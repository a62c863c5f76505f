#!/usr/bin/env python3
"""Download a public-domain KJV text and write it as a versekit JSON corpus.

The source is a JSON array of 66 books in canonical order, each with a
"chapters" list of verse-text lists. Book names are taken from the canon by
position, so the source's own abbreviations are ignored.

Usage:
    python scripts/download_corpus.py [--url URL] [--out data/kjv.json]
    versekit load data/kjv.json
"""

import argparse
import json
import os
import re

import requests

from versekit._canon import CANON

DEFAULT_URL = "https://raw.githubusercontent.com/thiagobodruk/bible/master/json/en_kjv.json"
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": "VersekitCorpusDownloader/1.0 (educational/research)"})

# Translator's supplied words are marked {like this} in the source.
_BRACES = re.compile(r"[{}]")


def download_books(url: str) -> list[dict]:
    """Fetch the source JSON. Tolerates a leading byte-order mark."""
    resp = SESSION.get(url, timeout=60)
    resp.raise_for_status()
    data = json.loads(resp.content.decode("utf-8-sig"))
    if not isinstance(data, list) or len(data) != len(CANON):
        raise ValueError(f"Expected {len(CANON)} books, got {len(data) if isinstance(data, list) else type(data).__name__}")
    return data


def to_corpus(source_books: list[dict]) -> dict:
    """Convert source books to versekit's {"books", "verses"} layout."""
    books = []
    verses = []
    for seq, (cb, src) in enumerate(zip(CANON, source_books), start=1):
        chapters = src["chapters"]
        books.append({
            "name": cb.name,
            "testament": cb.testament.value,
            "seq_number": seq,
            "chapter_count": len(chapters),
        })
        for ch_idx, chapter in enumerate(chapters, start=1):
            for v_idx, text in enumerate(chapter, start=1):
                text = " ".join(_BRACES.sub("", text).split())
                if text:
                    verses.append({"book": cb.name, "chapter": ch_idx, "verse": v_idx, "text": text})
    return {"books": books, "verses": verses}


def main():
    parser = argparse.ArgumentParser(description="Download the KJV as a versekit corpus")
    parser.add_argument("--url", default=DEFAULT_URL, help="Source JSON URL")
    parser.add_argument("--out", default=os.path.join(DATA_DIR, "kjv.json"), help="Output path")
    args = parser.parse_args()

    print(f"Downloading {args.url} ...")
    corpus = to_corpus(download_books(args.url))

    os.makedirs(os.path.dirname(os.path.abspath(args.out)), exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(corpus, f, ensure_ascii=False)
    print(f"Wrote {len(corpus['verses'])} verses in {len(corpus['books'])} books to {args.out}")


if __name__ == "__main__":
    main()
