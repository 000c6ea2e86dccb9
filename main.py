# main.py
import argparse
import logging
import sys
from pathlib import Path
from config import VERSION, FRAME_WIDTH
from core.fulltext.exceptions import SearchIndexError
from core.preprocessing.page_indexer import PageIndexer, get_memory_usage

def print_header(title):
    print("\n" + "═" * FRAME_WIDTH)
    print(f"  {title}")
    print("═" * FRAME_WIDTH)

def cmd_index(indexer, args):
    stats = indexer.index_entities(args.names, show_progress=len(args.names) > 1)
    print(f"  ✓ Indexed: {stats.indexed:,} | Removed: {stats.removed:,} | Failed: {stats.failed:,}")
    return 1 if stats.failed else 0

def cmd_rebuild(indexer, args):
    print_header("🔨 Rebuilding Fulltext Index")
    print(f"  Content directory: {indexer.store.content_dir}")
    print(f"  Index directory: {indexer.collection.index_dir}")
    stats = indexer.rebuild_index(show_progress=not args.quiet)
    print(f"  ✓ Indexed {stats.indexed:,} pages in {stats.elapsed:.1f}s")
    if stats.failed:
        print(f"  ⚠️  {stats.failed:,} pages failed (see log)")
    print(f"  ✓ Shard lengths: {indexer.collection.shard_lengths()}")
    print(f"  ✓ Memory: {get_memory_usage()}")
    return 1 if stats.failed else 0

def cmd_search(indexer, args):
    terms = indexer.tokenizer.tokenize_query(" ".join(args.query))
    if not terms:
        print("  No searchable terms in query")
        return 1
    results = indexer.collection.lookup_words(terms)
    if not results:
        print(f"  No matches for: {' '.join(terms)}")
        return 0
    for term in terms:
        hits = results.get(term, {})
        print(f"\n  {term} ({len(hits)} pages)")
        for name, count in sorted(hits.items(), key=lambda item: (-item[1], item[0]))[:args.limit]:
            print(f"    {count:>5}  {name}")
    return 0

def cmd_histogram(indexer, args):
    histogram = indexer.collection.histogram(args.min, args.max, args.min_length)
    for token, total in list(histogram.items())[:args.limit]:
        print(f"  {total:>7,}  {token}")
    return 0

def cmd_clear(indexer, args):
    indexer.collection.clear()
    print(f"  ✓ Cleared {indexer.collection.index_dir}")
    return 0

def build_parser():
    parser = argparse.ArgumentParser(prog="flatsearch", description=f"flatsearch {VERSION}")
    parser.add_argument('--index-dir', type=Path, help='Index directory')
    parser.add_argument('--content-dir', type=Path, help='Directory of page text files')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('index', help='(Re)index pages after they changed')
    p.add_argument('names', nargs='+', help='Page names')
    p.set_defaults(func=cmd_index)

    p = sub.add_parser('rebuild', help='Clear the index and index every page')
    p.add_argument('--quiet', action='store_true', help='No progress bar')
    p.set_defaults(func=cmd_rebuild)

    p = sub.add_parser('search', help='Look up words (leading/trailing * allowed)')
    p.add_argument('query', nargs='+')
    p.add_argument('--limit', type=int, default=25, help='Pages shown per term')
    p.set_defaults(func=cmd_search)

    p = sub.add_parser('histogram', help='Token usage counts')
    p.add_argument('--min', type=int, default=1, help='Bottom frequency threshold')
    p.add_argument('--max', type=int, default=0, help='Upper frequency limit (ignored if <= min)')
    p.add_argument('--min-length', type=int, default=3, help='Minimum token length')
    p.add_argument('--limit', type=int, default=50, help='Tokens shown')
    p.set_defaults(func=cmd_histogram)

    p = sub.add_parser('clear', help='Delete the whole index')
    p.set_defaults(func=cmd_clear)
    return parser

def main(argv=None):
    """Main entry point for the flatsearch command line."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    indexer = PageIndexer.from_paths(args.index_dir, args.content_dir)
    try:
        return args.func(indexer, args)
    except SearchIndexError as e:
        print(f"\n  ❌ {type(e).__name__}: {e}")
        return 2

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        sys.exit(0)
