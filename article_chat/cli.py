"""
Command-Line Interface for the Article Chat System

Commands:
- serve: run the HTTP API
- ingest: add articles from a URL or a file of URLs
- ask: answer a question from the command line
- entities: most mentioned entities across articles
- stats: system statistics
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .config import get_config
from .errors import ArticleChatError
from .main_pipeline import ArticleChatSystem


def setup_logging(verbose: bool = False, level_name: str = "INFO"):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def cmd_serve(args):
    """Handle the serve command."""
    import uvicorn
    from .api import create_app

    config = get_config()
    system = ArticleChatSystem(config)
    app = create_app(system, start_seed_ingestion=not args.no_seed and config.ingest_seed_on_startup)

    host = args.host or config.api_host
    port = args.port or config.api_port
    print(f"Serving Article Chat API on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


def cmd_ingest(args):
    """Handle the ingest command."""
    system = ArticleChatSystem()

    if args.url:
        print(f"Ingesting article from: {args.url}")
        try:
            article = system.add_article(args.url)
        except ArticleChatError as e:
            print(f"✗ Failed to ingest article: {e}")
            sys.exit(1)

        print("✓ Successfully ingested article")
        print(f"  Title: {article.title}")
        print(f"  Sentiment: {article.sentiment}")
        print(f"  Entities: {', '.join(article.entities) or 'none'}")

    elif args.file:
        if not Path(args.file).exists():
            print(f"✗ Error: File not found: {args.file}")
            sys.exit(1)

        print(f"Ingesting articles from: {args.file}")
        results = system.ingestion.ingest_from_file(args.file, show_progress=True)

        print(f"\n{'='*60}")
        print("Ingestion Summary:")
        print(f"  Total URLs: {results['total']}")
        print(f"  Successful: {results['successful']}")
        print(f"  Already present: {results['skipped']}")
        print(f"  Failed: {results['failed']}")
        print(f"  Processing time: {results['processing_time']:.2f}s")
        print(f"{'='*60}")

        if results['failed'] > 0:
            print("\nFailed URLs:")
            for detail in results['details']:
                if not detail['success'] and not detail['skipped']:
                    print(f"  - {detail['url']}: {detail.get('error', 'Unknown error')}")

    else:
        print("✗ Error: Either --url or --file must be specified")
        sys.exit(1)


def cmd_ask(args):
    """Handle the ask command."""
    system = ArticleChatSystem()

    print(f"Question: {args.question}")
    print()

    answer = system.chat(args.question, system.new_request_context())
    print(answer)


def cmd_entities(args):
    """Handle the entities command."""
    system = ArticleChatSystem()

    entities = system.find_common_entities(args.urls, limit=args.limit)
    if not entities:
        print("No entities found.")
        return

    scope = f"{len(args.urls)} article(s)" if args.urls else "all articles"
    print(f"Most mentioned entities across {scope}:\n")
    for i, entity in enumerate(entities, 1):
        print(f"  {i:>2}. {entity.entity} ({entity.count})")


def cmd_stats(args):
    """Handle the stats command."""
    system = ArticleChatSystem()

    stats = system.get_stats()

    print("="*60)
    print("System Statistics")
    print("="*60)
    print(f"Total Articles: {stats['total_articles']}")
    print(f"LLM Provider: {stats['llm_provider']}")
    print()

    print("Vector Store:")
    vs_stats = stats['vector_store_stats']
    print(f"  Backend: {vs_stats.get('backend', 'N/A')}")
    print(f"  Total Vectors: {vs_stats.get('total_vectors', 0)}")
    if 'dimension' in vs_stats:
        print(f"  Dimension: {vs_stats['dimension']}")
        print(f"  Index Type: {vs_stats.get('index_type', 'N/A')}")
    print()

    print("Response Cache:")
    cache_stats = stats['cache_stats']
    print(f"  Cache Size: {cache_stats.get('cache_size', 0)}")
    print(f"  Hit Rate: {cache_stats.get('hit_rate', 0):.2%}")
    print()

    print("Resources:")
    usage = stats['resource_usage']
    print(f"  CPU: {usage['cpu_percent']:.1f}%")
    print(f"  Memory: {usage['memory_mb']:.1f} MB ({usage['memory_percent']:.1f}%)")
    print("="*60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='article-chat',
        description='Article Chat System - ask questions about ingested news articles',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the HTTP API
  python -m article_chat.cli serve --port 8080

  # Ingest a single article
  python -m article_chat.cli ingest --url https://example.com/article

  # Ingest articles from a file
  python -m article_chat.cli ingest --file data/seed_urls.txt

  # Ask a question
  python -m article_chat.cli ask "Summarize https://example.com/article"

  # Most mentioned entities
  python -m article_chat.cli entities

  # View statistics
  python -m article_chat.cli stats
        """
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', help='Bind address (default: API_HOST)')
    serve_parser.add_argument('--port', type=int, help='Port (default: API_PORT)')
    serve_parser.add_argument(
        '--no-seed',
        action='store_true',
        help='Do not ingest the seed URL file on startup'
    )
    serve_parser.set_defaults(func=cmd_serve)

    ingest_parser = subparsers.add_parser('ingest', help='Ingest articles from URLs')
    ingest_parser.add_argument('--url', help='Single URL to ingest')
    ingest_parser.add_argument('--file', help='File containing URLs (one per line)')
    ingest_parser.set_defaults(func=cmd_ingest)

    ask_parser = subparsers.add_parser('ask', help='Ask a question about the articles')
    ask_parser.add_argument('question', help='Question to ask')
    ask_parser.set_defaults(func=cmd_ask)

    entities_parser = subparsers.add_parser('entities', help='Show the most mentioned entities')
    entities_parser.add_argument('urls', nargs='*', help='Restrict to these article URLs')
    entities_parser.add_argument(
        '--limit',
        type=int,
        default=10,
        help='Number of entities to show (default: 10)'
    )
    entities_parser.set_defaults(func=cmd_entities)

    stats_parser = subparsers.add_parser('stats', help='Display system statistics')
    stats_parser.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose, get_config().log_level)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n✗ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
