"""
Command-Line Interface for F1 Topic Memory

Provides CLI commands for:
- Asking questions (routed to a topic automatically or by hint)
- Inspecting routing decisions
- Ingesting news for one topic or every tracked topic
- Listing topics and showing statistics
- Serving the HTTP API
"""

import sys
import argparse
import logging

from .config import get_config
from .main_pipeline import TopicMemorySystem, setup_logging
from .routing.router import TopicRouter
from .topics import get_topic_table


def cmd_ask(args):
    """Handle the ask command."""
    system = TopicMemorySystem()

    print(f"Question: {args.question}")
    print()

    result = system.ask(args.question, topic_hint=args.topic)

    print(f"Topic: {result['topicKey']} ({result['reason']})")
    print()
    print("Answer:")
    print(result['answer'])
    print()

    if not args.no_sources and result['contextUsed']:
        print(f"Context ({len(result['contextUsed'])} entries):")
        for i, entry in enumerate(result['contextUsed'], 1):
            print(f"  [{i}] {entry['timestamp']} {entry['source']}")
        print()


def cmd_route(args):
    """Handle the route command."""
    router = TopicRouter(get_topic_table(get_config().topics_file or None))
    topic_key, reason = router.resolve_with_reason(args.question, args.topic)
    print(f"{topic_key}\t{reason}")


def cmd_ingest(args):
    """Handle the ingest command."""
    system = TopicMemorySystem(request_delay=args.delay)

    if args.topic:
        print(f"Ingesting news for: {args.topic}")
        count = system.ingest_topic(args.topic)
        print(f"✓ Added {count} entries to {args.topic}")

    elif args.all:
        results = system.refresh_all(show_progress=True)

        print(f"\n{'='*60}")
        print("Ingestion Summary:")
        print(f"  Topics: {results['total']}")
        print(f"  Updated: {results['updated']}")
        print(f"  Empty: {results['empty']}")
        print(f"  Failed: {results['failed']}")
        print(f"  Entries added: {results['entries_added']}")
        print(f"  Processing time: {results['processing_time']:.2f}s")
        print(f"{'='*60}")

        if results['failed'] > 0:
            print("\nFailed topics:")
            for topic_key, detail in results['details'].items():
                if detail['status'] == 'failed':
                    print(f"  - {topic_key}: {detail.get('error', 'Unknown error')}")

    else:
        print("✗ Error: Either --topic or --all must be specified")
        sys.exit(1)


def cmd_topics(args):
    """Handle the topics command."""
    table = get_topic_table(get_config().topics_file or None)

    for topic_key in table.topic_keys:
        marker = ' (default)' if topic_key == table.default_topic else ''
        aliases = ', '.join(table.aliases.get(topic_key, ()))
        print(f"{topic_key}{marker}")
        if aliases:
            print(f"    aliases: {aliases}")


def cmd_stats(args):
    """Handle the stats command."""
    system = TopicMemorySystem()

    stats = system.get_stats()

    print("="*60)
    print("System Statistics")
    print("="*60)
    print(f"Tracked Topics: {stats['tracked_topics']}")
    print(f"Partitions: {stats['total_partitions']}")
    print(f"Total Entries: {stats['total_entries']}")
    print(f"Context Window: {stats['context_window'] or 'unlimited'}")
    print()

    partitions = stats['store_stats']['partitions']
    if partitions:
        print("Partitions:")
        for topic_key, info in partitions.items():
            print(f"  {topic_key}: {info['entries']} entries (updated {info['last_updated']})")
    print("="*60)


def cmd_serve(args):
    """Handle the serve command."""
    import uvicorn
    from .api import create_app

    config = get_config()
    uvicorn.run(
        create_app(),
        host=args.host or config.api_host,
        port=args.port or config.api_port,
        log_level=config.log_level.lower()
    )


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='F1 Topic Memory - Topic-partitioned news knowledge base',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ask a question (topic is detected automatically)
  python -m topic_memory.cli ask "How is Ferrari doing?"

  # Ask against an explicit topic
  python -m topic_memory.cli ask "Who won?" --topic race_2025_r08_monaco

  # Show which topic a question routes to
  python -m topic_memory.cli route "What happened at Monza?"

  # Ingest news for one topic, or for all tracked topics
  python -m topic_memory.cli ingest --topic team_ferrari
  python -m topic_memory.cli ingest --all --delay 2

  # Serve the HTTP API
  python -m topic_memory.cli serve --port 8787
        """
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Ask command
    ask_parser = subparsers.add_parser(
        'ask',
        help='Ask a question and get an answer from the topic knowledge base'
    )
    ask_parser.add_argument('question', help='Question to ask')
    ask_parser.add_argument(
        '--topic',
        default='auto',
        help='Topic key to use instead of automatic detection (default: auto)'
    )
    ask_parser.add_argument(
        '--no-sources',
        action='store_true',
        help='Do not list the context entries used'
    )
    ask_parser.set_defaults(func=cmd_ask)

    # Route command
    route_parser = subparsers.add_parser(
        'route',
        help='Show which topic a question is routed to'
    )
    route_parser.add_argument('question', help='Question to route')
    route_parser.add_argument('--topic', default=None, help='Optional topic hint')
    route_parser.set_defaults(func=cmd_route)

    # Ingest command
    ingest_parser = subparsers.add_parser(
        'ingest',
        help='Fetch and store news for topics'
    )
    ingest_parser.add_argument('--topic', help='Single topic key to ingest')
    ingest_parser.add_argument(
        '--all',
        action='store_true',
        help='Ingest every tracked topic'
    )
    ingest_parser.add_argument(
        '--delay',
        type=float,
        default=None,
        help='Delay between news requests in seconds (default: NEWS_REQUEST_DELAY)'
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    # Topics command
    topics_parser = subparsers.add_parser('topics', help='List tracked topics')
    topics_parser.set_defaults(func=cmd_topics)

    # Stats command
    stats_parser = subparsers.add_parser('stats', help='Display system statistics')
    stats_parser.set_defaults(func=cmd_stats)

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Serve the HTTP API')
    serve_parser.add_argument('--host', default=None, help='Bind address')
    serve_parser.add_argument('--port', type=int, default=None, help='Port')
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    setup_logging('DEBUG' if args.verbose else get_config().log_level)

    if not args.command:
        parser.print_help()
        sys.exit(1)

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
