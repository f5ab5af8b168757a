"""
Token Signal Agent - Command Line Interface

Usage:
    signal-agent run                 # scheduler: run now, then every N minutes
    signal-agent run --once          # single analysis run
    signal-agent analyze ETH CBETH   # offline engine pass over stored prices
    signal-agent signals             # latest stored signal per token
    signal-agent signals ETH -n 10   # signal history for one token
    signal-agent serve               # HTTP API
"""
import argparse
import asyncio
import sys
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables before anything reads settings
load_dotenv()

from signal_agent.agents.data_structures import AgentConfig  # noqa: E402
from signal_agent.agents.market_analyst import MarketAnalystAgent  # noqa: E402
from signal_agent.cli.formatter import OutputFormatter, console  # noqa: E402
from signal_agent.config.settings import settings  # noqa: E402
from signal_agent.config.signal_generation import signal_generation_config  # noqa: E402
from signal_agent.data.providers.base_chain_provider import BaseChainProvider  # noqa: E402
from signal_agent.data.providers.coingecko_provider import CoinGeckoProvider  # noqa: E402
from signal_agent.data.storage import JsonStorage  # noqa: E402
from signal_agent.llm.client import LLMClient  # noqa: E402
from signal_agent.orchestration.analyzer import SignalAnalyzer  # noqa: E402
from signal_agent.orchestration.scheduler import AgentScheduler  # noqa: E402
from signal_agent.signal_generation import ComputationError, LocalSignalGenerator  # noqa: E402
from signal_agent.utils.logging import configure_logging  # noqa: E402

formatter = OutputFormatter()

_VERBOSITY_LEVELS = {0: "ERROR", 1: "WARNING", 2: "INFO", 3: "DEBUG"}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="signal-agent",
        description="Token Signal Agent - autonomous BUY/HOLD/SELL signals for on-chain tokens",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        type=int,
        choices=[0, 1, 2, 3],
        default=2,
        help="Verbosity level: 0=errors-only, 1=warnings, 2=info (default), 3=debug",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help=f"Storage directory (default: {settings.storage.DATA_DIR})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the autonomous agent")
    run_parser.add_argument("--once", action="store_true", help="Run a single analysis and exit")
    run_parser.add_argument(
        "--interval",
        type=int,
        default=settings.agent.INTERVAL_MINUTES,
        help=f"Minutes between runs (default: {settings.agent.INTERVAL_MINUTES})",
    )
    run_parser.add_argument(
        "--tokens",
        nargs="+",
        default=settings.agent.TOKENS,
        help=f"Tokens to track (default: {' '.join(settings.agent.TOKENS)})",
    )

    analyze_parser = subparsers.add_parser("analyze", help="Score stored price history without calling the AI")
    analyze_parser.add_argument("tokens", nargs="*", help="Tokens to analyze (default: all tracked tokens)")
    analyze_parser.add_argument("--format", choices=["table", "json"], default="table")

    signals_parser = subparsers.add_parser("signals", help="Show stored signals")
    signals_parser.add_argument("token", nargs="?", help="Show the history of one token")
    signals_parser.add_argument("--limit", "-n", type=int, default=5, help="History length (default: 5)")
    signals_parser.add_argument("--format", choices=["table", "json"], default="table")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=settings.api.HOST)
    serve_parser.add_argument("--port", type=int, default=settings.api.PORT)
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    return parser.parse_args(argv)


async def run_agent(args: argparse.Namespace, storage: JsonStorage) -> int:
    """Build the pipeline from settings and run it once or forever."""
    try:
        analyst = MarketAnalystAgent(config=AgentConfig(name="market_analyst"), llm_client=LLMClient())
    except ValueError as e:
        formatter.print_error(str(e))
        return 1

    analyzer = SignalAnalyzer(
        tokens=args.tokens,
        price_provider=CoinGeckoProvider(),
        opinion_agent=analyst,
        storage=storage,
        chain_provider=BaseChainProvider(),
        wallet_address=settings.payments.PAY_TO,
    )

    if args.once:
        storage.health_check()
        run = await analyzer.run_analysis()
        formatter.format_run(run)
        return 0 if run.status != "failed" else 1

    scheduler = AgentScheduler(analyzer, storage, interval_minutes=args.interval)
    scheduler.install_signal_handlers()
    console.print(f"[bold cyan]Signal agent running[/bold cyan] (every {args.interval} minutes)")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")
    await scheduler.run_forever()
    return 0


def analyze_stored(args: argparse.Namespace, storage: JsonStorage) -> int:
    """Run the engine over stored history; no network, no AI."""
    generator = LocalSignalGenerator(signal_generation_config.to_dict())
    tokens = [token.upper() for token in (args.tokens or settings.agent.TOKENS)]

    results = []
    exit_code = 0
    for token in tokens:
        history = storage.get_price_observations(token)
        if not history:
            formatter.print_warning(f"No stored prices for {token}")
            continue
        try:
            analysis = generator.analyze(history)
        except ComputationError as e:
            formatter.print_error(f"{token}: {e}")
            exit_code = 1
            continue

        if args.format == "json":
            results.append({
                "token": token,
                "points": len(history),
                "changes": analysis.changes.to_dict(),
                "decision": analysis.decision.to_dict(),
            })
        else:
            formatter.format_analysis(analysis, len(history))

    if args.format == "json" and results:
        console.print(formatter.format_json(results), markup=False, highlight=False, soft_wrap=True)
    return exit_code


def show_signals(args: argparse.Namespace, storage: JsonStorage) -> int:
    if args.token:
        records = storage.get_signal_history(args.token.upper())[:max(0, args.limit)]
        title = f"{args.token.upper()} Signal History"
    else:
        records = storage.get_all_latest_signals()
        title = "Latest Signals"

    if args.format == "json":
        console.print(
            formatter.format_json([record.to_dict() for record in records]),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
    else:
        formatter.format_signals_table(records, title=title)
    return 0


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "signal_agent.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_arguments(argv)
    configure_logging(_VERBOSITY_LEVELS[args.verbose])

    if args.command == "serve":
        return serve(args)

    storage = JsonStorage(data_dir=args.data_dir)
    try:
        if args.command == "run":
            return asyncio.run(run_agent(args, storage))
        if args.command == "analyze":
            return analyze_stored(args, storage)
        return show_signals(args, storage)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
