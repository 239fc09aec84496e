"""
Market Watch

Terminal view of one chart session: fetches minute aggregates for a symbol,
prints the close/high/low series with the subsampled axis labels, and keeps
the market status line fresh through the poller.
"""
import asyncio
import sys
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from app.config import get_settings
from app.logging_config import setup_logging
from core.errors import InputValidationError
from core.market import (
    ChartSeriesTransformer,
    ChartSession,
    DateRangeValidator,
    MarketDataFetcher,
    MarketStatusPoller,
    PolygonClient,
)


def print_status(poller: MarketStatusPoller) -> None:
    state = poller.state
    if state.snapshot is not None:
        snap = state.snapshot
        exchanges = ", ".join(f"{k}={v}" for k, v in sorted(snap.exchanges.items()))
        print(f"  Market: {snap.market.value.upper()}  ({exchanges})")
    if state.error:
        print(f"  ⚠️  Status: {state.error}")


async def main(symbol: str, timeframe: str, start: str, end: str, watch: int):
    settings = get_settings()
    client = PolygonClient(settings.polygon_api_key, base_url=settings.polygon_base_url)
    fetcher = MarketDataFetcher(client, fixed_coarse_window=settings.market_fixed_coarse_window)
    poller = MarketStatusPoller(client.get_market_status)

    try:
        date_range = DateRangeValidator().require_strings(start, end)
        session = ChartSession(
            fetcher,
            symbol,
            date_range,
            transformer=ChartSeriesTransformer(tz=settings.chart_timezone),
        )
        session.set_timeframe(timeframe)
    except InputValidationError as e:
        print(f"❌ {e}")
        await client.close()
        return

    print(f"📈 Sonar Trading Lab - {session.symbol} {session.timeframe.minutes}m")
    print("=" * 60)

    handle = poller.start()
    try:
        for _ in range(max(watch, 1)):
            view = await session.refresh()
            print()
            print(f"[{session.symbol}] {date_range.start} .. {date_range.end}")
            print_status(poller)

            if view.error:
                print(f"  ❌ {view.error}")
            elif view.chart is None:
                print("  No data available for the selected range")
            else:
                close = view.chart.line("Close Price").values
                high = view.chart.line("High Price").values
                low = view.chart.line("Low Price").values
                print(f"  {'Time':<18} {'Close':>10} {'High':>10} {'Low':>10}")
                print("  " + "-" * 50)
                for i, tick in enumerate(view.chart.tick_labels):
                    if tick:
                        print(f"  {tick:<18} {close[i]:>10.2f} {high[i]:>10.2f} {low[i]:>10.2f}")
                print(f"  ✓ {len(view.chart.labels)} bars")

            if watch > 1:
                await asyncio.sleep(poller.interval)
    finally:
        poller.stop(handle)
        await handle.wait_closed()
        await client.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Watch minute bars and market status for a symbol")
    parser.add_argument("symbol", help="Ticker symbol, e.g. AAPL")
    parser.add_argument(
        "--timeframe",
        choices=["1", "5", "15", "30", "60"],
        default="1",
        help="Bar size in minutes (default: 1)",
    )
    parser.add_argument("--start", default="2023-06-01", help="Start date YYYY-MM-DD")
    parser.add_argument("--end", default="2023-06-02", help="End date YYYY-MM-DD")
    parser.add_argument(
        "--watch",
        type=int,
        default=1,
        help="Number of refreshes, one per poll interval (default: 1)",
    )
    args = parser.parse_args()

    load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env.local")
    setup_logging()
    asyncio.run(main(args.symbol, args.timeframe, args.start, args.end, args.watch))
