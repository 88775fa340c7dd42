"""
OANDA Stream - Main Runner Script
=================================

Run the stream clients from the project root.
Handles Python path setup automatically.

Usage:
    python run.py prices [INSTRUMENT ...]   # Stream tradeable prices
    python run.py transactions              # Stream position-closing fills
    python run.py config                    # Show settings (secrets masked)

Options:
    --live        Use the live environment (default: OANDA_ENVIRONMENT)
    --practice    Use the practice environment
"""

import sys
import os

# Add project root to Python path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)


def _environment_flag(args):
    """True/False from --live/--practice, None to fall back to settings."""
    if '--live' in args:
        return True
    if '--practice' in args:
        return False
    return None


def main():
    """Main entry point"""

    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1].lower()
    args = sys.argv[2:]
    positional = [a for a in args if not a.startswith('--')]

    from config.settings import settings
    from oanda_stream.utils.safe_logging import SecretProtector, configure_logging

    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE or None)

    live = _environment_flag(args)
    if live is None:
        live = settings.is_live

    client = None
    try:
        if command == 'prices':
            from oanda_stream.streaming import PriceStream

            instruments = ','.join(positional) if positional else settings.OANDA_INSTRUMENTS
            client = PriceStream(
                account_id=settings.OANDA_ACCOUNT_ID,
                token=settings.OANDA_API_TOKEN,
                instruments=instruments,
                live=live,
                base_url=settings.OANDA_STREAM_URL or None,
            )

            def handle_tick(tick):
                print(f"📈 {tick.symbol}: bid {tick.best_bid()} / ask {tick.best_ask()} @ {tick.time}")

            print(f"Streaming prices for {instruments} ({client.environment.value})...")
            client.run(handle_tick)

        elif command == 'transactions':
            from oanda_stream.streaming import TransactionStream

            client = TransactionStream(
                account_id=settings.OANDA_ACCOUNT_ID,
                token=settings.OANDA_API_TOKEN,
                live=live,
                base_url=settings.OANDA_STREAM_URL or None,
            )

            def handle_transaction(txn):
                print(f"💰 {txn.reason}: {txn.instrument} {txn.units} @ {txn.price} | P/L {txn.pl}")

            print(f"Streaming transactions ({client.environment.value})...")
            client.run(handle_transaction)

        elif command == 'config':
            print("Current settings:\n")
            for key, value in SecretProtector.mask_dict(settings.as_dict()).items():
                print(f"   {key:<12} {value}")

        else:
            print(f"Unknown command: {command}")
            print(__doc__)
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        if client is not None:
            client.stop()
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ Error: {SecretProtector.sanitize_message(str(e))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
