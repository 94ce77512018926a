"""Example script demonstrating ChainHive's resilient Nodit client."""

import asyncio
import logging
import sys

from chainhive import NoditClient, configure_logging, load_settings
from chainhive.monitoring import generate_metrics
from chainhive.resilience import CircuitOpenError, RemoteCallError

logger = logging.getLogger(__name__)


async def main(address: str):
    """Fetch a wallet snapshot across a few chains."""
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)

    logger.info(f"Fetching portfolio for {address}")

    async with NoditClient.from_settings(settings) as client:
        for chain in ("ethereum", "polygon"):
            try:
                tokens = await client.get_token_balances(address, chain)
                logger.info(f"{chain}: {len(tokens)} tokens", extra={"chain": chain})
            except CircuitOpenError as e:
                logger.warning(f"{chain}: skipped, {e}")
            except RemoteCallError as e:
                logger.error(f"{chain}: token lookup failed: {e}", extra={"chain": chain})

        try:
            wei = await client.get_native_balance(address, "kairos")
            logger.info(f"kairos: {wei / 10**18:.6f} KAIA", extra={"chain": "kairos"})
        except RemoteCallError as e:
            logger.error(f"kairos: balance lookup failed: {e}", extra={"chain": "kairos"})

    print(generate_metrics())


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"))
