"""
Live spot-price feed via ccxt.

What it does:
- Initializes a public (credential-less) ccxt exchange client.
- Fetches the last traded price for one symbol and scales it to an integer.

Where it is used:
- Instantiated by `pricebet.main` unless OFFLINE_DEMO=1.

No retry path: a failing fetch raises and the runner stops, since every
sampling block needs a price.
"""

import logging
import ccxt
from pricebet.config.loader import OracleSettings

logger = logging.getLogger(__name__)


class CcxtPriceOracle:
    """Thin wrapper around ccxt returning `last * scale` as an int."""
    def __init__(self, settings: OracleSettings):
        self.settings = settings
        self.exchange = self._init_exchange()

    def _init_exchange(self):
        exchange_class = getattr(ccxt, self.settings.exchange)
        return exchange_class({"enableRateLimit": True})

    def fetch_price(self) -> int:
        ticker = self.exchange.fetch_ticker(self.settings.symbol)
        last = ticker.get("last")
        if last is None:
            raise ValueError(f"no last price for {self.settings.symbol} on {self.settings.exchange}")
        price = int(float(last) * self.settings.scale)
        logger.debug(f"{self.settings.symbol} last={last} scaled={price}")
        return price
