"""Composition root: builds every component once and owns their lifecycle."""
from __future__ import annotations

import logging

from .analysis.apy import ApyTracker
from .chains.evm import EvmClient
from .config import AppConfig
from .interfaces.notifier import Notifier
from .notifications import TelegramNotifier
from .oracles import CoinCapFeed, CoinGeckoFeed
from .services import (
    ActionExecutor,
    ChatService,
    Monitor,
    PriceService,
    Scheduler,
    SessionStore,
    StateReader,
    TransactionPreparer,
)

logger = logging.getLogger(__name__)


class Application:
    """One shared chain client injected into readers, executor and preparer."""

    def __init__(self, config: AppConfig, chain: EvmClient | None = None) -> None:
        self.config = config
        self.chain = chain or EvmClient(config.chain)

        feeds = config.price_feed
        self.prices = PriceService(
            CoinGeckoFeed(feeds.coingecko, timeout=feeds.timeout),
            CoinCapFeed(feeds.coincap, timeout=feeds.timeout),
        )

        notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            notifiers.append(TelegramNotifier(config.notifications.telegram))
        else:
            logger.warning("No notification channel enabled; reports are only logged")

        self.reader = StateReader(self.chain, config.contracts)
        self.executor = ActionExecutor(self.chain, self.reader, config.contracts)
        self.monitor = Monitor(
            config, self.reader, self.prices, self.executor, notifiers, ApyTracker()
        )
        self.scheduler = Scheduler.from_config(self.monitor, config.monitor)
        self.chat = ChatService(
            self.reader,
            TransactionPreparer(self.chain, self.reader, config.contracts),
            self.prices,
            SessionStore(),
            ApyTracker(),
        )

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.chain.close()
