"""
Analysis run: fetch, store, score, ask the analyst, reconcile, persist.

Tokens are processed one at a time with a pause between them so the free
tiers of the price and LLM APIs are not hammered. A failure for one token
never aborts the run; it only downgrades the run status.
"""
import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from signal_agent.agents.base import BaseAgent
from signal_agent.agents.data_structures import PriceSnapshot
from signal_agent.config.settings import settings
from signal_agent.config.signal_generation import signal_generation_config
from signal_agent.data.data_structures import AgentRun, PriceEntry, SignalRecord, WalletBalance
from signal_agent.data.providers.base_chain_provider import BaseChainProvider
from signal_agent.data.providers.base_provider import BasePriceProvider
from signal_agent.data.storage import JsonStorage
from signal_agent.signal_generation import LocalSignalGenerator
from signal_agent.utils.logging import get_logger
from signal_agent.utils.performance import time_function

logger = get_logger(__name__)


class SignalAnalyzer:
    """
    Runs one analysis pass over a fixed list of tokens.

    All collaborators are injected; nothing here reads the tracked-token list
    or the schedule from module state.
    """

    def __init__(
        self,
        tokens: Sequence[str],
        price_provider: BasePriceProvider,
        opinion_agent: BaseAgent,
        storage: JsonStorage,
        generator: Optional[LocalSignalGenerator] = None,
        token_delay_seconds: Optional[float] = None,
        ai_timeout_seconds: Optional[float] = None,
        history_points: int = 10,
        chain_provider: Optional[BaseChainProvider] = None,
        wallet_address: Optional[str] = None,
        low_balance_eth: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            tokens: Symbols to analyze, in order.
            price_provider: Source of live quotes.
            opinion_agent: Agent producing the AI opinion.
            storage: Where prices, signals and runs are written.
            generator: Signal engine; built from SIGNAL_* settings when omitted.
            token_delay_seconds: Pause between tokens (not after the last one).
            ai_timeout_seconds: Upper bound on one AI opinion; None disables it.
            history_points: Recent prices handed to the analyst.
            chain_provider: Balance source for the wallet health check.
            wallet_address: Agent wallet checked at the start of each run;
                the check is skipped without one.
            low_balance_eth: ETH balance below which a warning is logged.
            sleep: Awaitable sleep, injectable for tests.
        """
        if not tokens:
            raise ValueError("At least one token is required")

        self.tokens = [token.upper() for token in tokens]
        self.price_provider = price_provider
        self.opinion_agent = opinion_agent
        self.storage = storage
        self.generator = generator or LocalSignalGenerator(signal_generation_config.to_dict())
        self.token_delay_seconds = (
            token_delay_seconds if token_delay_seconds is not None else settings.agent.TOKEN_DELAY_SECONDS
        )
        self.ai_timeout_seconds = (
            ai_timeout_seconds if ai_timeout_seconds is not None else settings.agent.AI_TIMEOUT_SECONDS
        )
        self.history_points = history_points
        self.chain_provider = chain_provider
        self.wallet_address = wallet_address or None
        self.low_balance_eth = (
            low_balance_eth if low_balance_eth is not None else settings.data.LOW_BALANCE_ETH
        )
        self._sleep = sleep
        self._ai_calls = 0

    async def _get_opinion(self, snapshot: PriceSnapshot):
        call = self.opinion_agent.analyze(snapshot)
        if self.ai_timeout_seconds and self.ai_timeout_seconds > 0:
            return await asyncio.wait_for(call, timeout=self.ai_timeout_seconds)
        return await call

    async def analyze_token(self, token: str) -> Optional[SignalRecord]:
        """
        Analyze a single token end to end.

        Returns:
            The persisted SignalRecord, or None if any step failed.
        """
        logger.info("Analyzing token", token=token)
        try:
            quote = await self.price_provider.get_price(token)
            if quote is None:
                logger.error("Failed to fetch price", token=token)
                return None

            self.storage.write_price_entry(PriceEntry.from_quote(quote))
            history = self.storage.get_price_observations(token)

            analysis = self.generator.analyze(history)
            changes = analysis.changes

            snapshot = PriceSnapshot(
                token=token,
                current_price=quote.price_usd,
                change_1h=changes.change_1h,
                change_6h=changes.change_6h,
                change_24h=changes.change_24h,
                price_history=self.generator.extract_price_history(history, self.history_points),
            )
            try:
                market_analysis = await self._get_opinion(snapshot)
            except asyncio.TimeoutError:
                logger.error("AI opinion timed out", token=token, timeout_seconds=self.ai_timeout_seconds)
                return None
            self._ai_calls += 1

            decision = self.generator.reconcile(analysis.decision, market_analysis.opinion)
            if market_analysis.opinion.signal_type != analysis.decision.signal_type:
                logger.info(
                    "Signal divergence, keeping mechanical signal",
                    token=token,
                    mechanical=analysis.decision.signal_type.value,
                    ai=market_analysis.opinion.signal_type.value,
                    confidence=decision.confidence,
                )

            record = SignalRecord.from_decision(token, decision, changes, quote.price_usd)
            self.storage.write_signal(record)

            logger.info(
                "Token analysis complete",
                token=token,
                price_usd=quote.price_usd,
                signal=record.signal,
                confidence=record.confidence,
            )
            return record
        except Exception as e:
            logger.error("Error analyzing token", token=token, error=str(e), error_type=type(e).__name__)
            return None

    async def check_wallet_health(self) -> Optional[WalletBalance]:
        """
        Log the agent wallet's balances; never fails the run.

        Returns:
            The balance, or None when the check is skipped or failed.
        """
        if self.chain_provider is None or not self.wallet_address:
            return None

        balance = await self.chain_provider.fetch_balance(self.wallet_address)
        if balance is None:
            logger.warning("Could not check wallet balance", address=self.wallet_address[:10])
            return None

        logger.info("Wallet health", eth=balance.eth, usdc=balance.usdc)
        if float(balance.eth) < self.low_balance_eth:
            logger.warning(
                "ETH balance is low, fund the wallet to keep paying gas",
                eth=balance.eth,
                threshold=self.low_balance_eth,
            )
        return balance

    @time_function(operation_name="analysis_run")
    async def run_analysis(self) -> AgentRun:
        """
        Analyze every token and record the run.

        Returns:
            AgentRun: The persisted run record.
        """
        start = time.monotonic()
        self._ai_calls = 0
        logger.info("Starting analysis run", tokens=self.tokens)
        await self.check_wallet_health()

        results: List[Optional[SignalRecord]] = []
        for index, token in enumerate(self.tokens):
            results.append(await self.analyze_token(token))
            if index < len(self.tokens) - 1 and self.token_delay_seconds > 0:
                await self._sleep(self.token_delay_seconds)

        successful = [record for record in results if record is not None]
        failed_count = len(results) - len(successful)

        if len(successful) == len(self.tokens):
            status = "success"
        elif successful:
            status = "partial"
        else:
            status = "failed"

        run = AgentRun(
            status=status,
            tokens_processed=[record.token for record in successful],
            signals_generated=len(successful),
            prices_fetched=len(results),
            ai_calls_made=self._ai_calls,
            duration_ms=int((time.monotonic() - start) * 1000),
            error=f"{failed_count} token(s) failed to analyze" if failed_count else None,
        )
        self.storage.write_agent_run(run)

        logger.info(
            "Analysis run complete",
            status=status,
            signals_generated=len(successful),
            tokens=len(self.tokens),
            duration_ms=run.duration_ms,
        )
        return run
