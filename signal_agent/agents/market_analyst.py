"""
Market analyst agent: asks a language model for a BUY/HOLD/SELL opinion.

The model is told to answer in a fixed ``REPORT: / SIGNAL: / CONFIDENCE:``
layout. Models often wrap the labels in markdown bold, so parsing tolerates
``**`` around labels and values and falls back to HOLD / 50 when a field is
missing.
"""
import re
from typing import Dict, List, Optional

from signal_agent.signal_generation.core import AIOpinion, SignalType
from signal_agent.utils.logging import get_logger

from .base import BaseAgent
from .data_structures import MarketAnalysis, PriceSnapshot

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a professional crypto market analyst working for Token Signal Agent.
You analyze on-chain token price data and produce clear, concise market intelligence reports.
Your analysis is data-driven, objective, and actionable.
You always structure your response as:
1. Current trend assessment (one sentence)
2. Key price movement observations (two to three sentences)
3. Signal recommendation with reasoning (one to two sentences)
Keep your total response under 150 words.
Be direct and professional. No disclaimers, no fluff."""

DEFAULT_SIGNAL = SignalType.HOLD
DEFAULT_CONFIDENCE = 50

_REPORT_PATTERN = re.compile(r"REPORT:\s*([\s\S]*?)(?=\**SIGNAL:|$)", re.IGNORECASE)
_SIGNAL_PATTERN = re.compile(r"SIGNAL:[\s*]*(BUY|HOLD|SELL)", re.IGNORECASE)
_CONFIDENCE_PATTERN = re.compile(r"CONFIDENCE:[\s*]*(\d+)", re.IGNORECASE)


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.2f}%"


def parse_analysis(raw: str) -> AIOpinion:
    """
    Parse a model response into an AIOpinion.

    Args:
        raw: The model output.

    Returns:
        AIOpinion: The parsed opinion; the report is the REPORT section with
        bold markers stripped, or the whole response if there is none.
    """
    report_match = _REPORT_PATTERN.search(raw)
    signal_match = _SIGNAL_PATTERN.search(raw)
    confidence_match = _CONFIDENCE_PATTERN.search(raw)

    report = report_match.group(1).replace("**", "").strip() if report_match else raw.strip()
    signal_type = SignalType(signal_match.group(1).upper()) if signal_match else DEFAULT_SIGNAL
    confidence = int(confidence_match.group(1)) if confidence_match else DEFAULT_CONFIDENCE
    confidence = min(100, max(0, confidence))

    return AIOpinion(signal_type=signal_type, confidence=confidence, report=report)


class MarketAnalystAgent(BaseAgent):
    """
    Produces the AI opinion that the mechanical signal is reconciled against.

    Also answers free-form questions for the chat endpoint with the same
    analyst persona.
    """

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def get_user_prompt(self, snapshot: PriceSnapshot) -> str:
        history = ", ".join(f"USD {price:.2f}" for price in snapshot.price_history)
        return (
            f"Analyze the following {snapshot.token} price data and provide a market signal.\n"
            f"\n"
            f"Current price: USD {snapshot.current_price:.2f}\n"
            f"1-hour change: {_signed(snapshot.change_1h)}\n"
            f"6-hour change: {_signed(snapshot.change_6h)}\n"
            f"24-hour change: {_signed(snapshot.change_24h)}\n"
            f"Recent price history (oldest to newest): {history}\n"
            f"\n"
            f"Format your response exactly like this:\n"
            f"REPORT:\n"
            f"[your analysis here]\n"
            f"SIGNAL: BUY\n"
            f"CONFIDENCE: 75\n"
        )

    def create_analysis(self, snapshot: PriceSnapshot, response: str) -> MarketAnalysis:
        return MarketAnalysis(
            token=snapshot.token,
            opinion=parse_analysis(response),
            raw_response=response,
        )

    async def analyze(self, snapshot: PriceSnapshot) -> MarketAnalysis:
        """
        Ask the model for an opinion on a snapshot.

        Errors from the LLM client propagate; the caller decides whether a
        missing opinion fails the token.
        """
        response = await self.make_llm_call(self.get_user_prompt(snapshot))
        analysis = self.create_analysis(snapshot, response)
        logger.info(
            "Market analysis complete",
            token=snapshot.token,
            signal=analysis.opinion.signal_type.value,
            confidence=analysis.opinion.confidence,
        )
        return analysis

    async def chat(self, messages: List[Dict[str, str]], context: Optional[str] = None) -> str:
        """
        Answer a conversation in the analyst persona.

        Args:
            messages: ``[{"role": "user"|"assistant", "content": str}, ...]``
            context: Optional extra context prepended to the request.

        Returns:
            str: The model's reply.

        Raises:
            ValueError: If ``messages`` is empty.
        """
        if not messages:
            raise ValueError("messages array is required")

        conversation = "\n".join(
            f"{'Assistant' if message.get('role') == 'assistant' else 'User'}: {message.get('content', '')}"
            for message in messages
        )
        if context:
            prompt = f"Additional context:\n{context}\n\nUser request:\n{conversation}"
        else:
            prompt = f"User request:\n{conversation}"
        return await self.make_llm_call(prompt)
