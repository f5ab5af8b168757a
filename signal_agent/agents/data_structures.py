"""
Core data structures exchanged between the analyzer and the opinion agents.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from signal_agent.signal_generation.core import AIOpinion


@dataclass
class AgentConfig:
    """
    Configuration for an opinion agent.

    Attributes:
        name: The unique name of the agent.
        model_name: The language model to use. None means the provider default.
        history_points: How many recent prices go into the prompt.
    """
    name: str
    model_name: Optional[str] = None
    history_points: int = 10


@dataclass
class PriceSnapshot:
    """
    Everything the opinion agent sees about one token.

    Attributes:
        token: The token symbol.
        current_price: The price fetched in this run.
        change_1h: 1h change in percent.
        change_6h: 6h change in percent.
        change_24h: 24h change in percent.
        price_history: Recent prices, oldest first.
    """
    token: str
    current_price: float
    change_1h: float
    change_6h: float
    change_24h: float
    price_history: List[float] = field(default_factory=list)


@dataclass
class MarketAnalysis:
    """
    The output of an opinion agent.

    Attributes:
        token: The token analyzed.
        opinion: The parsed signal, confidence and report.
        raw_response: The unparsed model output.
        timestamp: When the analysis was produced.
    """
    token: str
    opinion: AIOpinion
    raw_response: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
