"""
Abstract base class for all price providers in the Token Signal Agent.
"""
from abc import ABC, abstractmethod
from typing import Optional

from signal_agent.data.data_structures import PriceQuote


class BasePriceProvider(ABC):
    """
    Abstract base class for all price providers.

    The analyzer and the free price endpoint only depend on this interface,
    so any quote source can be swapped in without touching the pipeline.
    """

    name: str = "unknown"

    @abstractmethod
    async def get_price(self, token: str) -> Optional[PriceQuote]:
        """
        Fetches the current USD price for a token.

        Args:
            token: A token symbol (e.g. ``ETH``) or a Base contract address.

        Returns:
            A PriceQuote, or None if the token is unknown or fetching fails.
        """
        pass

    def supports(self, token: str) -> bool:
        """Whether ``token`` can be looked up by this provider at all."""
        return True
