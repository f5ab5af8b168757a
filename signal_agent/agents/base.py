"""
Defines the base class for all opinion agents.

An opinion agent turns a PriceSnapshot into a MarketAnalysis by asking a
language model. The analyzer only depends on this interface, so tests and
alternative providers can plug in their own agent.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from .data_structures import AgentConfig, MarketAnalysis, PriceSnapshot


class BaseAgent(ABC):
    """
    Abstract base class for all opinion agents.
    """

    def __init__(self, config: AgentConfig, llm_client: Any, **kwargs):
        """
        Initializes the BaseAgent.

        Args:
            config: The configuration object for the agent.
            llm_client: A client exposing ``async generate(model, prompt, system_prompt)``.
            **kwargs: Additional keyword arguments for agent-specific dependencies.
        """
        self.config = config
        self.llm_client = llm_client
        for key, value in kwargs.items():
            setattr(self, key, value)

    @abstractmethod
    async def analyze(self, snapshot: PriceSnapshot) -> MarketAnalysis:
        """
        Produces an opinion on the given snapshot.

        Args:
            snapshot: The token's current price, deltas and recent prices.

        Returns:
            A MarketAnalysis carrying the parsed AIOpinion.
        """
        pass

    @abstractmethod
    def get_user_prompt(self, snapshot: PriceSnapshot) -> str:
        """Builds the user prompt sent to the LLM for a snapshot."""
        pass

    @abstractmethod
    def create_analysis(self, snapshot: PriceSnapshot, response: str) -> MarketAnalysis:
        """Parses the LLM response into a MarketAnalysis."""
        pass

    @abstractmethod
    def get_system_prompt(self) -> str:
        """Returns the system prompt for the agent's LLM."""
        pass

    async def make_llm_call(self, user_prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Makes a call to the language model with a given user prompt.

        Args:
            user_prompt: The user-level prompt or query for the LLM.
            system_prompt: An optional system prompt to override the default.

        Returns:
            The textual response from the language model.
        """
        effective_system_prompt = system_prompt if system_prompt is not None else self.get_system_prompt()
        return await self.llm_client.generate(
            model=self.config.model_name,
            prompt=user_prompt,
            system_prompt=effective_system_prompt,
        )
