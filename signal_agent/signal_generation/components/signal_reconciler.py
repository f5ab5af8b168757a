"""
Signal Reconciler component for the signal generation engine.

Merges the mechanical decision with an independently produced AI opinion.
The mechanical signal always wins; the opinion only moves the confidence:

- disagreement: confidence = round(mechanical * 0.75)
- agreement:    confidence = min(95, round((mechanical + ai) / 2))

The AI narrative is attached to the decision as ``ai_opinion`` and never
merged into the mechanical rationale.
"""

import dataclasses
from typing import Dict, Optional

from ..core import AIOpinion, SignalDecision, clamp_confidence, round_half_up


class SignalReconciler:
    """Combines a SignalDecision with an AIOpinion."""

    def __init__(self, config: Optional[Dict] = None):
        config = config or {}
        self.config = config
        self.disagreement_factor = config.get("disagreement_factor", 0.75)
        self.agreement_cap = config.get("agreement_cap", 95)

    def reconcile(self, decision: SignalDecision, opinion: AIOpinion) -> SignalDecision:
        """
        Reconcile a mechanical decision with an AI opinion.

        Args:
            decision: Decision produced by the SignalScorer
            opinion: Opinion for the same token and time window

        Returns:
            SignalDecision: Copy of ``decision`` with the final confidence and
                the opinion attached
        """
        if opinion.signal_type != decision.signal_type:
            confidence = round_half_up(decision.confidence * self.disagreement_factor)
        else:
            confidence = min(
                self.agreement_cap,
                round_half_up((decision.confidence + opinion.confidence) / 2),
            )

        return dataclasses.replace(
            decision,
            confidence=clamp_confidence(confidence),
            ai_opinion=opinion,
        )

    @staticmethod
    def agrees(decision: SignalDecision, opinion: AIOpinion) -> bool:
        return decision.signal_type == opinion.signal_type


def reconcile_signal(decision: SignalDecision, opinion: AIOpinion) -> SignalDecision:
    """Convenience wrapper around SignalReconciler.reconcile()."""
    return SignalReconciler().reconcile(decision, opinion)
