"""
Token Signal Agent.

Collects token prices on a schedule, turns them into BUY / HOLD / SELL
signals, reconciles them with an AI market opinion and serves the results
behind a pay-per-call HTTP gate.
"""

__version__ = "1.0.0"
