"""
ExecGuard - Exchange Execution-Safety & Connectivity Engine

Client-side safety layer for a leveraged crypto futures exchange. Signs REST
requests against a drift-corrected clock, validates and rounds orders against
the exchange trading filters, classifies market orders by simulated slippage
and keeps a reconnecting user-data stream alive.
"""

__version__ = "0.1.0"
__author__ = "ExecGuard Team"
