"""
Trade Kernel - OTC swap trade lifecycle and validation.

A versioned, append-only trade store with:
- Privilege-gated create/amend/terminate/cancel operations
- Error-accumulating business-rule and cross-leg validation
- Deterministic cashflow generation per leg
- Versioned settlement instructions
"""

__version__ = "0.1.0"
