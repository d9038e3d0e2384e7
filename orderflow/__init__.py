"""
OrderFlow routing core

Confidence calibration, edge-case detection, policy routing and packet triage
for purchase-order-like documents extracted by an external LLM.
"""

__version__ = "0.4.0"
