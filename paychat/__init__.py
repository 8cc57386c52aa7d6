"""
paychat - pay-per-request streaming chat client for x402 endpoints
"""

__version__ = "0.1.0"
