"""
Wallet Services Package
"""

from .wallet_service import WalletService

wallet_service = WalletService()

__all__ = [
    'WalletService',
    'wallet_service',
]
