"""
Reference generators for orders and wallet transactions
"""

import secrets
import string
import time
import uuid


def generate_order_number() -> str:
    """
    Time-based order number with a random suffix, always uppercase

    Example: 'ORD-1718000000000-K3M9'
    """
    chars = string.ascii_uppercase + string.digits
    suffix = ''.join(secrets.choice(chars) for _ in range(4))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def generate_transaction_id(kind: str) -> str:
    """Wallet transaction id, e.g. 'TXN-CREDIT-<uuid4>'"""
    return f"TXN-{kind.upper()}-{uuid.uuid4()}"


def generate_wallet_payment_reference() -> str:
    """Gateway-style reference for orders paid from the wallet"""
    return f"WALLET-{int(time.time() * 1000)}-{secrets.randbelow(10000)}"
