"""Integer currency helpers.

All prices and amounts are whole FCFA (XOF has no minor unit). No float.
"""


def fcfa_to_display(amount: int) -> str:
    """Format an FCFA amount: 2000 -> '2,000 FCFA', -500 -> '-500 FCFA'."""
    if amount < 0:
        return f"-{-amount:,} FCFA"
    return f"{amount:,} FCFA"
