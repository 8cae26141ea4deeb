from .money import ZERO, money_or_zero, quantize_money

__all__ = ["ZERO", "money_or_zero", "quantize_money"]
