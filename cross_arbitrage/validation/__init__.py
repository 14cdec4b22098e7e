from .breakeven import compute_parity, describe_parity, implicit_conversion_factor

__all__ = ["compute_parity", "describe_parity", "implicit_conversion_factor"]
