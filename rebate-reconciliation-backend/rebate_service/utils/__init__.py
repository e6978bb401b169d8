"""
Utilities package initialization.
"""
from .logger import get_logger, log_business_event, log_performance, setup_logging
from .money import parse_amount, to_amount

__all__ = ["get_logger", "log_business_event", "log_performance", "setup_logging", "parse_amount", "to_amount"]
