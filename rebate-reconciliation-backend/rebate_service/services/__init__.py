"""
Rebate reconciliation services: aggregation, classification, commands and the per-client controller.
"""
from .controller import ControllerRegistry, RebateController

__all__ = ["ControllerRegistry", "RebateController"]
