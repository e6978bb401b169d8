"""Rebate reconciliation service package.

Turns upstream collaboration records into rebate recovery tasks, classifies
their settlement state and drives single-task, batch and evidence operations
back into the upstream collaboration API.
"""

__all__: list[str] = []
