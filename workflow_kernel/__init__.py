"""
Workflow Kernel - approval and escalation engine

Moves draft business documents through a submission gate into an approval
pipeline, and steps overdue invoices through configured reminder sequences:
- Conditional draft -> submitted transitions (at most one winner)
- Data-driven approver resolution (manager, role, single approver)
- Best-effort notification fan-out and audit emission
- Idempotent reminder steps backed by a unique log
"""

__version__ = "0.1.0"
