"""
Expense Workflow Kernel

Approval workflow and budget validation for corporate expense claims:
- Four-state approval machine with role and department gating
- Advisory daily/monthly budget checks per category and department
- Budget alerts raised from exceeded thresholds
- Optimistic concurrency on every expense write
"""

__version__ = "0.1.0"
