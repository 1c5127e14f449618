"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, CommitmentType, ...)
- task_lifecycle.py: status state machine and the delayed/urgent coupling
- task_categories.py: present/future/past buckets and status counts
- commitments.py: per-client capacity checks for commitment quantities
- progress.py: per-client commitment rollup
- delay_scanner.py: periodic sweep that auto-delays overdue tasks
- task_service.py: TaskEngine, the live view plus validated writes
"""
