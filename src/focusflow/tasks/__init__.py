"""
Task subsystem.

Components:
- task_models.py: data structures (TaskItem, RepeatRule, completion keys)
- ordering.py: canonical order, renormalization, partial moves, merge
- task_store.py: namespaced in-memory store with JSON-blob persistence
- reminders.py: local reminder backend + polling dispatch loop
"""
