"""
Shared building blocks.

Components:
- calendar.py: day boundaries and day keys
- namespace.py: auth state -> storage namespace, auth-state stream
- change_tracker.py: "changed locally at T" markers for the sync engine
- effects.py: fire-and-forget side-effect queue
- events.py / phase.py: subscriptions and store phase guard
- ports.py: Protocols for storage, reminders and sync
- state.py: AppState (session-scoped composition of the stores)
"""
