"""Outer adapters: console REPL, offline sync notifier."""
