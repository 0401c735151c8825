"""Coordinator service: owns the task ledger and hands work to workers."""
