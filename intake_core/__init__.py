"""Intake assessment and learning-roadmap engine."""
