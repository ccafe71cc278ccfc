"""Shared board logic, record helpers, workflows and configuration."""
