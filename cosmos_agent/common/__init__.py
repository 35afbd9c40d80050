"""Shared models, settings and exceptions for the cosmos metrics agent."""
